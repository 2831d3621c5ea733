from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

import pytest
from loguru import logger

from staticwiki_helper.diagnostics import reset_logging as detach_all_sinks


def write_project(
    root: Path,
    *,
    source: str = "Source",
    output: str = "Output",
    theme: str = "theme.html",
    title: str = "Test Wiki",
    extensions: str = "md, txt",
    create: bool = True,
) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    if create:
        (root / source).mkdir(parents=True, exist_ok=True)
        (root / output).mkdir(parents=True, exist_ok=True)
        (root / theme).write_text("<html>{{content}}</html>")
    definition = root / "staticwiki.ini"
    definition.write_text(
        "[General]\n"
        f"SourceDir = {source}\n"
        f"OutputDir = {output}\n"
        f"Title = {title}\n"
        f"ThemeFile = {theme}\n"
        f"ContentExtensions = {extensions}\n"
    )
    return root


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class RecordingEngine:
    """Engine double that records calls and can be held mid-run."""

    def __init__(self, message: str = "", error: Optional[Exception] = None) -> None:
        self.message = message
        self.error = error
        self.calls: List[tuple] = []
        self.active = 0
        self.max_active = 0
        self.entered = threading.Event()
        self.release = threading.Event()
        self.release.set()
        self._lock = threading.Lock()

    def hold(self) -> None:
        self.release.clear()

    def generate(self, source_dir, output_dir, theme_file, navigation_file, extensions, title) -> str:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.calls.append((source_dir, output_dir, theme_file, navigation_file, extensions, title))
        self.entered.set()
        try:
            self.release.wait(timeout=5)
            if self.error is not None:
                raise self.error
            return self.message
        finally:
            with self._lock:
                self.active -= 1


class FakeObserver:
    """Stand-in for a watchdog observer that records scheduling."""

    def __init__(self) -> None:
        self.scheduled = []
        self.started = False
        self.stopped = False
        self.fail_with: Optional[Exception] = None

    def schedule(self, handler, path, recursive=False):
        if self.fail_with is not None:
            raise self.fail_with
        self.scheduled.append((handler, path, recursive))

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def is_alive(self) -> bool:
        return False

    def join(self, timeout=None) -> None:
        return None


@pytest.fixture(autouse=True)
def isolated_app_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "app-home"
    monkeypatch.setenv("STATICWIKI_HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def reset_logging():
    detach_all_sinks()
    yield
    detach_all_sinks()


@pytest.fixture()
def log_lines():
    lines: List[str] = []
    handler_id = logger.add(lambda message: lines.append(str(message).rstrip("\n")), format="{message}", level="DEBUG")
    yield lines
    logger.remove(handler_id)


@pytest.fixture()
def project_root(tmp_path: Path) -> Path:
    return write_project(tmp_path / "wiki")


@pytest.fixture()
def engine() -> RecordingEngine:
    return RecordingEngine()


@pytest.fixture()
def fake_observer_factory():
    observers: List[FakeObserver] = []

    def _factory() -> FakeObserver:
        observer = FakeObserver()
        observers.append(observer)
        return observer

    _factory.observers = observers
    return _factory

