"""Filesystem change monitoring for a project's source directory."""

from __future__ import annotations

import os
import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import AbstractSet, Callable, FrozenSet, Optional

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer


@dataclass(frozen=True, slots=True)
class ChangeSignal:
    """A watched source file was modified."""

    path: Path
    observed_at: datetime = field(default_factory=datetime.now)


_STOP = object()


class _SourceEventHandler(FileSystemEventHandler):
    """Translate watchdog modification events into queued change signals."""

    def __init__(self, monitor: "ChangeMonitor") -> None:
        super().__init__()
        self._monitor = monitor

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._monitor.notify(Path(os.fsdecode(event.src_path)))


class ChangeMonitor:
    """Watch ``source_dir`` and deliver :class:`ChangeSignal` objects for qualifying edits.

    Signals are handed to ``on_change`` from a dedicated dispatcher thread, so
    the observer never waits on the consumer. Signals that pile up while the
    consumer is busy are folded into the newest one, so a burst of saves
    during a slow handler yields a single follow-up call.
    """

    def __init__(
        self,
        source_dir: Path,
        extensions: AbstractSet[str],
        on_change: Callable[[ChangeSignal], object],
        *,
        recursive: bool = False,
        observer_factory: Callable[[], object] = Observer,
    ) -> None:
        self.source_dir = Path(source_dir)
        self.extensions: FrozenSet[str] = frozenset(extensions)
        self.recursive = recursive
        self._on_change = on_change
        self._observer_factory = observer_factory
        self._observer = None
        self._dispatcher: Optional[threading.Thread] = None
        self._signals: "queue.Queue[object]" = queue.Queue()
        self._lock = threading.Lock()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def matches(self, path: Path) -> bool:
        suffix = path.suffix[1:] if path.suffix else ""
        return bool(suffix) and suffix in self.extensions

    def start(self) -> "ChangeMonitor":
        with self._lock:
            if self._running:
                return self
            observer = self._observer_factory()
            try:
                observer.schedule(_SourceEventHandler(self), str(self.source_dir), recursive=self.recursive)
                observer.start()
            except OSError as exc:
                logger.warning("Unable to watch {}: {}", self.source_dir, exc)
                return self
            self._observer = observer
            self._running = True
            self._dispatcher = threading.Thread(
                target=self._dispatch, name="staticwiki-change-dispatcher", daemon=True
            )
            self._dispatcher.start()
        logger.debug(
            "Watching {} for *.{} changes", self.source_dir, ",".join(sorted(self.extensions))
        )
        return self

    def notify(self, path: Path) -> None:
        """Queue a signal for *path* if it is a watched document."""

        if not self._running or not self.matches(path):
            return
        if not self.source_dir.is_dir():
            # Watched folder vanished; stay quiet until the project is reopened.
            logger.debug("Source directory {} is gone; ignoring change", self.source_dir)
            return
        self._signals.put(ChangeSignal(path))

    def stop(self) -> None:
        """Stop delivering signals and release the OS watch. Safe to repeat."""

        with self._lock:
            if not self._running:
                return
            self._running = False
            observer, self._observer = self._observer, None
            dispatcher, self._dispatcher = self._dispatcher, None

        self._signals.put(_STOP)
        if observer is not None:
            observer.stop()
            if observer.is_alive():
                observer.join()
        if dispatcher is not None and dispatcher is not threading.current_thread():
            dispatcher.join()
        logger.debug("Stopped watching {}", self.source_dir)

    def _next_signal(self):
        """Block for the next signal, folding anything queued behind it into the newest one."""

        item = self._signals.get()
        while item is not _STOP:
            try:
                queued = self._signals.get_nowait()
            except queue.Empty:
                break
            item = queued
        return item

    def _dispatch(self) -> None:
        while True:
            item = self._next_signal()
            if item is _STOP:
                return
            if not self._running:
                continue
            try:
                self._on_change(item)
            except Exception:
                logger.exception("Change handler failed")


__all__ = ["ChangeMonitor", "ChangeSignal"]
