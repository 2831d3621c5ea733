"""Change-driven rebuild controller.

The controller owns the currently opened project, the auto-rebuild toggle
and the single-flight rebuild discipline. Rebuild requests may arrive from
the change monitor's dispatcher thread and from callers at the same time;
at most one engine invocation runs at once and requests that arrive during
a run collapse into a single follow-up run.

A failed engine run is logged and recorded but not rolled back: the output
tree is left in whatever state the engine produced.

Constructing a controller attaches the per-user diagnostic log file unless
the host already called :func:`staticwiki_helper.diagnostics.configure_logging`.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from .config import ConfigError, ProjectConfig, load_project
from .diagnostics import ensure_file_logging
from .engine import SiteEngine
from .models import ProjectSummary, RebuildOutcome, RebuildTrigger
from .monitor import ChangeMonitor, ChangeSignal

ENGINE_MESSAGE_PREFIX = "Static Wiki Message: "


@dataclass(slots=True)
class ControllerState:
    """Mutable state shared by the controller, its monitor and its callers."""

    project: Optional[ProjectConfig] = None
    auto_rebuild_enabled: bool = True
    rebuild_in_flight: bool = False
    rerun_requested: bool = False
    rebuild_count: int = 0
    last_outcome: Optional[RebuildOutcome] = None


class RebuildController:
    """Decide when to invoke the site engine and keep invocations serialized."""

    def __init__(
        self,
        engine: SiteEngine,
        *,
        state: ControllerState | None = None,
        loader: Callable[[Path], ProjectConfig] = load_project,
        monitor_factory: Callable[..., ChangeMonitor] = ChangeMonitor,
        recursive: bool = False,
    ) -> None:
        self._engine = engine
        self._state = state if state is not None else ControllerState()
        self._loader = loader
        self._monitor_factory = monitor_factory
        self._recursive = recursive
        self._monitor: Optional[ChangeMonitor] = None
        self._condition = threading.Condition()
        self._pending_trigger = RebuildTrigger.CHANGE
        self._lifecycle_lock = threading.Lock()
        ensure_file_logging()

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def project(self) -> Optional[ProjectConfig]:
        return self._state.project

    @property
    def auto_rebuild_enabled(self) -> bool:
        return self._state.auto_rebuild_enabled

    @property
    def monitor(self) -> Optional[ChangeMonitor]:
        return self._monitor

    def set_auto_rebuild_enabled(self, enabled: bool) -> None:
        self._state.auto_rebuild_enabled = bool(enabled)

    # ------------------------------------------------------------------
    # Project lifecycle
    # ------------------------------------------------------------------
    def open_project(self, root_path: Path) -> ProjectSummary:
        """Load the project at *root_path* and make it current.

        Raises :class:`ConfigError` if the definition is unusable; the
        previously opened project, if any, stays in place.
        """

        logger.info("Attempting to open project at '{}'", root_path)
        try:
            project = self._loader(Path(root_path))
        except ConfigError as exc:
            logger.error("Unable to load project: {}", exc)
            raise

        with self._lifecycle_lock:
            with self._condition:
                # Never swap projects underneath a running rebuild.
                while self._state.rebuild_in_flight:
                    self._condition.wait()
                previous, self._monitor = self._monitor, None
                self._state.project = project

            if previous is not None:
                previous.stop()
            monitor = self._monitor_factory(
                project.source_dir,
                project.watch_extensions(),
                self.on_change_signal,
                recursive=self._recursive,
            )
            self._monitor = monitor.start()
        logger.info("Successfully loaded project '{}'", project.title)

        rebuilt = False
        if self._state.auto_rebuild_enabled:
            # A run already in flight picks this request up as its follow-up.
            rebuilt = self._rebuild(RebuildTrigger.OPEN) is not None

        return ProjectSummary(
            title=project.title,
            root_path=project.root_path,
            source_dir=project.source_dir,
            output_dir=project.output_dir,
            watched_extensions=project.watch_extensions(),
            rebuilt=rebuilt,
        )

    def close_project(self) -> None:
        with self._lifecycle_lock:
            with self._condition:
                while self._state.rebuild_in_flight:
                    self._condition.wait()
                monitor, self._monitor = self._monitor, None
                self._state.project = None
                self._state.rerun_requested = False
            if monitor is not None:
                monitor.stop()

    def shutdown(self) -> None:
        self.close_project()
        logger.info("Closing Static Wiki")

    # ------------------------------------------------------------------
    # Rebuild triggers
    # ------------------------------------------------------------------
    def request_manual_rebuild(self) -> bool:
        """Rebuild now, whatever the auto-rebuild setting says."""

        return self._rebuild(RebuildTrigger.MANUAL) is True

    def on_change_signal(self, signal: ChangeSignal | None = None) -> bool:
        if not self._state.auto_rebuild_enabled:
            return False
        return self._rebuild(RebuildTrigger.CHANGE) is True

    def wait_idle(self, timeout: float | None = None) -> bool:
        with self._condition:
            return self._condition.wait_for(lambda: not self._state.rebuild_in_flight, timeout)

    # ------------------------------------------------------------------
    # Single-flight rebuild
    # ------------------------------------------------------------------
    def _current_valid_project(self) -> Optional[ProjectConfig]:
        project = self._state.project
        if project is None or not project.paths_exist():
            return None
        return project

    def _rebuild(self, trigger: RebuildTrigger) -> Optional[bool]:
        """Run the engine unless a run is already underway.

        Returns ``True`` when this call ran the engine itself, ``False`` when
        it was folded into the run in progress and ``None`` when there was
        no valid project to build.
        """

        if self._current_valid_project() is None:
            return None

        with self._condition:
            if self._state.rebuild_in_flight:
                self._state.rerun_requested = True
                self._pending_trigger = trigger
                return False
            self._state.rebuild_in_flight = True

        try:
            while True:
                project = self._current_valid_project()
                if project is not None:
                    self._run_engine(project, trigger)
                with self._condition:
                    if not self._state.rerun_requested:
                        break
                    self._state.rerun_requested = False
                    trigger = self._pending_trigger
        finally:
            with self._condition:
                self._state.rebuild_in_flight = False
                self._condition.notify_all()
        return True

    def _run_engine(self, project: ProjectConfig, trigger: RebuildTrigger) -> None:
        outcome = RebuildOutcome(trigger=trigger, succeeded=False)
        try:
            message = self._engine.generate(
                project.source_dir,
                project.output_dir,
                project.theme_file,
                project.navigation_file,
                project.content_extensions,
                project.title,
            )
        except Exception as exc:
            outcome.message = str(exc)
            logger.exception("Rebuild failed for '{}'", project.title)
        else:
            outcome.succeeded = True
            outcome.message = message or ""
            if outcome.message:
                logger.info("{}{}", ENGINE_MESSAGE_PREFIX, outcome.message)
        finally:
            outcome.finished_at = datetime.now()
            self._state.rebuild_count += 1
            self._state.last_outcome = outcome


__all__ = ["ControllerState", "ENGINE_MESSAGE_PREFIX", "RebuildController"]
