"""Process-wide diagnostic log built on loguru."""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import List, Optional

from loguru import logger
from rich.console import Console

APP_HOME_ENV = "STATICWIKI_HOME"
LOG_FILENAME = "StaticWiki.log"
LINE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} - {message}"

_sink_lock = threading.Lock()
_file_handler_id: Optional[int] = None


def app_home() -> Path:
    """Per-user application data folder, overridable through ``STATICWIKI_HOME``."""

    override = os.environ.get(APP_HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".staticwiki"


def default_log_path() -> Path:
    return app_home() / LOG_FILENAME


class DiagnosticLog:
    """Append-only loguru sink that opens, writes and closes the file per record.

    Nothing is held open between records, so a crash never leaves a
    half-buffered line behind. Write failures are swallowed: logging must
    never raise into the code that is logging.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def append(self, line: str) -> Optional[OSError]:
        if not line.endswith("\n"):
            line += "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line)
        except OSError as exc:
            return exc
        return None

    def __call__(self, message) -> None:
        # Best effort: a locked or read-only log file is not an error for the caller.
        self.append(str(message))


def _console_sink(console: Console):
    def _sink(message) -> None:
        console.print(str(message).rstrip("\n"), markup=False, highlight=False)

    return _sink


def configure_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    console: Console | None = None,
) -> List[int]:
    """Route loguru records to the diagnostic file and, optionally, a console.

    Returns the handler ids so callers can detach them again.
    """

    global _file_handler_id
    with _sink_lock:
        logger.remove()
        handler_ids: List[int] = []
        if console is not None:
            handler_ids.append(logger.add(_console_sink(console), level=level, format="{message}"))
        target = log_file if log_file is not None else default_log_path()
        _file_handler_id = logger.add(DiagnosticLog(target), level=level, format=LINE_FORMAT)
        handler_ids.append(_file_handler_id)
    return handler_ids


def ensure_file_logging() -> int:
    """Attach the default diagnostic file sink unless one is already attached.

    Library hosts that never call :func:`configure_logging` still get the
    per-user log file this way.
    """

    global _file_handler_id
    with _sink_lock:
        if _file_handler_id is None:
            _file_handler_id = logger.add(DiagnosticLog(default_log_path()), level="INFO", format=LINE_FORMAT)
        return _file_handler_id


def reset_logging() -> None:
    """Detach every sink, including the diagnostic file."""

    global _file_handler_id
    with _sink_lock:
        logger.remove()
        _file_handler_id = None


def log(message: str) -> None:
    """Record one diagnostic line, creating the log file on first use."""

    ensure_file_logging()
    logger.info(message)


__all__ = [
    "APP_HOME_ENV",
    "DiagnosticLog",
    "LINE_FORMAT",
    "LOG_FILENAME",
    "app_home",
    "configure_logging",
    "default_log_path",
    "ensure_file_logging",
    "log",
    "reset_logging",
]
