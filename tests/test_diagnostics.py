from __future__ import annotations

import re
from pathlib import Path

from loguru import logger

from staticwiki_helper.diagnostics import (
    DiagnosticLog,
    app_home,
    configure_logging,
    default_log_path,
    ensure_file_logging,
    log,
)

LINE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} - (?P<message>.*)$")


def test_default_log_path_uses_app_home(isolated_app_home: Path) -> None:
    assert app_home() == isolated_app_home
    assert default_log_path() == isolated_app_home / "StaticWiki.log"


def test_log_appends_timestamped_lines(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "StaticWiki.log"
    configure_logging("INFO", target)

    log("Starting Static Wiki")
    log("Closing Static Wiki")

    lines = target.read_text().splitlines()
    assert [LINE.match(line).group("message") for line in lines] == [
        "Starting Static Wiki",
        "Closing Static Wiki",
    ]


def test_log_defaults_to_app_home(isolated_app_home: Path) -> None:
    configure_logging("INFO")
    log("hello")
    assert "hello" in (isolated_app_home / "StaticWiki.log").read_text()


def test_log_creates_file_without_configuration(isolated_app_home: Path) -> None:
    log("Starting Static Wiki")

    lines = (isolated_app_home / "StaticWiki.log").read_text().splitlines()
    assert [LINE.match(line).group("message") for line in lines] == ["Starting Static Wiki"]


def test_file_sink_is_attached_once(isolated_app_home: Path) -> None:
    first = ensure_file_logging()
    assert ensure_file_logging() == first

    logger.info("once")
    assert (isolated_app_home / "StaticWiki.log").read_text().count("once") == 1


def test_configured_file_replaces_default(tmp_path: Path, isolated_app_home: Path) -> None:
    target = tmp_path / "custom.log"
    configure_logging("INFO", target)

    log("routed")

    assert "routed" in target.read_text()
    assert not (isolated_app_home / "StaticWiki.log").exists()


def test_level_filters_debug(tmp_path: Path) -> None:
    target = tmp_path / "StaticWiki.log"
    configure_logging("INFO", target)
    logger.debug("hidden")
    logger.info("shown")
    assert target.read_text().count(" - ") == 1


def test_append_reports_failures_instead_of_raising(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    sink = DiagnosticLog(blocker / "StaticWiki.log")

    assert isinstance(sink.append("line"), OSError)
    sink("line\n")


def test_unwritable_log_never_raises(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    configure_logging("INFO", blocker / "StaticWiki.log")

    log("this goes nowhere")


def test_file_is_not_held_open(tmp_path: Path) -> None:
    target = tmp_path / "StaticWiki.log"
    sink = DiagnosticLog(target)
    assert sink.append("one") is None
    target.unlink()
    assert sink.append("two") is None
    assert target.read_text() == "two\n"
