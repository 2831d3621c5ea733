"""Typer-based CLI for Static Wiki Helper."""

from __future__ import annotations

import time
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from .config import ConfigError, InvalidPathsError, definition_path, load_project, parse_extensions, save_project_definition
from .controller import RebuildController
from .diagnostics import configure_logging
from .engine import CommandEngine, EngineLoadError, SiteEngine, load_engine

app = typer.Typer(help="Rebuild a Static Wiki site whenever its source documents change.")
console = Console()

EngineOption = typer.Option(None, "--engine", help="Engine import reference, e.g. 'mypkg.engine:Engine'")
CommandOption = typer.Option(
    None,
    "--command",
    envvar="STATICWIKI_ENGINE_COMMAND",
    help="Engine command template using {source} {output} {theme} {navigation} {extensions} {title}",
)
TimeoutOption = typer.Option(None, "--timeout", help="Seconds before an engine command is killed")
LogLevelOption = typer.Option("INFO", "--log-level", help="Logging level")
LogFileOption = typer.Option(None, "--log-file", help="Diagnostic log file (defaults to ~/.staticwiki/StaticWiki.log)")


def _idle() -> None:
    time.sleep(1)


def _configure_logging(level: str, log_file: Path | None) -> None:
    configure_logging(level.upper(), log_file, console=console)


def _resolve_engine(engine: Optional[str], command: Optional[str], timeout: Optional[float]) -> SiteEngine:
    if bool(engine) == bool(command):
        console.print("[red]Provide exactly one of --engine or --command.[/red]")
        raise typer.Exit(code=2)
    try:
        if engine:
            return load_engine(engine)
        return CommandEngine(command, timeout=timeout)
    except EngineLoadError as exc:
        console.print(f"[red]Engine error:[/red] {exc}")
        raise typer.Exit(code=2)


def _report_config_error(exc: ConfigError) -> None:
    console.print(f"[red]Configuration error:[/red] {exc}")
    if isinstance(exc, InvalidPathsError):
        console.print(f"  Source directory: {exc.source_dir}")
        console.print(f"  Output directory: {exc.output_dir}")
        console.print(f"  Theme file:       {exc.theme_file}")


@app.command()
def check(
    project: Path = typer.Argument(..., exists=True, file_okay=False, dir_okay=True, readable=True),
    log_level: str = LogLevelOption,
    log_file: Optional[Path] = LogFileOption,
) -> None:
    """Validate the project definition and show the resolved paths."""

    _configure_logging(log_level, log_file)
    try:
        config = load_project(project)
    except ConfigError as exc:
        _report_config_error(exc)
        raise typer.Exit(code=4)

    table = Table(title=config.title or str(config.root_path))
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("Source directory", str(config.source_dir))
    table.add_row("Output directory", str(config.output_dir))
    table.add_row("Theme file", str(config.theme_file))
    table.add_row("Navigation file", str(config.navigation_file))
    table.add_row("Content extensions", ", ".join(sorted(config.content_extensions)) or "(engine default)")
    table.add_row("Watched extensions", ", ".join(sorted(config.watch_extensions())))
    console.print(table)
    console.print("[green]Project definition is valid.[/green]")


@app.command()
def build(
    project: Path = typer.Argument(..., exists=True, file_okay=False, dir_okay=True, readable=True),
    engine: Optional[str] = EngineOption,
    command: Optional[str] = CommandOption,
    timeout: Optional[float] = TimeoutOption,
    log_level: str = LogLevelOption,
    log_file: Optional[Path] = LogFileOption,
) -> None:
    """Rebuild the site once."""

    _configure_logging(log_level, log_file)
    controller = RebuildController(_resolve_engine(engine, command, timeout))
    controller.set_auto_rebuild_enabled(False)
    try:
        summary = controller.open_project(project)
    except ConfigError as exc:
        _report_config_error(exc)
        raise typer.Exit(code=4)

    try:
        controller.request_manual_rebuild()
    finally:
        controller.shutdown()

    outcome = controller.state.last_outcome
    if outcome is None:
        console.print("[red]Project paths are no longer valid; nothing was built.[/red]")
        raise typer.Exit(code=3)
    if not outcome.succeeded:
        console.print(f"[red]Rebuild failed:[/red] {outcome.message}")
        raise typer.Exit(code=3)
    console.print(f"[green]Rebuilt '{summary.title}' into {summary.output_dir}[/green]")


@app.command()
def watch(
    project: Path = typer.Argument(..., exists=True, file_okay=False, dir_okay=True, readable=True),
    engine: Optional[str] = EngineOption,
    command: Optional[str] = CommandOption,
    timeout: Optional[float] = TimeoutOption,
    auto: bool = typer.Option(True, "--auto/--no-auto", help="Rebuild automatically on source changes"),
    recursive: bool = typer.Option(False, "--recursive/--top-level", help="Also watch subdirectories"),
    log_level: str = LogLevelOption,
    log_file: Optional[Path] = LogFileOption,
) -> None:
    """Open the project and rebuild on every source change until interrupted."""

    _configure_logging(log_level, log_file)
    logger.info("Starting Static Wiki")
    controller = RebuildController(_resolve_engine(engine, command, timeout), recursive=recursive)
    controller.set_auto_rebuild_enabled(auto)
    try:
        summary = controller.open_project(project)
    except ConfigError as exc:
        _report_config_error(exc)
        raise typer.Exit(code=4)

    console.print(
        f"[green]Loaded '{summary.title}'[/green], watching {summary.source_dir} "
        f"for *.{{{','.join(sorted(summary.watched_extensions))}}} changes. Press Ctrl+C to stop."
    )
    try:
        while True:
            _idle()
    except KeyboardInterrupt:
        console.print("Stopping…")
    finally:
        controller.shutdown()


@app.command("init")
def init_project(
    project: Path = typer.Argument(..., file_okay=False, dir_okay=True, resolve_path=True),
    source: str = typer.Option("Source", "--source", help="Source directory, relative to the project"),
    output: str = typer.Option("Output", "--output", help="Output directory, relative to the project"),
    theme: str = typer.Option("theme.html", "--theme", help="Theme file, relative to the project"),
    title: str = typer.Option("My Wiki", "--title"),
    extensions: str = typer.Option("md", "--extensions", help="Comma separated content extensions"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing definition"),
) -> None:
    """Write a staticwiki.ini definition into PROJECT."""

    target = definition_path(project)
    if target.exists() and not force:
        console.print(f"[red]{target} already exists; use --force to overwrite.[/red]")
        raise typer.Exit(code=1)
    ext_list: List[str] = sorted(parse_extensions(extensions))
    save_project_definition(
        target,
        source_dir=source,
        output_dir=output,
        title=title,
        theme_file=theme,
        content_extensions=ext_list,
    )
    console.print(f"[green]Wrote project definition to {target}[/green]")


if __name__ == "__main__":
    app()
