"""Site Generation Engine contract and the adapters used to reach one."""

from __future__ import annotations

import importlib
import shlex
import subprocess
from pathlib import Path
from typing import AbstractSet, List, Optional, Protocol, Sequence, runtime_checkable

from loguru import logger


class GenerationError(Exception):
    """Raised when the engine could not produce the site."""


class EngineLoadError(Exception):
    """Raised when an engine reference cannot be imported or used."""


@runtime_checkable
class SiteEngine(Protocol):
    """Anything able to rebuild the whole output tree from the source tree.

    Implementations walk ``source_dir`` recursively and return a free-form
    diagnostic message, possibly empty. Repeated calls with the same inputs
    must behave the same.
    """

    def generate(
        self,
        source_dir: Path,
        output_dir: Path,
        theme_file: Path,
        navigation_file: Path,
        extensions: AbstractSet[str],
        title: str,
    ) -> str: ...


class CommandEngine:
    """Run an external generator program for every rebuild.

    Each argument of *command* may reference ``{source}``, ``{output}``,
    ``{theme}``, ``{navigation}``, ``{extensions}`` and ``{title}``.
    """

    def __init__(
        self,
        command: Sequence[str] | str,
        *,
        timeout: Optional[float] = None,
        cwd: Optional[Path] = None,
    ) -> None:
        if isinstance(command, str):
            command = shlex.split(command)
        if not command:
            raise EngineLoadError("Engine command is empty")
        self.command: List[str] = list(command)
        self.timeout = timeout
        self.cwd = cwd

    def render(
        self,
        source_dir: Path,
        output_dir: Path,
        theme_file: Path,
        navigation_file: Path,
        extensions: AbstractSet[str],
        title: str,
    ) -> List[str]:
        values = {
            "source": str(source_dir),
            "output": str(output_dir),
            "theme": str(theme_file),
            "navigation": str(navigation_file),
            "extensions": ",".join(sorted(extensions)),
            "title": title,
        }
        try:
            return [part.format(**values) for part in self.command]
        except (KeyError, IndexError, ValueError) as exc:
            raise GenerationError(f"Invalid engine command template: {exc}") from exc

    def generate(
        self,
        source_dir: Path,
        output_dir: Path,
        theme_file: Path,
        navigation_file: Path,
        extensions: AbstractSet[str],
        title: str,
    ) -> str:
        args = self.render(source_dir, output_dir, theme_file, navigation_file, extensions, title)
        logger.debug("Running engine command: {}", shlex.join(args))
        try:
            result = subprocess.run(
                args,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise GenerationError(f"Engine timed out after {self.timeout}s") from exc
        except OSError as exc:
            raise GenerationError(f"Unable to start engine '{args[0]}': {exc}") from exc

        output = "\n".join(part.strip() for part in (result.stdout, result.stderr) if part and part.strip())
        if result.returncode != 0:
            raise GenerationError(f"Engine exited with status {result.returncode}: {output[:500]}")
        return output


def load_engine(reference: str) -> SiteEngine:
    """Import an engine from a ``package.module:attribute`` reference.

    A class or factory found there is called without arguments.
    """

    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise EngineLoadError(f"Engine reference must look like 'module:attribute', got '{reference}'")
    try:
        target = importlib.import_module(module_name)
    except ImportError as exc:
        raise EngineLoadError(f"Unable to import '{module_name}': {exc}") from exc
    for name in attribute.split("."):
        try:
            target = getattr(target, name)
        except AttributeError as exc:
            raise EngineLoadError(f"'{reference}' not found: {exc}") from exc

    engine = target
    if isinstance(target, type) or (callable(target) and not hasattr(target, "generate")):
        try:
            engine = target()
        except TypeError as exc:
            raise EngineLoadError(f"Unable to construct engine from '{reference}': {exc}") from exc
    if not callable(getattr(engine, "generate", None)):
        raise EngineLoadError(f"'{reference}' does not provide a generate() method")
    return engine


__all__ = ["CommandEngine", "EngineLoadError", "GenerationError", "SiteEngine", "load_engine"]
