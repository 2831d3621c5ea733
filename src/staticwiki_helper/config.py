"""Project definition loading and validation for Static Wiki Helper."""

from __future__ import annotations

import configparser
import os
from pathlib import Path
from typing import FrozenSet, Iterable

from pydantic import BaseModel, ConfigDict, field_validator

DEFINITION_FILENAME = "staticwiki.ini"
SECTION_NAME = "General"
NAVIGATION_FILENAME = "Navigation.list"

SOURCE_DIR_KEY = "SourceDir"
OUTPUT_DIR_KEY = "OutputDir"
TITLE_KEY = "Title"
THEME_FILE_KEY = "ThemeFile"
CONTENT_EXTENSIONS_KEY = "ContentExtensions"

# Pattern the change monitor falls back to when a project lists no extensions.
DEFAULT_WATCH_EXTENSIONS: FrozenSet[str] = frozenset({"md"})


class ConfigError(Exception):
    """Raised when a project definition cannot be turned into a project."""


class ConfigNotFoundError(ConfigError):
    """The definition file is missing, unreadable or has no sections."""


class InvalidPathsError(ConfigError):
    """Resolved source/output directories or theme file do not exist."""

    def __init__(self, source_dir: Path, output_dir: Path, theme_file: Path) -> None:
        super().__init__(
            "Invalid paths: Source Directory: "
            f"{source_dir}; Output Directory: {output_dir}; Theme File: {theme_file}"
        )
        self.source_dir = source_dir
        self.output_dir = output_dir
        self.theme_file = theme_file


class ConfigLoadError(ConfigError):
    """Any other failure while reading or parsing the definition."""


class ProjectConfig(BaseModel):
    """A fully resolved and validated project."""

    model_config = ConfigDict(frozen=True)

    root_path: Path
    source_dir: Path
    output_dir: Path
    theme_file: Path
    navigation_file: Path
    title: str = ""
    content_extensions: FrozenSet[str] = frozenset()

    @field_validator("root_path", "source_dir", "output_dir", "theme_file", "navigation_file")
    @classmethod
    def _require_absolute(cls, value: Path) -> Path:
        if not value.is_absolute():
            raise ValueError(f"Project paths must be absolute: {value}")
        return value

    @field_validator("content_extensions", mode="before")
    @classmethod
    def _clean_extensions(cls, value: Iterable[str] | str) -> FrozenSet[str]:
        if isinstance(value, str):
            return parse_extensions(value)
        return frozenset(item.strip() for item in value if item and item.strip())

    def paths_exist(self) -> bool:
        """Re-check the existence rules the loader enforced."""

        return self.source_dir.is_dir() and self.output_dir.is_dir() and self.theme_file.is_file()

    def watch_extensions(self) -> FrozenSet[str]:
        return self.content_extensions or DEFAULT_WATCH_EXTENSIONS


def definition_path(project_root: Path) -> Path:
    return Path(project_root) / DEFINITION_FILENAME


def parse_extensions(raw: str) -> FrozenSet[str]:
    """Split a comma separated extension list, trimming each entry."""

    return frozenset(item.strip() for item in raw.split(",") if item.strip())


def _resolve(root: Path, value: str) -> Path:
    candidate = Path(value.strip())
    if not candidate.is_absolute():
        candidate = root / candidate
    return Path(os.path.normpath(candidate))


def _read_definition(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(interpolation=None)
    try:
        with path.open(encoding="utf-8-sig") as handle:
            parser.read_file(handle)
    except FileNotFoundError as exc:
        raise ConfigNotFoundError(f"Unable to open '{path}'") from exc
    except (PermissionError, IsADirectoryError) as exc:
        raise ConfigNotFoundError(f"Unable to open '{path}': {exc}") from exc
    except configparser.Error as exc:
        raise ConfigLoadError(f"Failed to parse '{path}': {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"Failed to read '{path}': {exc}") from exc

    if not parser.sections():
        raise ConfigNotFoundError(f"Unable to open '{path}'")
    return parser


def load_project(project_root: Path) -> ProjectConfig:
    """Load ``staticwiki.ini`` from *project_root* and validate its paths.

    Relative paths in the definition are resolved against the project root.
    Missing directories are reported, never created.
    """

    root = Path(os.path.abspath(project_root))
    parser = _read_definition(definition_path(root))

    if not parser.has_section(SECTION_NAME):
        raise ConfigLoadError(
            f"Section [{SECTION_NAME}] not found in '{definition_path(root)}'"
        )
    section = parser[SECTION_NAME]

    raw_paths = [section.get(key, "").strip() for key in (SOURCE_DIR_KEY, OUTPUT_DIR_KEY, THEME_FILE_KEY)]
    try:
        source_dir, output_dir, theme_file = (_resolve(root, raw) for raw in raw_paths)
        title = section.get(TITLE_KEY, "").strip()
        extensions = parse_extensions(section.get(CONTENT_EXTENSIONS_KEY, ""))
        # A blank entry would otherwise resolve to the project root itself.
        paths_valid = (
            all(raw_paths)
            and source_dir.is_dir()
            and output_dir.is_dir()
            and theme_file.is_file()
        )
    except (OSError, ValueError) as exc:
        raise ConfigLoadError(f"Failed to resolve project paths: {exc}") from exc

    if not paths_valid:
        raise InvalidPathsError(source_dir, output_dir, theme_file)

    return ProjectConfig(
        root_path=root,
        source_dir=source_dir,
        output_dir=output_dir,
        theme_file=theme_file,
        navigation_file=root / NAVIGATION_FILENAME,
        title=title,
        content_extensions=extensions,
    )


def save_project_definition(
    path: Path,
    *,
    source_dir: str,
    output_dir: str,
    title: str,
    theme_file: str,
    content_extensions: Iterable[str] = (),
) -> None:
    """Write a definition file with a single ``[General]`` section."""

    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # preserve key case on write
    parser[SECTION_NAME] = {
        SOURCE_DIR_KEY: source_dir,
        OUTPUT_DIR_KEY: output_dir,
        TITLE_KEY: title,
        THEME_FILE_KEY: theme_file,
        CONTENT_EXTENSIONS_KEY: ", ".join(content_extensions),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        parser.write(handle)


__all__ = [
    "ConfigError",
    "ConfigLoadError",
    "ConfigNotFoundError",
    "DEFAULT_WATCH_EXTENSIONS",
    "DEFINITION_FILENAME",
    "InvalidPathsError",
    "NAVIGATION_FILENAME",
    "ProjectConfig",
    "definition_path",
    "load_project",
    "parse_extensions",
    "save_project_definition",
]
