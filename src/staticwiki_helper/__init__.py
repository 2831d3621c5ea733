"""Static Wiki Helper: watch a wiki project and rebuild its site on change."""

from .config import ConfigError, ProjectConfig, load_project
from .controller import ControllerState, RebuildController
from .engine import CommandEngine, SiteEngine
from .monitor import ChangeMonitor, ChangeSignal

__version__ = "0.3.0"

__all__ = [
    "ChangeMonitor",
    "ChangeSignal",
    "CommandEngine",
    "ConfigError",
    "ControllerState",
    "ProjectConfig",
    "RebuildController",
    "SiteEngine",
    "load_project",
]
