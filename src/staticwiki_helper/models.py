"""Shared result models for the rebuild controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Optional


class RebuildTrigger(str, Enum):
    """What asked for a rebuild."""

    OPEN = "open"
    MANUAL = "manual"
    CHANGE = "change"


@dataclass(slots=True)
class RebuildOutcome:
    """Result of one engine invocation."""

    trigger: RebuildTrigger
    succeeded: bool
    message: str = ""
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def duration(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


@dataclass(slots=True)
class ProjectSummary:
    """Description of a freshly opened project handed back to the caller.

    ``rebuilt`` is true when the open led to an engine run, either by running
    it directly or as the follow-up of a rebuild that was already underway.
    """

    title: str
    root_path: Path
    source_dir: Path
    output_dir: Path
    watched_extensions: FrozenSet[str]
    rebuilt: bool = False


__all__ = ["RebuildTrigger", "RebuildOutcome", "ProjectSummary"]
