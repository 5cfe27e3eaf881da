"""Relocation result models."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


class MoveRecord(BaseModel):
    """Represents one file moved into a tag destination.

    Attributes:
        entry_id: Catalog id of the moved entry.
        source: Path before the move.
        destination: Path after the move.
        conflict_applied: Indicates whether the name was suffixed to avoid a collision.
    """

    entry_id: int
    source: Path
    destination: Path
    conflict_applied: bool = False


class MoveFailure(BaseModel):
    """Represents a member that could not be moved."""

    entry_id: int
    source: Path
    reason: str


class RelocationReport(BaseModel):
    """Outcome of moving the members of one tag.

    Attributes:
        tag: Tag whose members were processed.
        destination: Destination directory, when the tag is known.
        moved: Files moved successfully.
        skipped: Sources that were missing or already in place.
        failed: Sources whose move raised an error.
    """

    tag: str
    destination: Optional[Path] = None
    moved: List[MoveRecord] = Field(default_factory=list)
    skipped: List[Path] = Field(default_factory=list)
    failed: List[MoveFailure] = Field(default_factory=list)

    @property
    def moved_count(self) -> int:
        return len(self.moved)


class RelocationSummary(BaseModel):
    """Aggregated outcome of moving every tag."""

    reports: List[RelocationReport] = Field(default_factory=list)

    @property
    def moved_count(self) -> int:
        return sum(report.moved_count for report in self.reports)

    @property
    def skipped_count(self) -> int:
        return sum(len(report.skipped) for report in self.reports)

    @property
    def failed_count(self) -> int:
        return sum(len(report.failed) for report in self.reports)


__all__ = ["MoveRecord", "MoveFailure", "RelocationReport", "RelocationSummary"]
