"""Data models for indexed filesystem entries."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict


class ScanMode(str, Enum):
    """Depth of a catalog walk."""

    TOP_LEVEL = "top_level"
    RECURSIVE = "recursive"


class EntryKind(str, Enum):
    """Filesystem object type recorded for an entry."""

    REGULAR_FILE = "regular_file"
    DIRECTORY = "directory"
    SYMBOLIC_LINK = "symbolic_link"
    OTHER = "other"


class Entry(BaseModel):
    """One filesystem object discovered during a scan.

    Attributes:
        id: Stable identifier assigned at first discovery.
        name: Base name without extension.
        path: Absolute filesystem path; unique within a catalog.
        kind: Filesystem object type.
        modified_at: Last-modification timestamp used to detect changes.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    path: Path
    kind: EntryKind
    modified_at: datetime


class RefreshCounts(NamedTuple):
    """Outcome of an incremental refresh."""

    added: int
    updated: int


__all__ = ["ScanMode", "EntryKind", "Entry", "RefreshCounts"]
