"""Configuration models describing FolderSort settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class FolderSortBaseModel(BaseModel):
    """Shared configuration for FolderSort settings models."""

    model_config = ConfigDict(extra="forbid")


class CatalogSettings(FolderSortBaseModel):
    """Defaults for directory indexing.

    Attributes:
        recursive: Whether scans walk the whole tree instead of the top level.
        include_hidden: Whether dot-prefixed files and directories are indexed.
    """

    recursive: bool = False
    include_hidden: bool = True


class TagSettings(FolderSortBaseModel):
    """Tag registry settings.

    Attributes:
        store_path: Location of the JSON tag store.
        normalization: Transformation applied to tag names.
    """

    store_path: str = "~/.foldersort/tags.json"
    normalization: Literal["none", "lower"] = "none"


class RelocationSettings(FolderSortBaseModel):
    """Settings that govern moving tagged files.

    Attributes:
        conflict_separator: Text placed between a file stem and its collision counter.
    """

    conflict_separator: str = Field(default="_", min_length=1)


class LoggingSettings(FolderSortBaseModel):
    """Runtime logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


class CLIOptions(FolderSortBaseModel):
    """CLI presentation defaults.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class FolderSortConfig(FolderSortBaseModel):
    """Top-level configuration for FolderSort."""

    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    tags: TagSettings = Field(default_factory=TagSettings)
    relocation: RelocationSettings = Field(default_factory=RelocationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "FolderSortBaseModel",
    "CatalogSettings",
    "TagSettings",
    "RelocationSettings",
    "LoggingSettings",
    "CLIOptions",
    "FolderSortConfig",
]
