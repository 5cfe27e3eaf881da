"""Tag data models and the durable store document shape."""

from __future__ import annotations

from typing import Dict, Set

from pydantic import BaseModel, Field


class Tag(BaseModel):
    """Named category with an optional destination and runtime members.

    Attributes:
        name: Unique tag name.
        destination: Absolute destination directory; empty when unset.
        members: Catalog entry ids associated with the tag.
    """

    name: str
    destination: str = ""
    members: Set[int] = Field(default_factory=set)


class TagRecord(BaseModel):
    """Persisted form of a tag. Membership is never stored."""

    destination: str = ""


class TagStoreDocument(BaseModel):
    """Top-level document written to the tag store."""

    tags: Dict[str, TagRecord] = Field(default_factory=dict)


class TagSummary(BaseModel):
    """Read-only projection of a tag for display."""

    name: str
    destination: str
    member_count: int


__all__ = ["Tag", "TagRecord", "TagStoreDocument", "TagSummary"]
