"""Tag lifecycle, file associations, and persistence."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Mapping

from foldersort.catalog import Catalog, Entry

from .errors import DestinationError, MalformedStoreError, PersistenceError, TagError
from .models import Tag, TagRecord, TagStoreDocument, TagSummary
from .store import DEFAULT_STORE_PATH, TagStore

LOGGER = logging.getLogger(__name__)


def _identity(name: str) -> str:
    return name


NORMALIZERS: Mapping[str, Callable[[str], str]] = {
    "none": _identity,
    "lower": str.lower,
}


class TagRegistry:
    """Own the tags for one catalog and keep them in sync with the tag store.

    Tag names and destinations are persisted after every successful mutation;
    a failed write restores the in-memory state it was about to replace.
    Membership lives only in memory and is rebuilt each session.
    """

    def __init__(
        self,
        catalog: Catalog,
        store: TagStore | Path | str | None = None,
        *,
        normalizer: Callable[[str], str] | None = None,
    ) -> None:
        """Bind the registry to a catalog and load persisted tag definitions.

        A missing store is created empty. A store without a ``tags`` object is
        reinitialized empty.

        Args:
            catalog: Catalog used to resolve entry paths and ids.
            store: Tag store instance or path to the store document.
            normalizer: Optional callable applied to every tag name.

        Raises:
            PersistenceError: If the store cannot be read or initialized.
        """
        self._catalog = catalog
        self._store = store if isinstance(store, TagStore) else TagStore(store)
        self._normalize = normalizer or _identity
        self._tags: dict[str, Tag] = {}
        self._load()

    @property
    def store(self) -> TagStore:
        """Return the backing tag store."""
        return self._store

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._normalize(name) in self._tags

    def tag_names(self) -> list[str]:
        return sorted(self._tags)

    # Tag lifecycle ------------------------------------------------------

    def create_tag(self, name: str) -> bool:
        """Create an empty tag with no destination.

        Args:
            name: Tag name.

        Returns:
            bool: False if the name is empty, already exists, or cannot be persisted.
        """
        tag_name = self._normalize(name)
        if not tag_name or tag_name in self._tags:
            return False

        self._tags[tag_name] = Tag(name=tag_name)
        if not self._commit():
            del self._tags[tag_name]
            return False
        return True

    def delete_tag(self, name: str) -> bool:
        """Remove a tag and its memberships. The destination directory is left alone."""
        tag_name = self._normalize(name)
        removed = self._tags.pop(tag_name, None)
        if removed is None:
            return False

        if not self._commit():
            self._tags[tag_name] = removed
            return False
        return True

    def set_destination(self, name: str, path: Path | str) -> bool:
        """Validate ``path`` and record it as the tag's destination.

        The path is made absolute and created with its parents when missing.

        Args:
            name: Existing tag name.
            path: Destination directory.

        Returns:
            bool: False if the tag is unknown, the path is unusable, or the
                store cannot be written.
        """
        tag = self._tags.get(self._normalize(name))
        if tag is None:
            return False

        try:
            destination = self._validate_destination(path)
        except DestinationError as exc:
            LOGGER.warning("Rejected destination for tag '%s': %s", tag.name, exc)
            return False

        previous = tag.destination
        tag.destination = str(destination)
        if not self._commit():
            tag.destination = previous
            return False
        return True

    def get_destination(self, name: str) -> str | None:
        """Return the tag's destination, ``""`` when unset, or None for unknown tags."""
        tag = self._tags.get(self._normalize(name))
        return None if tag is None else tag.destination

    # Assignments --------------------------------------------------------

    def assign_tag(self, path: Path | str, tag_name: str) -> bool:
        """Associate the catalog entry at ``path`` with a tag.

        Returns:
            bool: False if the path is not in the catalog or the tag cannot be created.
        """
        entry = self._catalog.find_by_path(path)
        if entry is None:
            LOGGER.debug("Cannot assign tag '%s': %s is not indexed", tag_name, path)
            return False
        return self.assign_tag_by_id(entry.id, tag_name)

    def assign_tag_by_id(self, entry_id: int, tag_name: str) -> bool:
        """Associate an entry id with a tag, creating the tag when missing.

        Assigning an id twice is a no-op that still reports success.

        Args:
            entry_id: Catalog entry id.
            tag_name: Tag name; created with no destination if unknown.

        Returns:
            bool: False if the id does not resolve or the new tag cannot be persisted.
        """
        if self._catalog.find_by_id(entry_id) is None:
            LOGGER.debug("Cannot assign tag '%s': unknown entry id %s", tag_name, entry_id)
            return False

        name = self._normalize(tag_name)
        tag = self._tags.get(name)
        if tag is None:
            if not name:
                return False
            tag = Tag(name=name)
            self._tags[name] = tag
            if not self._commit():
                del self._tags[name]
                return False

        tag.members.add(entry_id)
        return True

    def remove_tag(self, path: Path | str, tag_name: str | None = None) -> bool:
        """Drop memberships of the catalog entry at ``path``.

        See :meth:`remove_tag_by_id`.
        """
        entry = self._catalog.find_by_path(path)
        if entry is None:
            return False
        return self.remove_tag_by_id(entry.id, tag_name)

    def remove_tag_by_id(self, entry_id: int, tag_name: str | None = None) -> bool:
        """Drop memberships of an entry id.

        Args:
            entry_id: Catalog entry id.
            tag_name: Only remove from this tag; when None, remove from every tag.

        Returns:
            bool: Whether any membership was removed.
        """
        if tag_name is not None:
            tag = self._tags.get(self._normalize(tag_name))
            if tag is None or entry_id not in tag.members:
                return False
            tag.members.discard(entry_id)
            return True

        removed = False
        for tag in self._tags.values():
            if entry_id in tag.members:
                tag.members.discard(entry_id)
                removed = True
        return removed

    # Queries ------------------------------------------------------------

    def files_for_tag(self, tag_name: str) -> list[Entry]:
        """Return the catalog entries tagged with ``tag_name`` ordered by id.

        Ids that no longer resolve in the catalog are skipped.
        """
        tag = self._tags.get(self._normalize(tag_name))
        if tag is None:
            return []

        entries: list[Entry] = []
        for entry_id in sorted(tag.members):
            entry = self._catalog.find_by_id(entry_id)
            if entry is not None:
                entries.append(entry)
        return entries

    def all_tags(self) -> dict[str, frozenset[int]]:
        """Return a fresh mapping of tag name to member ids."""
        return {name: frozenset(tag.members) for name, tag in self._tags.items()}

    def summaries(self) -> list[TagSummary]:
        return [
            TagSummary(
                name=tag.name,
                destination=tag.destination,
                member_count=len(tag.members),
            )
            for tag in sorted(self._tags.values(), key=lambda item: item.name)
        ]

    # Internal helpers -------------------------------------------------

    def _load(self) -> None:
        if not self._store.exists():
            self._store.save(TagStoreDocument())
            return

        try:
            document = self._store.load()
        except MalformedStoreError as exc:
            LOGGER.warning("%s; reinitializing it empty", exc)
            self._store.save(TagStoreDocument())
            return

        for name, record in document.tags.items():
            tag_name = self._normalize(name)
            self._tags[tag_name] = Tag(name=tag_name, destination=record.destination)

    def _commit(self) -> bool:
        document = TagStoreDocument(
            tags={name: TagRecord(destination=tag.destination) for name, tag in self._tags.items()}
        )
        try:
            self._store.save(document)
        except PersistenceError as exc:
            LOGGER.warning("Rolling back tag change: %s", exc)
            return False
        return True

    def _validate_destination(self, path: Path | str) -> Path:
        raw = os.fspath(path)
        if not raw.strip():
            raise DestinationError("Destination path must not be empty")

        destination = Path(os.path.abspath(os.path.expanduser(raw)))
        if destination.exists():
            if not destination.is_dir():
                raise DestinationError(f"{destination} exists but is not a directory")
            return destination

        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DestinationError(f"Unable to create {destination}: {exc}") from exc
        return destination


__all__ = [
    "DEFAULT_STORE_PATH",
    "NORMALIZERS",
    "DestinationError",
    "MalformedStoreError",
    "PersistenceError",
    "Tag",
    "TagError",
    "TagRecord",
    "TagRegistry",
    "TagStore",
    "TagStoreDocument",
    "TagSummary",
]
