"""In-memory index of filesystem entries for one directory tree."""

from __future__ import annotations

import logging
import os
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from .errors import CatalogError, RefreshError, ScanError
from .models import Entry, EntryKind, RefreshCounts, ScanMode

LOGGER = logging.getLogger(__name__)


def path_key(path: Path | str) -> str:
    """Return the lookup key used by the path index.

    Args:
        path: Absolute or relative filesystem path.

    Returns:
        str: Normalized absolute path string.
    """
    return os.path.normcase(os.path.abspath(os.path.expanduser(os.fspath(path))))


class Catalog:
    """Index the entries of a directory tree and keep them addressable by id.

    Ids are assigned sequentially at first discovery and are never reused for
    the lifetime of the instance, even when the underlying path disappears.
    """

    def __init__(self, *, include_hidden: bool = True) -> None:
        """Initialize an empty catalog.

        Args:
            include_hidden: Whether dot-prefixed items are indexed.
        """
        self._include_hidden = include_hidden
        self._entries: list[Entry] = []
        self._path_index: dict[str, int] = {}
        self._next_id = 0
        self._root: Path | None = None
        self._mode: ScanMode | None = None

    @property
    def root(self) -> Path | None:
        """Return the root of the last successful scan, if any."""
        return self._root

    @property
    def mode(self) -> ScanMode | None:
        """Return the walk mode of the last successful scan, if any."""
        return self._mode

    def __len__(self) -> int:
        return len(self._entries)

    def scan(self, root: Path | str, mode: ScanMode = ScanMode.TOP_LEVEL) -> int:
        """Replace the catalog contents with a fresh walk of ``root``.

        The walk is built into a separate index and swapped in only when every
        item was read, so a failing scan leaves the previous state untouched.

        Args:
            root: Directory to index.
            mode: Walk only the top level or the whole tree.

        Returns:
            int: Number of entries indexed.

        Raises:
            ScanError: If the root or any walked item cannot be read.
        """
        mode = ScanMode(mode)
        root_path = Path(os.path.abspath(os.path.expanduser(os.fspath(root))))
        if not root_path.is_dir():
            raise ScanError(f"Scan root is not a directory: {root_path}")

        entries: list[Entry] = []
        index: dict[str, int] = {}
        try:
            for path in self._walk(root_path, recursive=mode is ScanMode.RECURSIVE):
                entry = self._read_entry(path, len(entries))
                index[path_key(entry.path)] = len(entries)
                entries.append(entry)
        except OSError as exc:
            raise ScanError(f"Failed to index {exc.filename or root_path}: {exc}") from exc

        self._entries = entries
        self._path_index = index
        self._next_id = len(entries)
        self._root = root_path
        self._mode = mode
        LOGGER.debug("Scanned %s (%s): %d entries", root_path, mode.value, len(entries))
        return len(entries)

    def refresh(self) -> RefreshCounts:
        """Re-walk the last scanned root and top up the catalog.

        Known paths whose modification time changed get a new entry that keeps
        the old id; new paths receive the next id. Vanished paths are
        kept. Entries processed before a failing item stay mutated.

        Returns:
            RefreshCounts: Number of entries added and updated.

        Raises:
            RefreshError: If nothing was scanned yet or an item cannot be read.
        """
        if self._root is None or self._mode is None:
            raise RefreshError("No directory has been scanned yet.")

        added = 0
        updated = 0
        try:
            for path in self._walk(self._root, recursive=self._mode is ScanMode.RECURSIVE):
                key = path_key(path)
                position = self._path_index.get(key)
                if position is None:
                    entry = self._read_entry(path, self._next_id)
                    self._next_id += 1
                    self._path_index[key] = len(self._entries)
                    self._entries.append(entry)
                    added += 1
                    continue

                stored = self._entries[position]
                current = self._read_entry(path, stored.id)
                if current.modified_at != stored.modified_at:
                    self._entries[position] = current
                    updated += 1
        except OSError as exc:
            raise RefreshError(f"Failed to refresh {exc.filename or self._root}: {exc}") from exc

        LOGGER.debug("Refreshed %s: %d added, %d updated", self._root, added, updated)
        return RefreshCounts(added=added, updated=updated)

    def get_all(self) -> list[Entry]:
        """Return a snapshot of every entry in discovery order."""
        return list(self._entries)

    def find_by_id(self, entry_id: int) -> Entry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def find_by_name(self, name: str) -> Entry | None:
        """Return the first entry whose extension-less name equals ``name``."""
        for entry in self._entries:
            if entry.name == name:
                return entry
        return None

    def find_by_path(self, path: Path | str) -> Entry | None:
        position = self._path_index.get(path_key(path))
        if position is None:
            return None
        return self._entries[position]

    # Internal helpers -------------------------------------------------

    def _walk(self, directory: Path, *, recursive: bool) -> Iterator[Path]:
        with os.scandir(directory) as iterator:
            children = sorted(iterator, key=lambda item: item.name)
        for child in children:
            if not self._include_hidden and child.name.startswith("."):
                continue
            path = Path(child.path)
            yield path
            if recursive and child.is_dir(follow_symlinks=False):
                yield from self._walk(path, recursive=True)

    def _read_entry(self, path: Path, entry_id: int) -> Entry:
        info = path.lstat()
        if stat.S_ISLNK(info.st_mode):
            kind = EntryKind.SYMBOLIC_LINK
            info = path.stat()
        elif stat.S_ISDIR(info.st_mode):
            kind = EntryKind.DIRECTORY
        elif stat.S_ISREG(info.st_mode):
            kind = EntryKind.REGULAR_FILE
        else:
            kind = EntryKind.OTHER

        return Entry(
            id=entry_id,
            name=path.stem,
            path=path,
            kind=kind,
            modified_at=datetime.fromtimestamp(info.st_mtime, tz=timezone.utc),
        )


__all__ = [
    "Catalog",
    "CatalogError",
    "Entry",
    "EntryKind",
    "RefreshCounts",
    "RefreshError",
    "ScanError",
    "ScanMode",
    "path_key",
]
