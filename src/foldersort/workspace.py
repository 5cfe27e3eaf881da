"""Collaborator-facing surface tying the catalog, tags, and relocation together."""

from __future__ import annotations

import fnmatch
import threading
from pathlib import Path

from foldersort.catalog import Catalog, Entry, EntryKind, RefreshCounts, ScanMode
from foldersort.config import FolderSortConfig
from foldersort.relocation import RelocationReport, RelocationSummary, Relocator
from foldersort.tags import NORMALIZERS, TagRegistry, TagStore, TagSummary


class Workspace:
    """Serialize access to one catalog, its tag registry, and a relocator.

    Every public method holds a single re-entrant lock, so a workspace may be
    shared between a UI thread and a worker thread.
    """

    def __init__(
        self,
        catalog: Catalog,
        registry: TagRegistry,
        relocator: Relocator,
        *,
        default_mode: ScanMode = ScanMode.TOP_LEVEL,
    ) -> None:
        self._catalog = catalog
        self._registry = registry
        self._relocator = relocator
        self._default_mode = default_mode
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        config: FolderSortConfig,
        *,
        store_path: Path | str | None = None,
    ) -> "Workspace":
        """Build a workspace from configuration.

        Args:
            config: Effective FolderSort configuration.
            store_path: Optional tag store location overriding ``tags.store_path``.

        Returns:
            Workspace: Ready-to-use workspace with an empty catalog.

        Raises:
            PersistenceError: If the tag store cannot be loaded or created.
        """
        catalog = Catalog(include_hidden=config.catalog.include_hidden)
        registry = TagRegistry(
            catalog,
            TagStore(store_path or config.tags.store_path),
            normalizer=NORMALIZERS[config.tags.normalization],
        )
        relocator = Relocator(registry, conflict_separator=config.relocation.conflict_separator)
        mode = ScanMode.RECURSIVE if config.catalog.recursive else ScanMode.TOP_LEVEL
        return cls(catalog, registry, relocator, default_mode=mode)

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def registry(self) -> TagRegistry:
        return self._registry

    # Catalog --------------------------------------------------------------

    def scan(self, root: Path | str, mode: ScanMode | None = None) -> int:
        with self._lock:
            return self._catalog.scan(root, mode or self._default_mode)

    def refresh(self) -> RefreshCounts:
        with self._lock:
            return self._catalog.refresh()

    def entries(self) -> list[Entry]:
        with self._lock:
            return self._catalog.get_all()

    # Tags -----------------------------------------------------------------

    def tag_summaries(self) -> list[TagSummary]:
        with self._lock:
            return self._registry.summaries()

    def create_tag(self, name: str) -> bool:
        with self._lock:
            return self._registry.create_tag(name)

    def delete_tag(self, name: str) -> bool:
        with self._lock:
            return self._registry.delete_tag(name)

    def set_destination(self, name: str, path: Path | str) -> bool:
        with self._lock:
            return self._registry.set_destination(name, path)

    def assign_tag(self, path: Path | str, tag_name: str) -> bool:
        with self._lock:
            return self._registry.assign_tag(path, tag_name)

    def assign_tag_by_id(self, entry_id: int, tag_name: str) -> bool:
        with self._lock:
            return self._registry.assign_tag_by_id(entry_id, tag_name)

    def remove_tag(self, path: Path | str, tag_name: str | None = None) -> bool:
        with self._lock:
            return self._registry.remove_tag(path, tag_name)

    def assign_matching(
        self,
        pattern: str,
        tag_name: str,
        *,
        include_directories: bool = False,
    ) -> int:
        """Tag every indexed entry whose file name matches a shell-style pattern.

        Args:
            pattern: Glob such as ``*.pdf`` matched against the file name.
            tag_name: Tag to assign; created when missing.
            include_directories: Whether directory entries may match.

        Returns:
            int: Number of entries assigned.
        """
        with self._lock:
            assigned = 0
            for entry in self._catalog.get_all():
                if entry.kind is EntryKind.DIRECTORY and not include_directories:
                    continue
                if not fnmatch.fnmatch(entry.path.name, pattern):
                    continue
                if self._registry.assign_tag_by_id(entry.id, tag_name):
                    assigned += 1
            return assigned

    # Relocation -----------------------------------------------------------

    def move_by_tag(self, tag_name: str) -> RelocationReport:
        with self._lock:
            return self._relocator.move_by_tag(tag_name)

    def move_all(self) -> RelocationSummary:
        with self._lock:
            return self._relocator.move_all()


__all__ = ["Workspace"]
