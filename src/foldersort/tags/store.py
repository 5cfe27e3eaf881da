"""Durable JSON storage for tag definitions."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from .errors import MalformedStoreError, PersistenceError
from .models import TagRecord, TagStoreDocument

DEFAULT_STORE_PATH = Path("~/.foldersort/tags.json")


class TagStore:
    """Read and atomically replace the tag store document."""

    def __init__(self, path: Path | str | None = None) -> None:
        """Initialize the store for the given file path.

        Args:
            path: Location of the JSON document; defaults to ``~/.foldersort/tags.json``.
        """
        self._path = Path(path or DEFAULT_STORE_PATH).expanduser()

    @property
    def path(self) -> Path:
        """Return the location of the store document."""
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> TagStoreDocument:
        """Read the store document from disk.

        Destinations that are not strings are read as unset.

        Returns:
            TagStoreDocument: Parsed tag definitions.

        Raises:
            PersistenceError: If the file cannot be read or is not valid JSON.
            MalformedStoreError: If the document has no ``tags`` object.
        """
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Invalid tag store data in {self._path}: {exc}") from exc
        except OSError as exc:
            raise PersistenceError(f"Unable to read tag store {self._path}: {exc}") from exc

        tags = data.get("tags") if isinstance(data, dict) else None
        if not isinstance(tags, dict):
            raise MalformedStoreError(f"Tag store {self._path} is missing a 'tags' object")

        records: dict[str, TagRecord] = {}
        for name, payload in tags.items():
            destination = payload.get("destination") if isinstance(payload, dict) else None
            records[name] = TagRecord(
                destination=destination if isinstance(destination, str) else ""
            )
        return TagStoreDocument(tags=records)

    def save(self, document: TagStoreDocument) -> None:
        """Persist the document by writing a sibling temp file and renaming it.

        The live file is never written in place.

        Args:
            document: Tag definitions to store.

        Raises:
            PersistenceError: If the temp file cannot be written or renamed.
        """
        payload = json.dumps(document.model_dump(mode="json"), indent=4)
        temp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, self._path)
        except OSError as exc:
            if temp_name is not None and os.path.exists(temp_name):
                os.unlink(temp_name)
            raise PersistenceError(f"Unable to write tag store {self._path}: {exc}") from exc


__all__ = ["DEFAULT_STORE_PATH", "TagStore"]
