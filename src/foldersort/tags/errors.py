"""Tag registry errors."""


class TagError(Exception):
    """Base exception for tag registry operations."""


class PersistenceError(TagError):
    """Raised when the tag store cannot be read or written."""


class MalformedStoreError(PersistenceError):
    """Raised when the tag store parses but lacks a ``tags`` mapping."""


class DestinationError(TagError):
    """Raised when a tag destination is not a usable directory."""
