"""Relocation errors."""


class RelocationError(Exception):
    """Base exception for relocation operations."""


class NoDestinationError(RelocationError):
    """Raised when a tag has no destination directory assigned."""
