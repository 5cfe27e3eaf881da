"""Catalog indexing errors."""


class CatalogError(Exception):
    """Base exception for catalog operations."""


class ScanError(CatalogError):
    """Raised when a full scan cannot read one of the walked items."""


class RefreshError(CatalogError):
    """Raised when an incremental refresh cannot read one of the walked items."""
