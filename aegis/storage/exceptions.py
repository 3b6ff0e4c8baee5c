class StorageError(Exception):
    """Base exception for key-value substrate failures."""


class StorageQuotaError(StorageError):
    """Raised when a write would exceed the medium's capacity."""
