class StorageError(Exception):
    """Raised when an object storage operation fails."""
