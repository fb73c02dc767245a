from abc import ABC, abstractmethod


class BaseObjectStorage(ABC):
    """Contract for all object storage adapters."""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store bytes under a key.

        Args:
            key: Relative object key, e.g. ``lab-reports/10/abc-report.pdf``.
            data: Raw file content.
            content_type: MIME type recorded with the object.

        Returns:
            URL the extraction providers can fetch the object from.

        Raises:
            StorageError: if the write fails.
        """

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove an object. Returns False instead of raising on failure."""


def normalize_key(key: str) -> str:
    """Strip leading slashes so keys are always relative."""
    return key.lstrip("/")
