from abc import ABC, abstractmethod

from labintake.extraction.models import ExtractionResult


class BaseExtractor(ABC):
    """Contract for a configured extraction provider."""

    @abstractmethod
    def extract(self, file_url: str, mime_type: str) -> ExtractionResult:
        """Extract patient and test data from a stored document.

        Raises:
            ExtractionError: on any failure.
        """
