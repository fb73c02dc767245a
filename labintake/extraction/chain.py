from dataclasses import dataclass

from labintake.database.models import PROVIDER_PRIMARY, PROVIDER_SECONDARY
from labintake.extraction.base import BaseExtractor
from labintake.extraction.exceptions import ExtractionFailedError
from labintake.extraction.models import ExtractionResult
from labintake.logging.logger import Log


@dataclass(frozen=True)
class ChainResult:
    result: ExtractionResult
    provider: str


class FallbackChain:
    """Primary provider first; the secondary gets one attempt if it fails."""

    def __init__(self, primary: BaseExtractor, secondary: BaseExtractor | None = None) -> None:
        self._primary = primary
        self._secondary = secondary

    def extract(self, document_id: int, file_url: str, mime_type: str) -> ChainResult:
        """Run the chain for one document.

        Raises:
            ExtractionFailedError: if every configured provider failed.
        """
        try:
            return ChainResult(self._primary.extract(file_url, mime_type), PROVIDER_PRIMARY)
        except Exception as exc:
            primary_error = str(exc) or type(exc).__name__
            Log.warning(f"Primary provider failed for document #{document_id}: {primary_error}")

        if self._secondary is None:
            raise ExtractionFailedError(primary_error)

        try:
            result = self._secondary.extract(file_url, mime_type)
        except Exception as exc:
            secondary_error = str(exc) or type(exc).__name__
            Log.error(
                f"Secondary provider also failed for document #{document_id}: {secondary_error}"
            )
            raise ExtractionFailedError(primary_error, secondary_error) from exc

        Log.info(f"Document #{document_id} extracted by secondary provider")
        return ChainResult(result, PROVIDER_SECONDARY)
