from labintake.config.settings import Settings
from labintake.database.models import (
    PROVIDER_UNKNOWN,
    STATUS_COMPLETED,
    STATUS_DISCARDED,
    STATUS_FAILED,
    STATUS_PROCESSING,
    DocumentRecord,
)
from labintake.database.repositories.document_repository import DocumentRepository
from labintake.extraction.chain import FallbackChain
from labintake.extraction.exceptions import ExtractionFailedError
from labintake.extraction.factory import ExtractorFactory
from labintake.extraction.prefilter import check_file_name
from labintake.logging.logger import Log
from labintake.processor.models import (
    OUTCOME_COMPLETED,
    OUTCOME_DISCARDED,
    OUTCOME_DUPLICATE,
    OUTCOME_FAILED,
    OUTCOME_SKIPPED,
    ProcessOutcome,
)

NO_TEST_RESULTS_REASON = "Document does not contain valid virology test results"


class DocumentProcessor:
    """Runs one extraction attempt for a document and records the outcome.

    Pipeline: claim -> duplicate check -> filename pre-filter -> fallback chain
    -> terminal write. The terminal write only applies while the row is still
    processing, so a cancel that lands mid-attempt wins.
    """

    def __init__(
        self,
        doc_repo: DocumentRepository,
        chain: FallbackChain,
        prefilter_enabled: bool = True,
    ) -> None:
        self._doc_repo = doc_repo
        self._chain = chain
        self._prefilter_enabled = prefilter_enabled

    def process(self, document_id: int, claimed: bool = False) -> ProcessOutcome:
        """Process a document.

        ``claimed`` means the caller already moved the row to processing.
        Returns a ``skipped`` outcome when the row is not in a processable
        state or a concurrent cancel superseded the result.
        """
        document = self._acquire(document_id, claimed)
        if document is None:
            return ProcessOutcome(document_id, OUTCOME_SKIPPED)

        # Step 1: Same content already extracted
        duplicate_of = self._doc_repo.find_completed_duplicate(document.content_hash, document.id)
        if duplicate_of is not None:
            reason = f"Duplicate of document #{duplicate_of}"
            Log.info(f"Document #{document.id}: {reason}, skipping extraction")
            return self._finish(document, STATUS_DISCARDED, OUTCOME_DUPLICATE, error=reason)

        # Step 2: Filename pre-filter
        if self._prefilter_enabled:
            verdict = check_file_name(document.file_name)
            if not verdict.likely_report:
                Log.info(f"Document #{document.id} pre-filtered: {verdict.reason}")
                return self._finish(
                    document, STATUS_DISCARDED, OUTCOME_DISCARDED, error=verdict.reason
                )

        # Step 3: Extraction with provider fallback
        try:
            chain_result = self._chain.extract(document.id, document.file_url, document.mime_type)
        except ExtractionFailedError as exc:
            return self._finish(
                document, STATUS_FAILED, OUTCOME_FAILED, error=str(exc), provider=PROVIDER_UNKNOWN
            )

        # Step 4: Decide on the result
        result = chain_result.result
        if not result.is_recognizable:
            return self._finish(
                document,
                STATUS_DISCARDED,
                OUTCOME_DISCARDED,
                error=NO_TEST_RESULTS_REASON,
                provider=chain_result.provider,
                extracted_data=result.to_dict(),
            )
        return self._finish(
            document,
            STATUS_COMPLETED,
            OUTCOME_COMPLETED,
            provider=chain_result.provider,
            extracted_data=result.to_dict(),
        )

    def _acquire(self, document_id: int, claimed: bool) -> DocumentRecord | None:
        if claimed:
            document = self._doc_repo.find_by_id(document_id)
            if document.processing_status != STATUS_PROCESSING:
                Log.info(
                    f"Document #{document_id} is {document.processing_status}, "
                    "no longer processing; skipping"
                )
                return None
            return document
        document = self._doc_repo.claim_for_processing(document_id)
        if document is None:
            Log.info(f"Document #{document_id} is not pending, skipping")
        return document

    def _finish(
        self,
        document: DocumentRecord,
        status: str,
        outcome_status: str,
        error: str | None = None,
        provider: str | None = None,
        extracted_data: dict | None = None,
    ) -> ProcessOutcome:
        applied = self._doc_repo.mark_terminal(
            document.id,
            status,
            error=error,
            provider=provider,
            extracted_data=extracted_data,
        )
        if not applied:
            Log.warning(
                f"Document #{document.id} left processing during extraction "
                f"(cancelled?); {status} result superseded"
            )
            return ProcessOutcome(document.id, OUTCOME_SKIPPED, provider, error)
        Log.info(f"Document #{document.id} -> {status}")
        return ProcessOutcome(document.id, outcome_status, provider, error)


def build_processor(settings: Settings) -> DocumentProcessor:
    """Build a DocumentProcessor with the configured extraction chain."""
    return DocumentProcessor(
        doc_repo=DocumentRepository(),
        chain=ExtractorFactory.create_chain(settings),
        prefilter_enabled=settings.prefilter_enabled,
    )
