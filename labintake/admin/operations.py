from collections.abc import Sequence
from dataclasses import dataclass, field

from labintake.database.models import (
    CANCELLABLE_STATUSES,
    REPROCESSABLE_STATUSES,
    DocumentRecord,
)
from labintake.database.repositories.document_repository import DocumentRepository
from labintake.ingestion.exceptions import CannotCancelError, CannotReprocessError, NotFoundError
from labintake.logging.logger import Log
from labintake.processor.models import (
    OUTCOME_COMPLETED,
    OUTCOME_DISCARDED,
    OUTCOME_DUPLICATE,
    OUTCOME_FAILED,
    OUTCOME_SKIPPED,
)
from labintake.processor.processor import DocumentProcessor
from labintake.worker.dispatcher import Dispatcher


@dataclass(frozen=True)
class CancelBatchResult:
    cancelled: int
    skipped: int


@dataclass
class BatchReprocessResult:
    document_ids: list[int] = field(default_factory=list)

    @property
    def queued(self) -> int:
        return len(self.document_ids)


@dataclass
class ProcessAllSummary:
    total_processed: int = 0
    completed: int = 0
    failed: int = 0
    discarded: int = 0
    duplicate: int = 0


class AdminOperations:
    """Manual lifecycle operations: reprocess, cancel, synchronous drain, stats."""

    def __init__(
        self,
        doc_repo: DocumentRepository,
        processor: DocumentProcessor,
        dispatcher: Dispatcher,
    ) -> None:
        self._doc_repo = doc_repo
        self._processor = processor
        self._dispatcher = dispatcher

    def reprocess(self, document_id: int) -> DocumentRecord:
        """Move a failed or discarded document back to processing and queue it.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            CannotReprocessError: if it is not failed or discarded.
        """
        document = self._doc_repo.find_by_id(document_id)
        if document.processing_status not in REPROCESSABLE_STATUSES:
            raise CannotReprocessError(
                f"Cannot reprocess a document that is {document.processing_status}"
            )
        claimed = self._doc_repo.claim_for_processing(
            document_id, from_statuses=REPROCESSABLE_STATUSES
        )
        if claimed is None:
            raise CannotReprocessError(f"Document {document_id} changed state, not reprocessed")
        self._dispatcher.dispatch(document_id, claimed=True)
        Log.info(f"Document #{document_id} queued for reprocessing")
        return claimed

    def batch_reprocess(
        self, statuses: Sequence[str], limit: int = 50
    ) -> BatchReprocessResult:
        """Requeue up to ``limit`` documents in the given terminal statuses."""
        invalid = [s for s in statuses if s not in REPROCESSABLE_STATUSES]
        if invalid:
            raise ValueError(
                f"Only {list(REPROCESSABLE_STATUSES)} documents can be reprocessed, got {invalid}"
            )
        result = BatchReprocessResult()
        for document in self._doc_repo.find_by_status(statuses, limit):
            claimed = self._doc_repo.claim_for_processing(
                document.id, from_statuses=REPROCESSABLE_STATUSES
            )
            if claimed is None:
                continue
            self._dispatcher.dispatch(document.id, claimed=True)
            result.document_ids.append(document.id)
        Log.info(f"Batch reprocess queued {result.queued} document(s)")
        return result

    def cancel(self, document_id: int) -> None:
        """Discard a pending or processing document.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            CannotCancelError: if it already reached a terminal state.
        """
        document = self._doc_repo.find_by_id(document_id)
        if document.processing_status not in CANCELLABLE_STATUSES:
            raise CannotCancelError(
                f"Cannot cancel a document that is already {document.processing_status}"
            )
        if not self._doc_repo.cancel(document_id):
            current = self._doc_repo.find_by_id(document_id)
            raise CannotCancelError(
                f"Cannot cancel a document that is already {current.processing_status}"
            )
        Log.info(f"Document #{document_id} cancelled")

    def cancel_batch(self, document_ids: Sequence[int]) -> CancelBatchResult:
        cancelled = skipped = 0
        for document_id in document_ids:
            try:
                self.cancel(document_id)
                cancelled += 1
            except (NotFoundError, CannotCancelError) as exc:
                Log.debug(f"Skipping cancel of document #{document_id}: {exc}")
                skipped += 1
        Log.info(f"Cancelled {cancelled} document(s), skipped {skipped}")
        return CancelBatchResult(cancelled=cancelled, skipped=skipped)

    def process_all_pending(self) -> ProcessAllSummary:
        """Process every pending document on the calling thread."""
        summary = ProcessAllSummary()
        pending = self._doc_repo.find_pending()
        Log.info(f"Processing {len(pending)} pending document(s) synchronously")
        for document in pending:
            try:
                outcome = self._processor.process(document.id)
            except Exception as exc:
                Log.exception(f"Document #{document.id} failed unexpectedly: {exc}")
                summary.total_processed += 1
                summary.failed += 1
                continue
            if outcome.status == OUTCOME_SKIPPED:
                continue
            summary.total_processed += 1
            if outcome.status == OUTCOME_COMPLETED:
                summary.completed += 1
            elif outcome.status == OUTCOME_FAILED:
                summary.failed += 1
            elif outcome.status == OUTCOME_DUPLICATE:
                summary.duplicate += 1
            elif outcome.status == OUTCOME_DISCARDED:
                summary.discarded += 1
        Log.info(
            f"Processed {summary.total_processed}: {summary.completed} completed, "
            f"{summary.failed} failed, {summary.discarded} discarded, "
            f"{summary.duplicate} duplicates"
        )
        return summary

    def document_stats(self) -> dict[str, int]:
        return self._doc_repo.count_by_status()
