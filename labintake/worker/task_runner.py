from labintake.config.settings import Settings
from labintake.database.models import STATUS_FAILED
from labintake.database.repositories.document_repository import DocumentRepository
from labintake.logging.logger import Log
from labintake.processor.processor import DocumentProcessor
from labintake.worker.dispatcher import DispatchTask


class TaskRunner:
    """Run one processing attempt, catch exceptions, and apply retry logic."""

    def __init__(
        self,
        processor: DocumentProcessor,
        doc_repo: DocumentRepository,
        settings: Settings,
    ) -> None:
        self._processor = processor
        self._doc_repo = doc_repo
        self._settings = settings

    def run(self, task: DispatchTask) -> None:
        """Execute a single task with error handling."""
        Log.info(f"Processing document #{task.document_id}")
        try:
            outcome = self._processor.process(task.document_id, claimed=task.claimed)
            Log.info(f"Document #{task.document_id} finished: {outcome.status}")
        except Exception as exc:
            self._handle_failure(task.document_id, exc)

    def _handle_failure(self, document_id: int, exc: Exception) -> None:
        """Count the attempt; mark failed at the limit, otherwise back to pending."""
        Log.error(f"Document #{document_id} failed unexpectedly: {exc}")
        try:
            document = self._doc_repo.find_by_id(document_id)
            attempts = document.retry_count + 1
            if attempts >= self._settings.max_processing_attempts:
                self._doc_repo.mark_terminal(document_id, STATUS_FAILED, error=str(exc))
                Log.error(
                    f"Document #{document_id} permanently failed after {attempts} attempts"
                )
            elif self._doc_repo.release_for_retry(document_id, str(exc)):
                Log.warning(f"Document #{document_id} will be retried (attempt {attempts})")
        except Exception as db_exc:
            Log.error(f"Could not record failure for document #{document_id}: {db_exc}")
