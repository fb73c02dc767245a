import time

from labintake.config.settings import Settings
from labintake.database.repositories.document_repository import DocumentRepository
from labintake.logging.logger import Log
from labintake.worker.dispatcher import Dispatcher


class Worker:
    """Poll loop: reset stale rows -> dispatch pending -> sleep."""

    def __init__(
        self,
        doc_repo: DocumentRepository,
        dispatcher: Dispatcher,
        settings: Settings,
    ) -> None:
        self._doc_repo = doc_repo
        self._dispatcher = dispatcher
        self._settings = settings

    def run(self, max_sweeps: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_sweeps is set, stop after that many sweeps (for testing).
        """
        Log.info("Worker started, sweeping for pending documents")
        sweeps = 0
        try:
            while True:
                self.sweep()
                sweeps += 1
                if max_sweeps is not None and sweeps >= max_sweeps:
                    break
                time.sleep(self._settings.worker_sweep_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def sweep(self) -> int:
        """One sweep. Returns the number of documents dispatched."""
        try:
            reset = self._doc_repo.reset_stale_processing(
                self._settings.stale_processing_minutes
            )
            if reset:
                Log.warning(f"Reset {reset} stale processing document(s) to pending")
            pending = self._doc_repo.find_pending(limit=self._settings.worker_sweep_batch_size)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return 0

        dispatched = 0
        for document in pending:
            if self._dispatcher.dispatch(document.id):
                dispatched += 1
        if dispatched:
            Log.info(f"Sweep dispatched {dispatched} pending document(s)")
        else:
            Log.debug("No pending documents to dispatch")
        return dispatched
