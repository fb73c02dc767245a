from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from labintake.admin.operations import AdminOperations
from labintake.config.settings import Settings
from labintake.config.temp_paths import ARCHIVE_STAGING_DIR, temp_dir
from labintake.database.connection import close_pool, init_pool
from labintake.database.repositories.document_repository import DocumentRepository
from labintake.database.repositories.hash_index_repository import HashIndexRepository
from labintake.database.repositories.upload_token_repository import UploadTokenRepository
from labintake.ingestion.archive import ArchiveExtractor
from labintake.ingestion.chunk_manager import ChunkManager
from labintake.ingestion.dedup import Deduplicator
from labintake.ingestion.ingestor import DocumentIngestor
from labintake.ingestion.service import IngestionService
from labintake.logging.logger import Log
from labintake.processor.processor import build_processor
from labintake.reaper.temp_reaper import TempReaper
from labintake.storage.factory import ObjectStorageFactory
from labintake.worker.dispatcher import Dispatcher
from labintake.worker.scheduler import PeriodicTask
from labintake.worker.task_runner import TaskRunner
from labintake.worker.worker import Worker


@dataclass
class Application:
    """Wired components; a web layer uses ``ingestion`` and ``admin``."""

    ingestion: IngestionService
    admin: AdminOperations
    worker: Worker
    dispatcher: Dispatcher
    archive_executor: ThreadPoolExecutor
    periodic_tasks: list[PeriodicTask]

    def start(self) -> None:
        self.dispatcher.start()
        for task in self.periodic_tasks:
            task.start()

    def stop(self) -> None:
        for task in self.periodic_tasks:
            task.stop()
        self.archive_executor.shutdown(wait=True)
        self.dispatcher.stop()


def build_application(settings: Settings) -> Application:
    """Build every component. The connection pool must already be initialized."""
    doc_repo = DocumentRepository()
    processor = build_processor(settings)
    task_runner = TaskRunner(processor, doc_repo, settings)
    dispatcher = Dispatcher(
        task_runner.run,
        concurrency=settings.worker_concurrency,
        queue_size=settings.worker_queue_size,
    )
    ingestor = DocumentIngestor(
        deduplicator=Deduplicator(HashIndexRepository(settings.stale_hash_claim_minutes)),
        storage=ObjectStorageFactory.create(settings),
        doc_repo=doc_repo,
        dispatcher=dispatcher,
    )
    archive_executor = ThreadPoolExecutor(
        max_workers=settings.archive_job_workers, thread_name_prefix="archive-job"
    )
    archive = ArchiveExtractor(
        ingestor,
        staging_dir=temp_dir(settings.temp_root, ARCHIVE_STAGING_DIR),
        executor=archive_executor,
        job_ttl_seconds=settings.archive_job_ttl_seconds,
    )
    chunks = ChunkManager(ttl_seconds=settings.chunk_session_ttl_seconds)
    reaper = TempReaper(
        Path(settings.temp_root), max_age_seconds=settings.temp_cleanup_max_age_seconds
    )
    periodic_tasks = [
        PeriodicTask("chunk-sweep", settings.chunk_sweep_interval_seconds, chunks.evict_stale),
        PeriodicTask(
            "archive-job-sweep", settings.archive_job_sweep_interval_seconds, archive.evict_stale
        ),
        PeriodicTask(
            "temp-reaper",
            settings.temp_cleanup_interval_seconds,
            reaper.run,
            run_immediately=True,
        ),
    ]
    return Application(
        ingestion=IngestionService(ingestor, archive, chunks, UploadTokenRepository(), settings),
        admin=AdminOperations(doc_repo, processor, dispatcher),
        worker=Worker(doc_repo, dispatcher, settings),
        dispatcher=dispatcher,
        archive_executor=archive_executor,
        periodic_tasks=periodic_tasks,
    )


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        app = build_application(settings)
        app.start()
        try:
            app.worker.run()
        finally:
            app.stop()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
