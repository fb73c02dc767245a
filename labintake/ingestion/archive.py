"""ZIP archive ingestion.

Small archives are processed inline (``extract_sync``). Large archives are
staged to disk and processed entry by entry on an executor (``submit``),
with progress exposed through an in-memory ArchiveJob.
"""

import io
import secrets
import time
import zipfile
from collections.abc import Callable
from concurrent.futures import Executor
from pathlib import Path

from labintake.ingestion.exceptions import InvalidArchiveError, NoValidEntriesError, NotFoundError
from labintake.ingestion.file_types import base_name, is_hidden_or_resource_fork, is_supported
from labintake.ingestion.ingestor import DocumentIngestor
from labintake.ingestion.models import (
    JOB_COMPLETE,
    JOB_ERROR,
    JOB_PROCESSING,
    ArchiveJob,
    BatchResult,
    IngestOutcome,
)
from labintake.ingestion.ttl_store import TtlStore
from labintake.logging.logger import Log

DEFAULT_JOB_TTL_SECONDS = 2 * 60 * 60
PROGRESS_LOG_EVERY = 50


def valid_entries(archive: zipfile.ZipFile) -> list[zipfile.ZipInfo]:
    """Entries worth ingesting, in enumeration order."""
    return [
        info
        for info in archive.infolist()
        if not info.is_dir()
        and not is_hidden_or_resource_fork(info.filename)
        and is_supported(info.filename)
    ]


def _open(source: bytes | Path) -> zipfile.ZipFile:
    try:
        if isinstance(source, bytes):
            return zipfile.ZipFile(io.BytesIO(source))
        return zipfile.ZipFile(source)
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
        raise InvalidArchiveError(f"Invalid ZIP file: {exc}") from exc


class ArchiveExtractor:
    """Walks ZIP archives and feeds every valid entry to the ingestor."""

    def __init__(
        self,
        ingestor: DocumentIngestor,
        staging_dir: Path,
        executor: Executor,
        job_ttl_seconds: float = DEFAULT_JOB_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ingestor = ingestor
        self._staging_dir = staging_dir
        self._executor = executor
        self._jobs: TtlStore[str, ArchiveJob] = TtlStore(job_ttl_seconds, clock)

    def list_entries(self, data: bytes) -> list[str]:
        """Names of the ingestible entries.

        Raises:
            InvalidArchiveError: if ``data`` is not a readable ZIP.
        """
        with _open(data) as archive:
            return [info.filename for info in valid_entries(archive)]

    def extract_sync(self, data: bytes, archive_name: str, owner_id: int) -> BatchResult:
        """Ingest every valid entry before returning.

        Extraction itself is dispatched to the worker and not awaited.

        Raises:
            InvalidArchiveError: if ``data`` is not a readable ZIP.
            NoValidEntriesError: if the archive holds no JPEG, PNG or PDF files.
        """
        result = BatchResult()
        with _open(data) as archive:
            entries = valid_entries(archive)
            if not entries:
                raise NoValidEntriesError(
                    f"No valid files found in {archive_name}. "
                    "Only JPEG, PNG, and PDF files are supported."
                )
            Log.info(f"Archive {archive_name}: ingesting {len(entries)} entries inline")
            for info in entries:
                result.results.append(self._ingest_entry(archive, info, owner_id))

        Log.info(
            f"Archive {archive_name} done: {result.successful} uploaded, "
            f"{result.duplicates} duplicates, {result.failed} failed"
        )
        return result

    def submit(self, data: bytes, archive_name: str, owner_id: int) -> str:
        """Stage the archive to disk and process it in the background.

        Returns the job id immediately; poll ``status`` for progress.
        """
        job = self._create_job(archive_name, owner_id)
        try:
            self._staging_dir.mkdir(parents=True, exist_ok=True)
            path = self._staging_dir / f"{job.job_id}-{base_name(archive_name)}"
            path.write_bytes(data)
        except OSError as exc:
            self._fail_job(job.job_id, f"Failed to write temp file: {exc}")
            return job.job_id
        Log.info(f"Job {job.job_id}: staged {len(data)} bytes to {path}")
        self._executor.submit(self._run_job, job.job_id, path)
        return job.job_id

    def submit_file(self, path: Path, archive_name: str, owner_id: int) -> str:
        """Process an archive already written to disk; the file is removed afterwards."""
        job = self._create_job(archive_name, owner_id)
        self._executor.submit(self._run_job, job.job_id, path)
        return job.job_id

    def status(self, job_id: str) -> ArchiveJob:
        """Snapshot of a job's progress.

        Raises:
            NotFoundError: for unknown or evicted job ids.
        """
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Archive job {job_id} not found")
        return job.snapshot()

    def evict_stale(self) -> list[str]:
        evicted = self._jobs.evict_expired()
        if evicted:
            Log.info(f"Evicted {len(evicted)} archive job(s) from memory")
        return evicted

    def _create_job(self, archive_name: str, owner_id: int) -> ArchiveJob:
        job = ArchiveJob(
            job_id=secrets.token_urlsafe(12), file_name=archive_name, owner_id=owner_id
        )
        self._jobs.add(job.job_id, job)
        Log.info(f"Job {job.job_id}: accepted archive {archive_name} from user {owner_id}")
        return job

    def _run_job(self, job_id: str, path: Path) -> None:
        try:
            self._process_from_disk(job_id, path)
        except Exception as exc:
            Log.exception(f"Job {job_id} error: {exc}")
            self._fail_job(job_id, str(exc) or "Archive processing failed")
        finally:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                Log.error(f"Job {job_id}: failed to remove temp file {path}: {exc}")

    def _process_from_disk(self, job_id: str, path: Path) -> None:
        with _open(path) as archive:
            entries = valid_entries(archive)
            total = len(entries)

            def _start(job: ArchiveJob) -> None:
                job.total_entries = total
                job.status = JOB_PROCESSING

            owner = self._jobs.update(job_id, _start)
            if owner is None:
                Log.warning(f"Job {job_id} vanished before processing started")
                return
            Log.info(f"Job {job_id}: found {total} valid entries out of {len(archive.infolist())}")

            for i, info in enumerate(entries, start=1):
                outcome = self._ingest_entry(archive, info, owner.owner_id)
                job = self._jobs.update(job_id, lambda j, o=outcome: j.record(o))
                if job is not None and (i % PROGRESS_LOG_EVERY == 0 or i == total):
                    Log.info(
                        f"Job {job_id}: {job.processed_entries}/{job.total_entries} processed "
                        f"({job.uploaded_count} uploaded, {job.skipped_duplicate_count} duplicates, "
                        f"{job.failed_count} failed)"
                    )

        def _complete(job: ArchiveJob) -> None:
            job.status = JOB_COMPLETE
            job.completed_at = time.time()

        job = self._jobs.update(job_id, _complete)
        if job is not None:
            Log.info(
                f"Job {job_id} complete in {job.completed_at - job.started_at:.1f}s: "
                f"{job.uploaded_count} uploaded, {job.skipped_duplicate_count} duplicates, "
                f"{job.failed_count} failed"
            )

    def _ingest_entry(
        self, archive: zipfile.ZipFile, info: zipfile.ZipInfo, owner_id: int
    ) -> IngestOutcome:
        try:
            data = archive.read(info)
        except Exception as exc:
            Log.error(f"Failed to read archive entry {info.filename}: {exc}")
            return IngestOutcome(
                file_name=base_name(info.filename), status="error", error=str(exc)
            )
        return self._ingestor.try_ingest(data, info.filename, owner_id)

    def _fail_job(self, job_id: str, message: str) -> None:
        def _error(job: ArchiveJob) -> None:
            job.status = JOB_ERROR
            job.error_message = message
            job.errors.append(message)

        self._jobs.update(job_id, _error)
