"""Upload entry points.

A web layer maps requests onto these methods; every IngestionError carries
the HTTP status code to answer with.
"""

import secrets
from pathlib import Path

from labintake.config.settings import Settings
from labintake.config.temp_paths import CHUNKED_UPLOAD_DIR, QUICK_UPLOAD_PREFIX, temp_dir
from labintake.database.repositories.upload_token_repository import UploadTokenRepository
from labintake.ingestion.archive import ArchiveExtractor
from labintake.ingestion.chunk_manager import ChunkManager
from labintake.ingestion.exceptions import (
    InvalidFileTypeError,
    InvalidUploadTokenError,
    NoFilesProvidedError,
    NoValidEntriesError,
    TooManyFilesError,
)
from labintake.ingestion.file_types import base_name, is_archive, is_supported
from labintake.ingestion.ingestor import DocumentIngestor
from labintake.ingestion.models import (
    OUTCOME_ERROR,
    ArchiveJob,
    ArchiveUpload,
    BatchResult,
    ChunkAck,
    ChunkStatus,
    IngestOutcome,
    QuickUploadResult,
    UploadedFile,
    UploadSession,
)
from labintake.logging.logger import Log

MAX_BULK_FILES = 500
MAX_QUICK_FILES = 50


class IngestionService:
    """Facade over single, bulk, archive, chunked and quick uploads."""

    def __init__(
        self,
        ingestor: DocumentIngestor,
        archive: ArchiveExtractor,
        chunks: ChunkManager,
        token_repo: UploadTokenRepository,
        settings: Settings,
    ) -> None:
        self._ingestor = ingestor
        self._archive = archive
        self._chunks = chunks
        self._token_repo = token_repo
        self._settings = settings

    def upload_file(
        self, data: bytes, file_name: str, owner_id: int, mime_type: str | None = None
    ) -> IngestOutcome:
        return self._ingestor.ingest(data, file_name, owner_id, mime_type)

    def upload_files(self, files: list[UploadedFile], owner_id: int) -> BatchResult:
        """Bulk upload; a failing file is reported in its outcome, never raised."""
        self._check_file_count(files, MAX_BULK_FILES)
        result = BatchResult()
        for file in files:
            result.results.append(
                self._ingestor.try_ingest(file.data, file.file_name, owner_id, file.mime_type)
            )
        Log.info(
            f"Bulk upload by user {owner_id}: {result.successful} uploaded, "
            f"{result.duplicates} duplicates, {result.failed} failed"
        )
        return result

    def upload_archive(self, data: bytes, archive_name: str, owner_id: int) -> ArchiveUpload:
        """Ingest inline up to ``archive_sync_max_entries`` entries, in the background beyond."""
        return self._route_archive(data, archive_name, owner_id)

    def submit_archive(self, data: bytes, archive_name: str, owner_id: int) -> str:
        return self._archive.submit(data, archive_name, owner_id)

    def archive_status(self, job_id: str) -> ArchiveJob:
        return self._archive.status(job_id)

    def init_chunked_upload(
        self,
        file_name: str,
        total_chunks: int,
        total_size_bytes: int,
        owner_id: int,
        session_id: str | None = None,
    ) -> UploadSession:
        if not (is_supported(file_name) or is_archive(file_name)):
            raise InvalidFileTypeError(
                f"Unsupported file type for '{file_name}'. "
                "Only JPEG, PNG, PDF and ZIP files are supported."
            )
        return self._chunks.init(
            session_id or secrets.token_urlsafe(16),
            file_name,
            total_chunks,
            total_size_bytes,
            owner_id,
        )

    def add_chunk(self, session_id: str, index: int, data: bytes) -> ChunkAck:
        return self._chunks.add_chunk(session_id, index, data)

    def finalize_chunked_upload(self, session_id: str) -> IngestOutcome | ArchiveUpload:
        """Reassemble and ingest; the session is removed whatever the outcome."""
        try:
            file = self._chunks.finalize(session_id)
            if is_archive(file.file_name):
                staging_dir = temp_dir(self._settings.temp_root, CHUNKED_UPLOAD_DIR)
                staged = staging_dir / f"{session_id}.zip"
                return self._route_archive(file.data, file.file_name, file.owner_id, staged)
            return self._ingestor.ingest(file.data, file.file_name, file.owner_id)
        finally:
            self._chunks.cleanup(session_id)

    def chunked_upload_status(self, session_id: str) -> ChunkStatus:
        return self._chunks.status(session_id)

    def abort_chunked_upload(self, session_id: str) -> None:
        self._chunks.cleanup(session_id)

    def quick_upload(self, token: str | None, files: list[UploadedFile]) -> QuickUploadResult:
        """Token-authenticated upload. Archives always run as background jobs.

        Raises:
            InvalidUploadTokenError: if the token is missing or unknown.
            NoFilesProvidedError: if ``files`` is empty.
            InvalidFileTypeError: if no file is an image, PDF or ZIP.
        """
        if not token:
            raise InvalidUploadTokenError("Upload token required")
        record = self._token_repo.validate_and_count(token)
        if record is None:
            raise InvalidUploadTokenError("Invalid upload token")
        self._check_file_count(files, MAX_QUICK_FILES)

        accepted = [f for f in files if is_supported(f.file_name) or is_archive(f.file_name)]
        if not accepted:
            raise InvalidFileTypeError(
                "No valid files. Only JPEG, PNG, PDF and ZIP files are supported."
            )

        result = QuickUploadResult()
        for file in accepted:
            if is_archive(file.file_name):
                try:
                    path = self._stage_quick_archive(file.data)
                except OSError as exc:
                    Log.error(f"Failed to stage archive {file.file_name}: {exc}")
                    result.results.append(
                        IngestOutcome(
                            file_name=base_name(file.file_name),
                            status=OUTCOME_ERROR,
                            error=str(exc),
                        )
                    )
                    continue
                result.archive_job_ids.append(
                    self._archive.submit_file(path, file.file_name, record.user_id)
                )
            else:
                result.results.append(
                    self._ingestor.try_ingest(
                        file.data, file.file_name, record.user_id, file.mime_type
                    )
                )
        Log.info(
            f"Quick upload by user {record.user_id}: {result.new} new, "
            f"{result.duplicates} duplicates, {len(result.archive_job_ids)} archive job(s)"
        )
        return result

    def _route_archive(
        self,
        data: bytes,
        archive_name: str,
        owner_id: int,
        staged_path: Path | None = None,
    ) -> ArchiveUpload:
        entries = self._archive.list_entries(data)
        if not entries:
            raise NoValidEntriesError(
                f"No valid files found in {archive_name}. "
                "Only JPEG, PNG, and PDF files are supported."
            )
        if len(entries) <= self._settings.archive_sync_max_entries:
            return ArchiveUpload(
                total_entries=len(entries),
                result=self._archive.extract_sync(data, archive_name, owner_id),
            )
        if staged_path is not None:
            staged_path.write_bytes(data)
            job_id = self._archive.submit_file(staged_path, archive_name, owner_id)
        else:
            job_id = self._archive.submit(data, archive_name, owner_id)
        return ArchiveUpload(total_entries=len(entries), job_id=job_id)

    def _stage_quick_archive(self, data: bytes) -> Path:
        name = f"{QUICK_UPLOAD_PREFIX}{secrets.token_urlsafe(12)}.zip"
        path = Path(self._settings.temp_root) / name
        path.write_bytes(data)
        return path

    @staticmethod
    def _check_file_count(files: list[UploadedFile], limit: int) -> None:
        if not files:
            raise NoFilesProvidedError("No files provided")
        if len(files) > limit:
            raise TooManyFilesError(f"Too many files: {len(files)} (max {limit})")
