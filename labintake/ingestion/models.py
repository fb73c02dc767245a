import copy
import time
from dataclasses import dataclass, field

JOB_EXTRACTING = "extracting"
JOB_PROCESSING = "processing"
JOB_COMPLETE = "complete"
JOB_ERROR = "error"

OUTCOME_UPLOADED = "uploaded"
OUTCOME_DUPLICATE = "duplicate"
OUTCOME_ERROR = "error"


@dataclass
class UploadSession:
    """In-memory state of one chunked upload."""

    session_id: str
    file_name: str
    total_chunks: int
    total_size_bytes: int
    owner_id: int
    chunks: dict[int, bytes] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)

    @property
    def received_count(self) -> int:
        return len(self.chunks)

    @property
    def is_complete(self) -> bool:
        return len(self.chunks) == self.total_chunks


@dataclass(frozen=True)
class ChunkAck:
    complete: bool
    received_count: int
    total_chunks: int


@dataclass(frozen=True)
class ChunkStatus:
    exists: bool
    received_count: int = 0
    total_chunks: int = 0
    file_name: str | None = None


@dataclass(frozen=True)
class ReassembledFile:
    data: bytes
    file_name: str
    owner_id: int


@dataclass(frozen=True)
class UploadedFile:
    """A file handed over by an upload entry point."""

    file_name: str
    data: bytes
    mime_type: str | None = None


@dataclass(frozen=True)
class IngestOutcome:
    """Per-file result of an ingestion attempt.

    ``status`` is the ingestion outcome. For an uploaded file
    ``document_status`` is the state of the created document (``pending``),
    which a web layer reports to the client as ``processing``.
    """

    file_name: str
    status: str
    document_id: int | None = None
    content_hash: str | None = None
    error: str | None = None
    document_status: str | None = None


@dataclass
class BatchResult:
    """Aggregate of a multi-file ingestion (bulk, archive or quick upload)."""

    results: list[IngestOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.status == OUTCOME_UPLOADED)

    @property
    def duplicates(self) -> int:
        return sum(1 for r in self.results if r.status == OUTCOME_DUPLICATE)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == OUTCOME_ERROR)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == OUTCOME_ERROR)


@dataclass
class ArchiveJob:
    """Live progress of a background archive ingestion."""

    job_id: str
    file_name: str
    owner_id: int
    status: str = JOB_EXTRACTING
    total_entries: int = 0
    processed_entries: int = 0
    uploaded_count: int = 0
    skipped_duplicate_count: int = 0
    failed_count: int = 0
    document_ids: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    started_at: float = field(default_factory=time.time)
    completed_at: float | None = None
    error_message: str | None = None

    def record(self, outcome: IngestOutcome) -> None:
        """Count one processed entry."""
        self.processed_entries += 1
        if outcome.status == OUTCOME_UPLOADED:
            self.uploaded_count += 1
            if outcome.document_id is not None:
                self.document_ids.append(outcome.document_id)
        elif outcome.status == OUTCOME_DUPLICATE:
            self.skipped_duplicate_count += 1
        else:
            self.failed_count += 1
            self.errors.append(f"{outcome.file_name}: {outcome.error}")

    def snapshot(self) -> "ArchiveJob":
        return copy.deepcopy(self)


@dataclass(frozen=True)
class ArchiveUpload:
    """Result of an archive upload: inline results for small archives, a job id otherwise."""

    total_entries: int
    result: BatchResult | None = None
    job_id: str | None = None

    @property
    def is_background(self) -> bool:
        return self.job_id is not None


@dataclass
class QuickUploadResult:
    """Response body of a token-authenticated quick upload."""

    results: list[IngestOutcome] = field(default_factory=list)
    archive_job_ids: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results) + len(self.archive_job_ids)

    @property
    def new(self) -> int:
        return sum(1 for r in self.results if r.status == OUTCOME_UPLOADED)

    @property
    def duplicates(self) -> int:
        return sum(1 for r in self.results if r.status == OUTCOME_DUPLICATE)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == OUTCOME_ERROR)
