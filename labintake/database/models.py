from dataclasses import dataclass
from datetime import datetime
from typing import Any

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_DISCARDED = "discarded"

PROCESSING_STATUSES = frozenset(
    {STATUS_PENDING, STATUS_PROCESSING, STATUS_COMPLETED, STATUS_FAILED, STATUS_DISCARDED}
)
TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_FAILED, STATUS_DISCARDED})
CANCELLABLE_STATUSES = (STATUS_PENDING, STATUS_PROCESSING)
REPROCESSABLE_STATUSES = (STATUS_FAILED, STATUS_DISCARDED)

PROVIDER_PRIMARY = "primary"
PROVIDER_SECONDARY = "secondary"
PROVIDER_UNKNOWN = "unknown"

CANCELLED_REASON = "Cancelled by user"


@dataclass
class NewDocument:
    """Fields supplied by an ingestion path when creating a document row."""

    uploaded_by: int
    file_name: str
    file_key: str
    file_url: str
    mime_type: str
    file_size_bytes: int
    content_hash: str


@dataclass
class DocumentRecord:
    """Represents a row from the documents table."""

    id: int
    uploaded_by: int
    file_name: str
    file_key: str
    file_url: str
    mime_type: str
    file_size_bytes: int
    content_hash: str
    processing_status: str
    processing_error: str | None = None
    extraction_provider: str | None = None
    extracted_data: dict[str, Any] | None = None
    retry_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.processing_status in TERMINAL_STATUSES


@dataclass
class UploadTokenRecord:
    """Represents a row from the upload_tokens table."""

    id: int
    token: str
    user_id: int
    used: int = 0
    created_at: datetime | None = None
