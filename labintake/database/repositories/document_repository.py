from collections.abc import Sequence
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from labintake.database.connection import get_connection
from labintake.database.models import (
    CANCELLABLE_STATUSES,
    CANCELLED_REASON,
    PROCESSING_STATUSES,
    STATUS_DISCARDED,
    STATUS_PENDING,
    TERMINAL_STATUSES,
    DocumentRecord,
    NewDocument,
)
from labintake.ingestion.exceptions import DocumentNotFoundError

_COLUMNS = """
    id, uploaded_by, file_name, file_key, file_url, mime_type, file_size_bytes,
    content_hash, processing_status::text AS processing_status, processing_error,
    extraction_provider, extracted_data, retry_count, created_at, updated_at,
    completed_at
"""


def _to_record(row: dict[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        id=row["id"],
        uploaded_by=row["uploaded_by"],
        file_name=row["file_name"],
        file_key=row["file_key"],
        file_url=row["file_url"],
        mime_type=row["mime_type"],
        file_size_bytes=row["file_size_bytes"],
        content_hash=row["content_hash"],
        processing_status=row["processing_status"],
        processing_error=row.get("processing_error"),
        extraction_provider=row.get("extraction_provider"),
        extracted_data=row.get("extracted_data"),
        retry_count=row.get("retry_count", 0),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
        completed_at=row.get("completed_at"),
    )


def _check_statuses(statuses: Sequence[str]) -> list[str]:
    unknown = [s for s in statuses if s not in PROCESSING_STATUSES]
    if unknown:
        raise ValueError(f"Unknown processing status(es): {unknown}")
    return list(statuses)


class DocumentRepository:
    """Database operations for the documents table.

    Every status write is a compare-and-swap on the expected source status so
    that concurrent writers (worker, cancel, reprocess) cannot clobber each
    other.
    """

    def create_document(self, document: NewDocument) -> DocumentRecord:
        """Insert a new pending document and return the stored row."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents
                        (uploaded_by, file_name, file_key, file_url, mime_type,
                         file_size_bytes, content_hash, processing_status)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, 'pending')
                    RETURNING {_COLUMNS}
                    """,
                    (
                        document.uploaded_by,
                        document.file_name,
                        document.file_key,
                        document.file_url,
                        document.mime_type,
                        document.file_size_bytes,
                        document.content_hash,
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError("INSERT INTO documents returned no row")
        return _to_record(row)

    def find_by_id(self, document_id: int) -> DocumentRecord:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _to_record(row)

    def lookup_hash(self, content_hash: str) -> DocumentRecord | None:
        """Return the oldest document carrying this content hash, if any."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM documents
                    WHERE content_hash = %s
                    ORDER BY id
                    LIMIT 1
                    """,
                    (content_hash,),
                )
                row = cur.fetchone()
        return _to_record(row) if row is not None else None

    def find_by_status(
        self, statuses: Sequence[str], limit: int = 100
    ) -> list[DocumentRecord]:
        """Newest-first documents in any of the given statuses."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM documents
                    WHERE processing_status::text = ANY(%s)
                    ORDER BY created_at DESC
                    LIMIT %s
                    """,
                    (_check_statuses(statuses), limit),
                )
                rows = cur.fetchall()
        return [_to_record(r) for r in rows]

    def find_pending(self, limit: int | None = None) -> list[DocumentRecord]:
        """Oldest-first pending documents. No limit when ``limit`` is None."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM documents
                    WHERE processing_status = 'pending'
                    ORDER BY created_at, id
                    LIMIT %s
                    """,
                    (limit,),
                )
                rows = cur.fetchall()
        return [_to_record(r) for r in rows]

    def claim_for_processing(
        self,
        document_id: int,
        from_statuses: Sequence[str] = (STATUS_PENDING,),
    ) -> DocumentRecord | None:
        """Move a document to processing if it is in one of ``from_statuses``.

        Clears any previous processing error. Returns the updated row, or None
        when the document is not in an expected state (or does not exist).
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE documents
                    SET processing_status = 'processing',
                        processing_error = NULL,
                        completed_at = NULL,
                        updated_at = NOW()
                    WHERE id = %s
                      AND processing_status::text = ANY(%s)
                    RETURNING {_COLUMNS}
                    """,
                    (document_id, _check_statuses(from_statuses)),
                )
                row = cur.fetchone()
            conn.commit()
        return _to_record(row) if row is not None else None

    def update_status(
        self,
        document_id: int,
        status: str,
        error: str | None = None,
        provider: str | None = None,
        expected_statuses: Sequence[str] | None = None,
    ) -> bool:
        """Set status, error and provider; optionally guarded by current status.

        Returns True when a row was updated.
        """
        _check_statuses([status])
        query = """
            UPDATE documents
            SET processing_status = %s::processing_status,
                processing_error = %s,
                extraction_provider = COALESCE(%s, extraction_provider),
                completed_at = CASE WHEN %s THEN NOW() ELSE NULL END,
                updated_at = NOW()
            WHERE id = %s
        """
        params: list[Any] = [status, error, provider, status in TERMINAL_STATUSES, document_id]
        if expected_statuses is not None:
            query += " AND processing_status::text = ANY(%s)"
            params.append(_check_statuses(expected_statuses))
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, tuple(params))
                updated = cur.rowcount > 0
            conn.commit()
        return updated

    def mark_terminal(
        self,
        document_id: int,
        status: str,
        error: str | None = None,
        provider: str | None = None,
        extracted_data: dict[str, Any] | None = None,
    ) -> bool:
        """Write the worker's outcome. Only applies while still processing.

        Returns False when the row left processing meanwhile (e.g. cancelled).
        """
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"'{status}' is not a terminal status")
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET processing_status = %s::processing_status,
                        processing_error = %s,
                        extraction_provider = %s,
                        extracted_data = %s,
                        completed_at = NOW(),
                        updated_at = NOW()
                    WHERE id = %s
                      AND processing_status = 'processing'
                    """,
                    (
                        status,
                        error,
                        provider,
                        Jsonb(extracted_data) if extracted_data is not None else None,
                        document_id,
                    ),
                )
                updated = cur.rowcount > 0
            conn.commit()
        return updated

    def release_for_retry(self, document_id: int, error: str) -> bool:
        """Return a processing document to pending and count the attempt."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET processing_status = 'pending',
                        processing_error = %s,
                        retry_count = retry_count + 1,
                        updated_at = NOW()
                    WHERE id = %s
                      AND processing_status = 'processing'
                    """,
                    (error, document_id),
                )
                updated = cur.rowcount > 0
            conn.commit()
        return updated

    def cancel(self, document_id: int) -> bool:
        """Discard a pending or processing document. Returns True on success."""
        return self.update_status(
            document_id,
            STATUS_DISCARDED,
            error=CANCELLED_REASON,
            expected_statuses=CANCELLABLE_STATUSES,
        )

    def reset_stale_processing(self, threshold_minutes: int) -> int:
        """Return documents stuck in processing back to pending."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET processing_status = 'pending', updated_at = NOW()
                    WHERE processing_status = 'processing'
                      AND updated_at <= NOW() - make_interval(mins => %s)
                    """,
                    (threshold_minutes,),
                )
                reset = cur.rowcount
            conn.commit()
        return reset

    def find_completed_duplicate(self, content_hash: str, exclude_id: int) -> int | None:
        """ID of another completed document with the same content, if any."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id FROM documents
                    WHERE content_hash = %s
                      AND id <> %s
                      AND processing_status = 'completed'
                    ORDER BY id
                    LIMIT 1
                    """,
                    (content_hash, exclude_id),
                )
                row = cur.fetchone()
        return int(row[0]) if row is not None else None

    def count_by_status(self) -> dict[str, int]:
        """Document counts per status plus a ``total`` key."""
        stats = {status: 0 for status in sorted(PROCESSING_STATUSES)}
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT processing_status::text, COUNT(*)
                    FROM documents
                    GROUP BY processing_status
                    """
                )
                rows = cur.fetchall()
        for status, count in rows:
            stats[status] = int(count)
        stats["total"] = sum(stats.values())
        return stats


