import secrets

from labintake.database.models import NewDocument
from labintake.database.repositories.document_repository import DocumentRepository
from labintake.ingestion.dedup import Deduplicator, content_hash
from labintake.ingestion.file_types import base_name, resolve_mime_type
from labintake.ingestion.models import (
    OUTCOME_DUPLICATE,
    OUTCOME_ERROR,
    OUTCOME_UPLOADED,
    IngestOutcome,
)
from labintake.logging.logger import Log
from labintake.storage.base import BaseObjectStorage
from labintake.worker.dispatcher import Dispatcher

KEY_PREFIX = "lab-reports"


def object_key(owner_id: int, file_name: str) -> str:
    """Per-user key with a random component so equal names never collide."""
    return f"{KEY_PREFIX}/{owner_id}/{secrets.token_urlsafe(12)}-{base_name(file_name)}"


class DocumentIngestor:
    """Single-file ingestion shared by every upload path.

    hash -> dedup claim -> storage put -> pending document -> dispatch.
    """

    def __init__(
        self,
        deduplicator: Deduplicator,
        storage: BaseObjectStorage,
        doc_repo: DocumentRepository,
        dispatcher: Dispatcher,
    ) -> None:
        self._deduplicator = deduplicator
        self._storage = storage
        self._doc_repo = doc_repo
        self._dispatcher = dispatcher

    def ingest(
        self,
        data: bytes,
        file_name: str,
        owner_id: int,
        mime_type: str | None = None,
    ) -> IngestOutcome:
        """Ingest one file; a duplicate is reported, not raised.

        Raises:
            InvalidFileTypeError: for anything but JPEG, PNG or PDF.
            StorageError: if the object write fails.
        """
        name = base_name(file_name)
        resolved_mime = resolve_mime_type(name, mime_type)
        digest = content_hash(data)

        if not self._deduplicator.claim(digest):
            Log.info(f"Skipping duplicate file: {name} (hash: {digest[:12]}...)")
            return IngestOutcome(file_name=name, status=OUTCOME_DUPLICATE, content_hash=digest)

        key = object_key(owner_id, name)
        stored = False
        try:
            url = self._storage.put(key, data, resolved_mime)
            stored = True
            document = self._doc_repo.create_document(
                NewDocument(
                    uploaded_by=owner_id,
                    file_name=name,
                    file_key=key,
                    file_url=url,
                    mime_type=resolved_mime,
                    file_size_bytes=len(data),
                    content_hash=digest,
                )
            )
        except Exception:
            if stored:
                self._storage.delete(key)
            self._deduplicator.release(digest)
            raise

        # The document exists from here on and its content_hash column keeps
        # the claim from being taken over, so a failed bind is only logged.
        try:
            self._deduplicator.bind(digest, document.id)
        except Exception as exc:
            Log.error(f"Failed to bind hash {digest[:12]}... to document #{document.id}: {exc}")

        Log.info(f"Created document #{document.id} for {name} ({len(data)} bytes)")
        self._dispatcher.dispatch(document.id)
        return IngestOutcome(
            file_name=name,
            status=OUTCOME_UPLOADED,
            document_id=document.id,
            content_hash=digest,
            document_status=document.processing_status,
        )

    def try_ingest(
        self,
        data: bytes,
        file_name: str,
        owner_id: int,
        mime_type: str | None = None,
    ) -> IngestOutcome:
        """Like ``ingest`` but any failure becomes an error outcome."""
        try:
            return self.ingest(data, file_name, owner_id, mime_type)
        except Exception as exc:
            Log.error(f"Failed to ingest {file_name}: {exc}")
            return IngestOutcome(
                file_name=base_name(file_name), status=OUTCOME_ERROR, error=str(exc)
            )
