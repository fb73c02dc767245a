"""In-memory reassembly of files uploaded in chunks.

Sessions are kept in a TtlStore; a periodic task calls ``evict_stale`` so
abandoned uploads cannot grow memory without bound.
"""

import time
from collections.abc import Callable

from labintake.ingestion.exceptions import (
    AlreadyExistsError,
    IncompleteUploadError,
    InvalidChunkIndexError,
    InvalidUploadError,
    MissingChunkError,
    NotFoundError,
)
from labintake.ingestion.models import ChunkAck, ChunkStatus, ReassembledFile, UploadSession
from labintake.ingestion.ttl_store import TtlStore
from labintake.logging.logger import Log

DEFAULT_SESSION_TTL_SECONDS = 30 * 60


class ChunkManager:
    """Buffers chunks per upload session and reassembles them in index order."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sessions: TtlStore[str, UploadSession] = TtlStore(ttl_seconds, clock)

    def init(
        self,
        session_id: str,
        file_name: str,
        total_chunks: int,
        total_size_bytes: int,
        owner_id: int,
    ) -> UploadSession:
        """Create a new upload session.

        Raises:
            AlreadyExistsError: if ``session_id`` belongs to a live session.
            InvalidUploadError: if ``total_chunks`` is less than 1.
        """
        if total_chunks < 1:
            raise InvalidUploadError(f"total_chunks must be >= 1, got {total_chunks}")
        session = UploadSession(
            session_id=session_id,
            file_name=file_name,
            total_chunks=total_chunks,
            total_size_bytes=total_size_bytes,
            owner_id=owner_id,
        )
        if not self._sessions.add(session_id, session):
            raise AlreadyExistsError(f"Upload {session_id} already exists")
        Log.info(
            f"Initialized upload {session_id}: {file_name}, "
            f"{total_chunks} chunks, {total_size_bytes} bytes"
        )
        return session

    def add_chunk(self, session_id: str, index: int, data: bytes) -> ChunkAck:
        """Store one chunk; a retransmitted index overwrites the earlier bytes.

        Raises:
            NotFoundError: if the session does not exist or has expired.
            InvalidChunkIndexError: if ``index`` is outside ``[0, total_chunks)``.
        """
        bad_index: list[int] = []

        def _store(session: UploadSession) -> None:
            if not 0 <= index < session.total_chunks:
                bad_index.append(session.total_chunks)
                return
            session.chunks[index] = data

        session = self._sessions.update(session_id, _store)
        if session is None:
            raise NotFoundError(f"Upload {session_id} not found")
        if bad_index:
            raise InvalidChunkIndexError(
                f"Invalid chunk index {index}. Expected 0-{bad_index[0] - 1}"
            )

        ack = ChunkAck(
            complete=session.is_complete,
            received_count=session.received_count,
            total_chunks=session.total_chunks,
        )
        Log.debug(f"Received chunk {index + 1}/{ack.total_chunks} for {session_id}")
        return ack

    def finalize(self, session_id: str) -> ReassembledFile:
        """Concatenate all chunks in ascending index order.

        The session is left in place; callers invoke ``cleanup`` afterwards.

        Raises:
            NotFoundError: if the session does not exist.
            IncompleteUploadError: if fewer than ``total_chunks`` were received.
            MissingChunkError: if an index in ``[0, total_chunks)`` is absent.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Upload {session_id} not found")

        chunks = dict(session.chunks)
        if len(chunks) != session.total_chunks:
            raise IncompleteUploadError(
                f"Upload {session_id} is incomplete: "
                f"{len(chunks)}/{session.total_chunks} chunks"
            )

        ordered: list[bytes] = []
        for i in range(session.total_chunks):
            chunk = chunks.get(i)
            if chunk is None:
                raise MissingChunkError(i, f"Missing chunk {i} for upload {session_id}")
            ordered.append(chunk)

        data = b"".join(ordered)
        Log.info(f"Reassembled {session_id}: {len(data)} bytes")
        return ReassembledFile(data=data, file_name=session.file_name, owner_id=session.owner_id)

    def cleanup(self, session_id: str) -> None:
        """Remove a session whatever its state. Unknown ids are ignored."""
        if self._sessions.pop(session_id) is not None:
            Log.info(f"Cleaned up upload {session_id}")

    def status(self, session_id: str) -> ChunkStatus:
        session = self._sessions.get(session_id)
        if session is None:
            return ChunkStatus(exists=False)
        return ChunkStatus(
            exists=True,
            received_count=session.received_count,
            total_chunks=session.total_chunks,
            file_name=session.file_name,
        )

    def evict_stale(self) -> list[str]:
        """Drop sessions older than the TTL, complete or not."""
        evicted = self._sessions.evict_expired()
        for session_id in evicted:
            Log.info(f"Cleaning up stale upload: {session_id}")
        return evicted
