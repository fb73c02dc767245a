from labintake.database.connection import get_connection

DEFAULT_STALE_CLAIM_MINUTES = 10


class HashIndexRepository:
    """Database operations for the content_hashes table (known-hash index).

    An unbound claim older than ``stale_claim_minutes`` with no document
    carrying its hash is left over from a crashed ingestion and may be taken
    over by the next upload of the same content.
    """

    def __init__(self, stale_claim_minutes: int = DEFAULT_STALE_CLAIM_MINUTES) -> None:
        self._stale_claim_minutes = stale_claim_minutes

    def exists(self, content_hash: str) -> bool:
        """True when the hash has been claimed by any ingestion."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT 1 FROM content_hashes WHERE content_hash = %s",
                    (content_hash,),
                )
                row = cur.fetchone()
        return row is not None

    def claim(self, content_hash: str) -> bool:
        """Insert the hash if absent. Returns True only for the first caller.

        A stale unbound claim counts as absent and is refreshed in place.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO content_hashes (content_hash)
                    VALUES (%s)
                    ON CONFLICT (content_hash) DO UPDATE
                    SET created_at = NOW()
                    WHERE content_hashes.document_id IS NULL
                      AND content_hashes.created_at < NOW() - make_interval(mins => %s)
                      AND NOT EXISTS (
                          SELECT 1 FROM documents d
                          WHERE d.content_hash = content_hashes.content_hash
                      )
                    """,
                    (content_hash, self._stale_claim_minutes),
                )
                claimed = cur.rowcount == 1
            conn.commit()
        return claimed

    def bind(self, content_hash: str, document_id: int) -> None:
        """Attach the created document to a claimed hash."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE content_hashes
                SET document_id = %s
                WHERE content_hash = %s
                """,
                (document_id, content_hash),
            )
            conn.commit()

    def release(self, content_hash: str) -> None:
        """Drop a claim that never produced a document."""
        with get_connection() as conn:
            conn.execute(
                """
                DELETE FROM content_hashes
                WHERE content_hash = %s AND document_id IS NULL
                """,
                (content_hash,),
            )
            conn.commit()
