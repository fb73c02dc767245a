from psycopg.rows import dict_row

from labintake.database.connection import get_connection
from labintake.database.models import UploadTokenRecord


class UploadTokenRepository:
    """Database operations for the upload_tokens table."""

    def validate_and_count(self, token: str) -> UploadTokenRecord | None:
        """Return the token row with its usage counter incremented.

        Tokens are permanent; None means the token is unknown.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    UPDATE upload_tokens
                    SET used = used + 1
                    WHERE token = %s
                    RETURNING id, token, user_id, used, created_at
                    """,
                    (token,),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            return None

        return UploadTokenRecord(
            id=row["id"],
            token=row["token"],
            user_id=row["user_id"],
            used=row["used"],
            created_at=row["created_at"],
        )
