from unittest.mock import MagicMock, patch

from labintake.database.repositories.hash_index_repository import HashIndexRepository
from labintake.database.repositories.upload_token_repository import UploadTokenRepository


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, MagicMock]:
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


class TestHashIndexClaim:
    @patch("labintake.database.repositories.hash_index_repository.get_connection")
    def test_first_claim_wins(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 1

        assert HashIndexRepository().claim("h") is True
        assert "ON CONFLICT" in mock_cursor.execute.call_args[0][0]
        mock_conn.commit.assert_called_once()

    @patch("labintake.database.repositories.hash_index_repository.get_connection")
    def test_conflicting_claim_loses(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 0

        assert HashIndexRepository().claim("h") is False

    @patch("labintake.database.repositories.hash_index_repository.get_connection")
    def test_stale_unbound_claim_is_reclaimable(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 1

        assert HashIndexRepository(stale_claim_minutes=15).claim("h") is True

        sql, params = mock_cursor.execute.call_args[0]
        assert "DO UPDATE" in sql
        assert "content_hashes.document_id IS NULL" in sql
        assert "NOT EXISTS" in sql
        assert params == ("h", 15)


class TestHashIndexExists:
    @patch("labintake.database.repositories.hash_index_repository.get_connection")
    def test_exists(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = (1,)
        assert HashIndexRepository().exists("h") is True

    @patch("labintake.database.repositories.hash_index_repository.get_connection")
    def test_not_exists(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None
        assert HashIndexRepository().exists("h") is False


class TestHashIndexBindRelease:
    @patch("labintake.database.repositories.hash_index_repository.get_connection")
    def test_bind(self, mock_get_conn: MagicMock) -> None:
        mock_conn, _cursor = _mock_connection(mock_get_conn)

        HashIndexRepository().bind("h", 5)

        assert mock_conn.execute.call_args[0][1] == (5, "h")
        mock_conn.commit.assert_called_once()

    @patch("labintake.database.repositories.hash_index_repository.get_connection")
    def test_release_only_unbound(self, mock_get_conn: MagicMock) -> None:
        mock_conn, _cursor = _mock_connection(mock_get_conn)

        HashIndexRepository().release("h")

        assert "document_id IS NULL" in mock_conn.execute.call_args[0][0]


class TestUploadTokenRepository:
    @patch("labintake.database.repositories.upload_token_repository.get_connection")
    def test_returns_record_with_incremented_usage(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {
            "id": 1,
            "token": "tok",
            "user_id": 7,
            "used": 4,
            "created_at": None,
        }

        record = UploadTokenRepository().validate_and_count("tok")

        assert record is not None
        assert record.user_id == 7
        assert record.used == 4
        assert "used = used + 1" in mock_cursor.execute.call_args[0][0]

    @patch("labintake.database.repositories.upload_token_repository.get_connection")
    def test_unknown_token(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert UploadTokenRepository().validate_and_count("nope") is None
