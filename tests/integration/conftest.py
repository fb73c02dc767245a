import os
import secrets
from collections.abc import Callable, Generator
from importlib.resources import files
from typing import Any

import psycopg
import pytest

from labintake.config.settings import Settings
from labintake.database.connection import close_pool, get_connection, init_pool
from labintake.database.models import DocumentRecord, NewDocument
from labintake.database.repositories.document_repository import DocumentRepository

SCHEMA_SQL = files("labintake.database").joinpath("schema.sql")


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "labintake_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_SQL.read_text(encoding="utf-8"))
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(
    integration_pool: None,
) -> Generator[list[tuple[str, Any]], None, None]:
    cleanup: list[tuple[str, Any]] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for table, key in cleanup:
                if table == "content_hashes":
                    cur.execute("DELETE FROM content_hashes WHERE content_hash = %s", (key,))
            for table, key in cleanup:
                if table == "documents":
                    cur.execute("DELETE FROM documents WHERE id = %s", (key,))
        conn.commit()


@pytest.fixture
def unique_hash(integration_cleanup: list[tuple[str, Any]]) -> Callable[[], str]:
    """Factory for content hashes that are removed after the test."""

    def _make() -> str:
        digest = secrets.token_hex(32)
        integration_cleanup.append(("content_hashes", digest))
        return digest

    return _make


@pytest.fixture
def seed_document(
    integration_cleanup: list[tuple[str, Any]],
    unique_hash: Callable[[], str],
) -> Callable[..., DocumentRecord]:
    """Factory inserting a pending document; ``status`` moves it afterwards."""

    def _make(status: str = "pending", content_hash: str | None = None) -> DocumentRecord:
        record = DocumentRepository().create_document(
            NewDocument(
                uploaded_by=1,
                file_name="report.pdf",
                file_key="lab-reports/1/test-report.pdf",
                file_url="file:///tmp/test-report.pdf",
                mime_type="application/pdf",
                file_size_bytes=1024,
                content_hash=content_hash or unique_hash(),
            )
        )
        integration_cleanup.append(("documents", record.id))
        if status != "pending":
            with get_connection() as conn:
                conn.execute(
                    "UPDATE documents SET processing_status = %s::processing_status "
                    "WHERE id = %s",
                    (status, record.id),
                )
                conn.commit()
        return DocumentRepository().find_by_id(record.id)

    return _make
