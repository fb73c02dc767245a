import pytest

from labintake.ingestion.chunk_manager import ChunkManager
from labintake.ingestion.exceptions import (
    AlreadyExistsError,
    IncompleteUploadError,
    InvalidChunkIndexError,
    InvalidUploadError,
    NotFoundError,
)


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _make_manager(clock: FakeClock | None = None) -> ChunkManager:
    return ChunkManager(ttl_seconds=1800, clock=clock or FakeClock())


class TestInit:
    def test_creates_session(self) -> None:
        manager = _make_manager()
        session = manager.init("u1", "report.pdf", 3, 300, owner_id=7)
        assert session.session_id == "u1"
        assert session.total_chunks == 3
        assert session.received_count == 0

    def test_rejects_live_duplicate_id(self) -> None:
        manager = _make_manager()
        manager.init("u1", "report.pdf", 1, 10, owner_id=7)
        with pytest.raises(AlreadyExistsError):
            manager.init("u1", "other.pdf", 1, 10, owner_id=7)

    def test_rejects_zero_chunks(self) -> None:
        manager = _make_manager()
        with pytest.raises(InvalidUploadError, match="total_chunks") as exc_info:
            manager.init("u1", "report.pdf", 0, 0, owner_id=7)
        assert exc_info.value.status_code == 400


class TestAddChunk:
    def test_reports_progress(self) -> None:
        manager = _make_manager()
        manager.init("u1", "report.pdf", 2, 6, owner_id=7)

        ack = manager.add_chunk("u1", 0, b"abc")

        assert ack.complete is False
        assert ack.received_count == 1
        assert ack.total_chunks == 2

    def test_complete_after_last_chunk(self) -> None:
        manager = _make_manager()
        manager.init("u1", "report.pdf", 2, 6, owner_id=7)
        manager.add_chunk("u1", 0, b"abc")
        ack = manager.add_chunk("u1", 1, b"def")
        assert ack.complete is True

    def test_retransmit_overwrites_without_double_count(self) -> None:
        manager = _make_manager()
        manager.init("u1", "report.pdf", 2, 6, owner_id=7)
        manager.add_chunk("u1", 0, b"xxx")
        ack = manager.add_chunk("u1", 0, b"abc")
        assert ack.received_count == 1
        manager.add_chunk("u1", 1, b"def")
        assert manager.finalize("u1").data == b"abcdef"

    def test_unknown_session_raises(self) -> None:
        manager = _make_manager()
        with pytest.raises(NotFoundError):
            manager.add_chunk("missing", 0, b"abc")

    @pytest.mark.parametrize("index", [-1, 2, 99])
    def test_out_of_range_index_raises(self, index: int) -> None:
        manager = _make_manager()
        manager.init("u1", "report.pdf", 2, 6, owner_id=7)
        with pytest.raises(InvalidChunkIndexError):
            manager.add_chunk("u1", index, b"abc")
        assert manager.status("u1").received_count == 0


class TestFinalize:
    def test_out_of_order_chunks_reassemble_in_index_order(self) -> None:
        manager = _make_manager()
        manager.init("u1", "report.pdf", 2, 6, owner_id=7)
        manager.add_chunk("u1", 1, b"def")
        manager.add_chunk("u1", 0, b"abc")

        file = manager.finalize("u1")

        assert file.data == b"abcdef"
        assert file.file_name == "report.pdf"
        assert file.owner_id == 7

    def test_incomplete_upload_raises(self) -> None:
        manager = _make_manager()
        manager.init("u1", "report.pdf", 3, 9, owner_id=7)
        manager.add_chunk("u1", 0, b"abc")
        with pytest.raises(IncompleteUploadError, match="1/3"):
            manager.finalize("u1")

    def test_does_not_clean_up(self) -> None:
        manager = _make_manager()
        manager.init("u1", "report.pdf", 1, 3, owner_id=7)
        manager.add_chunk("u1", 0, b"abc")
        manager.finalize("u1")
        assert manager.status("u1").exists is True

    def test_unknown_session_raises(self) -> None:
        manager = _make_manager()
        with pytest.raises(NotFoundError):
            manager.finalize("missing")


class TestStatusAndCleanup:
    def test_status_of_unknown_session(self) -> None:
        manager = _make_manager()
        status = manager.status("missing")
        assert status.exists is False
        assert status.received_count == 0

    def test_status_of_live_session(self) -> None:
        manager = _make_manager()
        manager.init("u1", "report.pdf", 4, 40, owner_id=7)
        manager.add_chunk("u1", 2, b"x")
        status = manager.status("u1")
        assert status.exists is True
        assert status.received_count == 1
        assert status.total_chunks == 4
        assert status.file_name == "report.pdf"

    def test_cleanup_is_idempotent(self) -> None:
        manager = _make_manager()
        manager.init("u1", "report.pdf", 1, 3, owner_id=7)
        manager.cleanup("u1")
        manager.cleanup("u1")
        assert manager.status("u1").exists is False

    def test_session_id_reusable_after_cleanup(self) -> None:
        manager = _make_manager()
        manager.init("u1", "report.pdf", 1, 3, owner_id=7)
        manager.cleanup("u1")
        session = manager.init("u1", "again.pdf", 1, 3, owner_id=7)
        assert session.file_name == "again.pdf"


class TestEvictStale:
    def test_evicts_sessions_older_than_ttl(self) -> None:
        clock = FakeClock()
        manager = _make_manager(clock)
        manager.init("old", "a.pdf", 2, 6, owner_id=7)
        clock.now += 1000
        manager.init("new", "b.pdf", 2, 6, owner_id=7)
        clock.now += 801

        evicted = manager.evict_stale()

        assert evicted == ["old"]
        assert manager.status("old").exists is False
        assert manager.status("new").exists is True

    def test_evicts_complete_sessions_too(self) -> None:
        clock = FakeClock()
        manager = _make_manager(clock)
        manager.init("u1", "a.pdf", 1, 3, owner_id=7)
        manager.add_chunk("u1", 0, b"abc")
        clock.now += 1801
        assert manager.evict_stale() == ["u1"]
