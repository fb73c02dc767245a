from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from labintake.extraction.exceptions import ExtractionError, ExtractionNetworkError
from labintake.extraction.file_fetcher import FileFetcher


class TestFileFetcher:
    def test_reads_file_url_from_disk(self, tmp_path: Path) -> None:
        path = tmp_path / "report.pdf"
        path.write_bytes(b"%PDF")

        assert FileFetcher(client=MagicMock()).fetch(path.as_uri()) == b"%PDF"

    def test_missing_local_file(self, tmp_path: Path) -> None:
        with pytest.raises(ExtractionError, match="File not found"):
            FileFetcher(client=MagicMock()).fetch((tmp_path / "gone.pdf").as_uri())

    def test_http_download(self) -> None:
        client = MagicMock()
        client.get.return_value = httpx.Response(
            200, content=b"data", request=httpx.Request("GET", "http://files/r.png")
        )

        assert FileFetcher(client=client).fetch("http://files/r.png") == b"data"

    def test_http_error_status(self) -> None:
        client = MagicMock()
        client.get.return_value = httpx.Response(
            404, request=httpx.Request("GET", "http://files/r.png")
        )

        with pytest.raises(ExtractionNetworkError, match="HTTP 404"):
            FileFetcher(client=client).fetch("http://files/r.png")

    def test_connection_error(self) -> None:
        client = MagicMock()
        client.get.side_effect = httpx.ConnectError("refused")

        with pytest.raises(ExtractionNetworkError, match="failed"):
            FileFetcher(client=client).fetch("http://files/r.png")
