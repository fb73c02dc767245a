from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from labintake.extraction.exceptions import ExtractionError, ExtractionNetworkError


class FileFetcher:
    """Downloads a stored document from the URL recorded on its row.

    ``file://`` URLs are read from disk so local development works without a
    file server.
    """

    def __init__(self, timeout_seconds: float = 30.0, client: httpx.Client | None = None) -> None:
        self._client = client if client is not None else httpx.Client(
            timeout=timeout_seconds, follow_redirects=True
        )

    def fetch(self, url: str) -> bytes:
        """Return the document bytes.

        Raises:
            ExtractionNetworkError: on connection errors or non-2xx responses.
            ExtractionError: if a ``file://`` path does not exist.
        """
        parsed = urlparse(url)
        if parsed.scheme == "file":
            path = Path(unquote(parsed.path))
            if not path.exists():
                raise ExtractionError(f"File not found: {path}")
            return path.read_bytes()
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExtractionNetworkError(
                f"Fetching {url} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ExtractionNetworkError(f"Fetching {url} failed: {exc}") from exc
        return response.content
