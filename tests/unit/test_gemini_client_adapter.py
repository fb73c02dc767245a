from unittest.mock import MagicMock

import httpx
import pytest

from labintake.extraction.exceptions import ExtractionError, ExtractionNetworkError
from labintake.extraction.gemini_client_adapter import GeminiClientAdapter, to_gemini_schema

_REQUEST = httpx.Request("POST", "https://gemini.test/models/m:generateContent")


def _make_adapter(response: httpx.Response | None = None) -> tuple[GeminiClientAdapter, MagicMock]:
    http_client = MagicMock()
    if response is not None:
        http_client.post.return_value = response
    fetcher = MagicMock()
    fetcher.fetch.return_value = b"%PDF"
    adapter = GeminiClientAdapter(
        api_key="secret-key",
        timeout_seconds=30,
        base_url="https://gemini.test/",
        fetcher=fetcher,
        http_client=http_client,
    )
    return adapter, http_client


def _extract(adapter: GeminiClientAdapter) -> str:
    return adapter.extract(
        file_url="http://files/r.pdf",
        mime_type="application/pdf",
        model="m",
        temperature=0.1,
        system_prompt="system",
        user_prompt="user",
        json_schema={"type": "object", "additionalProperties": False},
    )


def _ok(body: dict) -> httpx.Response:
    return httpx.Response(200, json=body, request=_REQUEST)


class TestToGeminiSchema:
    def test_uppercases_types_and_drops_unsupported_keys(self) -> None:
        schema = {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "tests": {"type": "array", "items": {"type": "string"}},
                "type": {"type": "string"},
            },
        }

        assert to_gemini_schema(schema) == {
            "type": "OBJECT",
            "properties": {
                "tests": {"type": "ARRAY", "items": {"type": "STRING"}},
                "type": {"type": "STRING"},
            },
        }


class TestGeminiClientAdapter:
    def test_returns_candidate_text(self) -> None:
        body = {"candidates": [{"content": {"parts": [{"text": '{"a":'}, {"text": " 1}"}]}}]}
        adapter, http_client = _make_adapter(_ok(body))

        assert _extract(adapter) == '{"a": 1}'

        args, kwargs = http_client.post.call_args
        assert args[0] == "https://gemini.test/models/m:generateContent"
        assert kwargs["headers"] == {"x-goog-api-key": "secret-key"}
        payload = kwargs["json"]
        inline = payload["contents"][0]["parts"][1]["inline_data"]
        assert inline == {"mime_type": "application/pdf", "data": "JVBERg=="}
        assert payload["systemInstruction"]["parts"][0]["text"] == "system"
        assert payload["generationConfig"]["responseMimeType"] == "application/json"
        assert payload["generationConfig"]["responseSchema"] == {"type": "OBJECT"}

    def test_no_candidates_raises(self) -> None:
        adapter, _client = _make_adapter(_ok({"promptFeedback": {"blockReason": "SAFETY"}}))

        with pytest.raises(ExtractionError, match="blocked: SAFETY"):
            _extract(adapter)

    def test_empty_text_raises(self) -> None:
        adapter, _client = _make_adapter(_ok({"candidates": [{"content": {"parts": []}}]}))

        with pytest.raises(ExtractionError, match="empty response"):
            _extract(adapter)

    def test_http_error_status(self) -> None:
        adapter, _client = _make_adapter(
            httpx.Response(429, text="quota exceeded", request=_REQUEST)
        )

        with pytest.raises(ExtractionNetworkError, match="429"):
            _extract(adapter)

    def test_connection_error(self) -> None:
        adapter, http_client = _make_adapter()
        http_client.post.side_effect = httpx.ConnectError("refused")

        with pytest.raises(ExtractionNetworkError, match="network error"):
            _extract(adapter)
