import base64
from typing import Any

import httpx

from labintake.extraction.client_base import BaseExtractionClient
from labintake.extraction.exceptions import ExtractionError, ExtractionNetworkError
from labintake.extraction.file_fetcher import FileFetcher

# Keywords the Gemini responseSchema (OpenAPI subset) does not accept.
_UNSUPPORTED_SCHEMA_KEYS = frozenset({"additionalProperties", "$schema"})


def to_gemini_schema(schema: Any) -> Any:
    """Convert a JSON schema into Gemini's responseSchema dialect."""
    if isinstance(schema, dict):
        converted: dict[str, Any] = {}
        for key, value in schema.items():
            if key in _UNSUPPORTED_SCHEMA_KEYS:
                continue
            if key == "type" and isinstance(value, str):
                converted[key] = value.upper()
            else:
                converted[key] = to_gemini_schema(value)
        return converted
    if isinstance(schema, list):
        return [to_gemini_schema(item) for item in schema]
    return schema


class GeminiClientAdapter(BaseExtractionClient):
    """Extraction client for the Gemini generateContent REST API.

    The document is fetched and sent inline, so Gemini never needs access to
    the storage URL.
    """

    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
        fetcher: FileFetcher | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._fetcher = fetcher if fetcher is not None else FileFetcher(timeout_seconds)
        self._client = http_client if http_client is not None else httpx.Client(
            timeout=timeout_seconds
        )

    def extract(
        self,
        *,
        file_url: str,
        mime_type: str,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        data = self._fetcher.fetch(file_url)
        payload = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": user_prompt},
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(data).decode("ascii"),
                            }
                        },
                    ],
                }
            ],
            "generationConfig": {
                "temperature": temperature,
                "responseMimeType": "application/json",
                "responseSchema": to_gemini_schema(json_schema),
            },
        }
        try:
            response = self._client.post(
                f"{self._base_url}/models/{model}:generateContent",
                headers={"x-goog-api-key": self._api_key},
                json=payload,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExtractionNetworkError(
                f"Gemini API error {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ExtractionNetworkError(f"Gemini network error: {exc}") from exc

        return self._response_text(response.json())

    @staticmethod
    def _response_text(body: dict[str, Any]) -> str:
        candidates = body.get("candidates") or []
        if not candidates:
            reason = (body.get("promptFeedback") or {}).get("blockReason")
            suffix = f" (blocked: {reason})" if reason else ""
            raise ExtractionError(f"Gemini returned no candidates{suffix}")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text.strip():
            raise ExtractionError("Gemini returned empty response")
        return text
