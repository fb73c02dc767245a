import base64
from urllib.parse import urlparse

import httpx
import openai

from labintake.extraction.client_base import BaseExtractionClient
from labintake.extraction.exceptions import ExtractionError, ExtractionNetworkError
from labintake.extraction.file_fetcher import FileFetcher
from labintake.pdf.base import BasePdfExtractor
from labintake.pdf.exceptions import PdfExtractionError

PDF_MIME_TYPE = "application/pdf"


class OpenAIClientAdapter(BaseExtractionClient):
    """Extraction client built on the OpenAI-compatible chat API.

    Images are passed by URL. PDFs are converted to text first because chat
    models only accept images.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        pdf_extractor: BasePdfExtractor,
        base_url: str | None = None,
        fetcher: FileFetcher | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )
        self._pdf_extractor = pdf_extractor
        self._fetcher = fetcher if fetcher is not None else FileFetcher(timeout_seconds)

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
        if mime_type == PDF_MIME_TYPE:
            report_text = self._pdf_text(file_url)
            content = [{"type": "text", "text": f"{user_prompt}\n\nReport text:\n{report_text}"}]
        else:
            content = [
                {"type": "text", "text": user_prompt},
                {
                    "type": "image_url",
                    "image_url": {"url": self._image_url(file_url, mime_type), "detail": "high"},
                },
            ]

        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "lab_report_extraction",
                        "strict": False,
                        "schema": json_schema,
                    },
                },
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": content},
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ExtractionNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ExtractionNetworkError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise ExtractionError("AI returned no choices")
        text = response.choices[0].message.content
        if text is None:
            raise ExtractionError("AI returned empty response")
        return text

    def _pdf_text(self, file_url: str) -> str:
        try:
            return self._pdf_extractor.extract(self._fetcher.fetch(file_url))
        except PdfExtractionError as exc:
            raise ExtractionError(f"Cannot read PDF text: {exc}") from exc

    def _image_url(self, file_url: str, mime_type: str) -> str:
        """Local files are inlined as data URLs; anything else is passed through."""
        if urlparse(file_url).scheme != "file":
            return file_url
        encoded = base64.b64encode(self._fetcher.fetch(file_url)).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"
