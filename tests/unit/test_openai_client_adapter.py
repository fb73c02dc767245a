from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from labintake.extraction.exceptions import ExtractionError, ExtractionNetworkError
from labintake.extraction.openai_client_adapter import OpenAIClientAdapter
from labintake.pdf.exceptions import PdfNoTextLayerError

_OPENAI = "labintake.extraction.openai_client_adapter.openai.OpenAI"


def _make_mock_response(content: str | None) -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    response = MagicMock()
    response.choices = [choice]
    return response


def _make_adapter(
    mock_client: MagicMock,
    pdf_extractor: MagicMock | None = None,
    fetcher: MagicMock | None = None,
) -> OpenAIClientAdapter:
    with patch(_OPENAI, return_value=mock_client):
        return OpenAIClientAdapter(
            api_key="k",
            timeout_seconds=30,
            pdf_extractor=pdf_extractor or MagicMock(),
            fetcher=fetcher or MagicMock(),
        )


def _extract(adapter: OpenAIClientAdapter, file_url: str, mime_type: str) -> str:
    return adapter.extract(
        file_url=file_url,
        mime_type=mime_type,
        model="m",
        temperature=0.1,
        system_prompt="system",
        user_prompt="user",
        json_schema={"type": "object"},
    )


class TestOpenAIClientAdapter:
    def test_image_passed_by_url(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response('{"ok": true}')
        adapter = _make_adapter(mock_client)

        content = _extract(adapter, "http://files/r.png", "image/png")

        assert content == '{"ok": true}'
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        user_content = kwargs["messages"][1]["content"]
        assert user_content[1]["image_url"]["url"] == "http://files/r.png"
        assert kwargs["response_format"]["json_schema"]["strict"] is False

    def test_local_image_inlined_as_data_url(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response("{}")
        fetcher = MagicMock()
        fetcher.fetch.return_value = b"\x89PNG"
        adapter = _make_adapter(mock_client, fetcher=fetcher)

        _extract(adapter, "file:///srv/files/r.png", "image/png")

        user_content = mock_client.chat.completions.create.call_args.kwargs["messages"][1][
            "content"
        ]
        assert user_content[1]["image_url"]["url"] == "data:image/png;base64,iVBORw=="

    def test_pdf_sent_as_text(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response("{}")
        pdf_extractor = MagicMock()
        pdf_extractor.extract.return_value = "CMV Not Detected"
        fetcher = MagicMock()
        fetcher.fetch.return_value = b"%PDF"
        adapter = _make_adapter(mock_client, pdf_extractor, fetcher)

        _extract(adapter, "http://files/r.pdf", "application/pdf")

        pdf_extractor.extract.assert_called_once_with(b"%PDF")
        user_content = mock_client.chat.completions.create.call_args.kwargs["messages"][1][
            "content"
        ]
        assert len(user_content) == 1
        assert "CMV Not Detected" in user_content[0]["text"]

    def test_scanned_pdf_raises_extraction_error(self) -> None:
        pdf_extractor = MagicMock()
        pdf_extractor.extract.side_effect = PdfNoTextLayerError("no text layer")
        adapter = _make_adapter(MagicMock(), pdf_extractor)

        with pytest.raises(ExtractionError, match="Cannot read PDF text"):
            _extract(adapter, "http://files/r.pdf", "application/pdf")

    def test_raises_error_for_empty_content(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response(None)
        adapter = _make_adapter(mock_client)

        with pytest.raises(ExtractionError, match="empty response"):
            _extract(adapter, "http://files/r.png", "image/png")

    def test_raises_error_for_no_choices(self) -> None:
        mock_client = MagicMock()
        response = MagicMock()
        response.choices = []
        mock_client.chat.completions.create.return_value = response
        adapter = _make_adapter(mock_client)

        with pytest.raises(ExtractionError, match="no choices"):
            _extract(adapter, "http://files/r.png", "image/png")

    def test_raises_network_error_on_connection_failure(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=MagicMock()
        )
        adapter = _make_adapter(mock_client)

        with pytest.raises(ExtractionNetworkError):
            _extract(adapter, "http://files/r.png", "image/png")

    def test_raises_network_error_on_timeout(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.side_effect = httpx.ReadTimeout("timed out")
        adapter = _make_adapter(mock_client)

        with pytest.raises(ExtractionNetworkError):
            _extract(adapter, "http://files/r.png", "image/png")
