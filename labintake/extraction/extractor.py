"""AI-powered lab report extractor."""

import json
from pathlib import Path

from labintake.extraction.base import BaseExtractor
from labintake.extraction.client_base import BaseExtractionClient
from labintake.extraction.exceptions import ExtractionError
from labintake.extraction.models import ExtractionResult
from labintake.extraction.prompt_loader import (
    load_json_schema,
    load_prompt_template,
    load_system_prompt,
)
from labintake.extraction.validator import validate_and_build
from labintake.logging.logger import Log


class Extractor(BaseExtractor):
    """Extracts structured report data from a document using one provider client."""

    def __init__(
        self,
        *,
        client: BaseExtractionClient,
        model: str,
        temperature: float = 0.1,
        system_prompt_path: Path | None = None,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = load_system_prompt(system_prompt_path)
        self._prompt_template = load_prompt_template(prompt_template_path)
        self._json_schema = json.loads(load_json_schema(json_schema_path))

    @property
    def model(self) -> str:
        return self._model

    def extract(self, file_url: str, mime_type: str) -> ExtractionResult:
        document_kind = "PDF" if mime_type == "application/pdf" else "image"
        raw_response = self._client.extract(
            file_url=file_url,
            mime_type=mime_type,
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=self._prompt_template.format(document_kind=document_kind).strip(),
            json_schema=self._json_schema,
        )
        Log.debug(f"AI raw response:\n{raw_response}")

        result = validate_and_build(self._parse_json(raw_response), raw=raw_response)
        Log.info(
            f"Extraction complete ({self._model}): {len(result.tests)} tests, "
            f"has_test_results={result.has_test_results}"
        )
        return result

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ExtractionError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ExtractionError("JSON response must be an object")
        return parsed
