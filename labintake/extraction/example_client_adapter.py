"""Example extraction client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseExtractionClient and register the provider in ExtractorFactory.
"""

import json
from typing import ClassVar

from labintake.extraction.client_base import BaseExtractionClient


class ExampleClientAdapter(BaseExtractionClient):
    """Example adapter that returns a fixed, recognizable extraction.

    No network calls and no file access. Useful for local development and
    tests.
    """

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "hasTestResults": True,
        "patient": {"civilId": "000000000000", "name": "EXAMPLE PATIENT"},
        "tests": [
            {
                "testType": "Cytomegalovirus (CMV) DNA in Blood",
                "result": "CMV Not Detected",
                "unit": "Copies/mL",
            }
        ],
    }

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
        _ = file_url, mime_type, model, temperature, system_prompt, user_prompt, json_schema
        return json.dumps(self.DEFAULT_RESPONSE)
