from abc import ABC, abstractmethod


class BaseExtractionClient(ABC):
    """Contract for provider-specific extraction clients."""

    @abstractmethod
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
        """Send one stored document to the provider and return its raw JSON text.

        Raises:
            ExtractionNetworkError: on transport or API failures.
            ExtractionError: when the provider answers without content.
        """
