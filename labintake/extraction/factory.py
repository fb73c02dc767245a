from labintake.config.settings import Settings
from labintake.extraction.base import BaseExtractor
from labintake.extraction.chain import FallbackChain
from labintake.extraction.example_client_adapter import ExampleClientAdapter
from labintake.extraction.extractor import Extractor
from labintake.extraction.gemini_client_adapter import GeminiClientAdapter
from labintake.extraction.openai_client_adapter import OpenAIClientAdapter
from labintake.pdf.factory import PdfExtractorFactory

DISABLED_PROVIDERS = ("", "none")


class ExtractorFactory:
    """Creates configured extractors and the fallback chain."""

    PROVIDERS = ("gemini", "openai", "openai_compatible", "example")

    @classmethod
    def create(cls, provider: str, settings: Settings) -> BaseExtractor:
        """Create one extractor for ``provider``."""
        provider = provider.lower()
        if provider == "example":
            return Extractor(client=ExampleClientAdapter(), model="example", temperature=0.0)
        if provider == "gemini":
            client = GeminiClientAdapter(
                api_key=settings.extraction_gemini_api_key,
                timeout_seconds=settings.extraction_gemini_timeout_seconds,
                base_url=settings.extraction_gemini_base_url,
            )
            return Extractor(
                client=client,
                model=settings.extraction_gemini_model_name,
                temperature=settings.extraction_gemini_temperature,
            )
        if provider == "openai":
            client = OpenAIClientAdapter(
                api_key=settings.extraction_openai_api_key,
                timeout_seconds=settings.extraction_openai_timeout_seconds,
                pdf_extractor=PdfExtractorFactory.create(settings.pdf_engine),
            )
            return Extractor(
                client=client,
                model=settings.extraction_openai_model_name,
                temperature=settings.extraction_openai_temperature,
            )
        if provider == "openai_compatible":
            url = (settings.extraction_openai_compatible_base_url or "").strip()
            if not url:
                raise ValueError(
                    "extraction_openai_compatible_base_url is required for "
                    "provider openai_compatible"
                )
            client = OpenAIClientAdapter(
                api_key=settings.extraction_openai_compatible_api_key,
                timeout_seconds=settings.extraction_openai_compatible_timeout_seconds,
                pdf_extractor=PdfExtractorFactory.create(settings.pdf_engine),
                base_url=url,
            )
            return Extractor(
                client=client,
                model=settings.extraction_openai_compatible_model_name,
                temperature=0.0,
            )
        raise ValueError(
            f"Unknown extraction provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )

    @classmethod
    def create_chain(cls, settings: Settings) -> FallbackChain:
        """Primary plus optional secondary; ``none`` or empty disables the secondary."""
        primary = cls.create(settings.extraction_primary_provider, settings)
        secondary_name = settings.extraction_secondary_provider.strip().lower()
        secondary = None
        if secondary_name not in DISABLED_PROVIDERS:
            secondary = cls.create(secondary_name, settings)
        return FallbackChain(primary, secondary)
