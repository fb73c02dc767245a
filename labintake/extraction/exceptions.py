class ExtractionError(Exception):
    """Raised when a provider cannot produce a usable extraction."""


class ExtractionValidationError(ExtractionError):
    """Raised when the provider's JSON does not match the extraction contract."""


class ExtractionNetworkError(ExtractionError):
    """Raised when the provider or file fetch fails due to network/infrastructure issues."""


class ExtractionFailedError(ExtractionError):
    """Raised when every provider in the fallback chain failed."""

    def __init__(self, primary_error: str, secondary_error: str | None = None) -> None:
        self.primary_error = primary_error
        self.secondary_error = secondary_error
        message = f"Primary provider failed: {primary_error}"
        if secondary_error is not None:
            message += f"; secondary provider failed: {secondary_error}"
        super().__init__(message)
