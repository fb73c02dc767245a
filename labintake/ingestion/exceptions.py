class IngestionError(Exception):
    """Base exception for all ingestion pipeline errors.

    ``status_code`` is the HTTP status a web layer should answer with.
    """

    status_code: int = 400


class NotFoundError(IngestionError):
    """Raised for an unknown upload session, archive job or document."""

    status_code = 404


class DocumentNotFoundError(NotFoundError):
    """Raised when a document cannot be found in the database."""


class AlreadyExistsError(IngestionError):
    """Raised when an upload session id is reused while still live."""

    status_code = 409


class InvalidUploadError(IngestionError):
    """Raised when an upload session is initialized with bad parameters."""


class IncompleteUploadError(IngestionError):
    """Raised when finalizing an upload session that is missing chunks."""


class MissingChunkError(IngestionError):
    """Raised when a chunk index is absent during reassembly."""

    def __init__(self, index: int, message: str | None = None) -> None:
        self.index = index
        super().__init__(message or f"Missing chunk {index}")


class InvalidChunkIndexError(IngestionError):
    """Raised when a chunk index falls outside the session's range."""


class NoValidEntriesError(IngestionError):
    """Raised when an archive contains nothing ingestible."""


class InvalidArchiveError(IngestionError):
    """Raised when archive bytes cannot be opened as a ZIP file."""


class InvalidFileTypeError(IngestionError):
    """Raised for an unsupported MIME type or file extension."""


class InvalidTransitionError(IngestionError):
    """Raised when a manual status change is not allowed from the current state."""

    status_code = 409


class CannotCancelError(InvalidTransitionError):
    """Raised when cancelling a document that already reached a terminal state."""


class CannotReprocessError(InvalidTransitionError):
    """Raised when reprocessing a document that is not failed or discarded."""


class InvalidUploadTokenError(IngestionError):
    """Raised when a quick-upload token is missing or unknown."""

    status_code = 401


class NoFilesProvidedError(IngestionError):
    """Raised when an upload request carries no files."""


class TooManyFilesError(IngestionError):
    """Raised when an upload request exceeds the per-request file limit."""
