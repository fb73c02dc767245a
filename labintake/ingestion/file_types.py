from pathlib import PurePosixPath

from labintake.ingestion.exceptions import InvalidFileTypeError

MIME_BY_EXTENSION: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".pdf": "application/pdf",
}
SUPPORTED_MIME_TYPES = frozenset(MIME_BY_EXTENSION.values())
ARCHIVE_EXTENSIONS = frozenset({".zip"})

RESOURCE_FORK_DIR = "__MACOSX"


def base_name(path: str) -> str:
    """Last component of a ``/`` or ``\\`` separated path."""
    return PurePosixPath(path.replace("\\", "/")).name


def extension(file_name: str) -> str:
    return PurePosixPath(base_name(file_name)).suffix.lower()


def is_supported(file_name: str) -> bool:
    return extension(file_name) in MIME_BY_EXTENSION


def is_archive(file_name: str) -> bool:
    return extension(file_name) in ARCHIVE_EXTENSIONS


def is_hidden_or_resource_fork(path: str) -> bool:
    """Dotfiles and macOS resource-fork entries are never ingested."""
    normalized = path.replace("\\", "/")
    if RESOURCE_FORK_DIR in normalized.split("/"):
        return True
    return base_name(normalized).startswith(".")


def resolve_mime_type(file_name: str, declared: str | None = None) -> str:
    """Pick the MIME type for a file, preferring a supported declared type.

    Raises:
        InvalidFileTypeError: if neither the declared type nor the extension
            is a supported image or PDF type.
    """
    if declared and declared.lower() in SUPPORTED_MIME_TYPES:
        return declared.lower()
    mime_type = MIME_BY_EXTENSION.get(extension(file_name))
    if mime_type is None:
        raise InvalidFileTypeError(
            f"Unsupported file type for '{file_name}'. Only JPEG, PNG, and PDF are supported."
        )
    return mime_type
