from pathlib import Path

CHUNKED_UPLOAD_DIR = "labintake-chunked-uploads"
ARCHIVE_STAGING_DIR = "labintake-archive-uploads"
LARGE_UPLOAD_DIR = "labintake-large-uploads"
QUICK_UPLOAD_PREFIX = "quick-large-"

KNOWN_TEMP_DIRS = (CHUNKED_UPLOAD_DIR, ARCHIVE_STAGING_DIR, LARGE_UPLOAD_DIR)
KNOWN_TEMP_PREFIXES = (QUICK_UPLOAD_PREFIX,)


def temp_dir(temp_root: str | Path, name: str) -> Path:
    """Create (if needed) and return one of the known temp directories."""
    path = Path(temp_root) / name
    path.mkdir(parents=True, exist_ok=True)
    return path
