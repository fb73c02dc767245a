from pathlib import Path

from labintake.logging.logger import Log
from labintake.storage.base import BaseObjectStorage, normalize_key
from labintake.storage.exceptions import StorageError


class LocalObjectStorage(BaseObjectStorage):
    """Stores objects as files below a root directory served at a public URL."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, public_base_url: str, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT
        self._public_base_url = public_base_url.rstrip("/")

    def put(self, key: str, data: bytes, content_type: str) -> str:
        key = normalize_key(key)
        path = self._resolve_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {key}: {exc}") from exc
        Log.debug(f"Stored {len(data)} bytes ({content_type}) at {path}")
        return f"{self._public_base_url}/{key}"

    def delete(self, key: str) -> bool:
        path = self._resolve_path(normalize_key(key))
        try:
            path.unlink()
        except OSError as exc:
            Log.error(f"Failed to delete {key}: {exc}")
            return False
        return True

    def _resolve_path(self, key: str) -> Path:
        path = (self._files_root / key).resolve()
        if not path.is_relative_to(self._files_root.resolve()):
            raise StorageError(f"Key escapes storage root: {key}")
        return path
