"""Removes orphaned upload temp files left behind by crashes or aborted uploads."""

import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from labintake.config.temp_paths import KNOWN_TEMP_DIRS, KNOWN_TEMP_PREFIXES
from labintake.logging.logger import Log

DEFAULT_MAX_AGE_SECONDS = 24 * 60 * 60


@dataclass
class CleanupResult:
    files_removed: int = 0
    dirs_removed: int = 0
    bytes_freed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def removed(self) -> int:
        return self.files_removed + self.dirs_removed


def format_bytes(size: int) -> str:
    """Human-readable size for log lines, e.g. ``1.5KB``."""
    if size < 1024:
        return f"{size}B"
    if size < 1024**2:
        return f"{size / 1024:.1f}KB"
    if size < 1024**3:
        return f"{size / 1024**2:.1f}MB"
    return f"{size / 1024**3:.2f}GB"


def dir_size(path: Path) -> int:
    """Total size of the files below ``path``; unreadable entries count as 0."""
    total = 0
    try:
        children = list(path.iterdir())
    except OSError:
        return 0
    for child in children:
        try:
            if child.is_dir() and not child.is_symlink():
                total += dir_size(child)
            else:
                total += child.lstat().st_size
        except OSError:
            continue
    return total


class TempReaper:
    """Deletes stale entries from the known temp directories and prefixes.

    The known directories themselves are kept; nothing outside them (or not
    matching a known prefix in the temp root) is touched.
    """

    def __init__(
        self,
        temp_root: Path,
        max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._temp_root = temp_root
        self._max_age = max_age_seconds
        self._clock = clock

    def run(self) -> CleanupResult:
        result = CleanupResult()
        cutoff = self._clock() - self._max_age

        for name in KNOWN_TEMP_DIRS:
            directory = self._temp_root / name
            if not directory.is_dir():
                continue
            try:
                entries = list(directory.iterdir())
            except OSError as exc:
                result.errors.append(f"Failed to read directory {directory}: {exc}")
                continue
            for entry in entries:
                self._remove_if_stale(entry, cutoff, result)

        try:
            root_entries = list(self._temp_root.iterdir())
        except OSError as exc:
            result.errors.append(f"Failed to read temp root {self._temp_root}: {exc}")
            root_entries = []
        for entry in root_entries:
            if entry.name.startswith(KNOWN_TEMP_PREFIXES):
                self._remove_if_stale(entry, cutoff, result)

        self._log(result)
        return result

    def _remove_if_stale(self, path: Path, cutoff: float, result: CleanupResult) -> None:
        try:
            stat = path.lstat()
            if stat.st_mtime > cutoff:
                return
            if path.is_dir() and not path.is_symlink():
                size = dir_size(path)
                shutil.rmtree(path)
                result.dirs_removed += 1
                result.bytes_freed += size
            else:
                path.unlink()
                result.files_removed += 1
                result.bytes_freed += stat.st_size
        except OSError as exc:
            result.errors.append(f"Failed to clean {path}: {exc}")

    @staticmethod
    def _log(result: CleanupResult) -> None:
        if result.removed:
            Log.info(
                f"Temp cleanup: removed {result.files_removed} files, "
                f"{result.dirs_removed} dirs, freed {format_bytes(result.bytes_freed)}"
            )
        else:
            Log.debug("Temp cleanup: no orphaned temp files found")
        if result.errors:
            Log.warning(f"Temp cleanup errors: {'; '.join(result.errors)}")
