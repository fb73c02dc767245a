"""Filename heuristics that skip obvious non-reports before any provider call."""

import re
from dataclasses import dataclass

from labintake.ingestion.file_types import base_name

NON_REPORT_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^receipt",
        r"^invoice",
        r"^screenshot",
        r"^photo_\d",
        r"^img_\d",
        r"^selfie",
        r"^avatar",
        r"^profile",
        r"^logo",
        r"^banner",
        r"^wallpaper",
        r"^meme",
        r"^scan_\d",
    )
)

_EXTENSION = re.compile(r"\.(pdf|jpe?g|png)$", re.IGNORECASE)


@dataclass(frozen=True)
class PrefilterVerdict:
    likely_report: bool
    reason: str | None = None


def check_file_name(file_name: str) -> PrefilterVerdict:
    """Reject names matching a known non-report pattern; allow everything else.

    Ambiguous names (patient names, civil ids, ``document.pdf``) pass.
    """
    stem = _EXTENSION.sub("", base_name(file_name).lower())
    for pattern in NON_REPORT_PATTERNS:
        if pattern.search(stem):
            return PrefilterVerdict(
                likely_report=False,
                reason=f"Filename matches non-report pattern: {pattern.pattern}",
            )
    return PrefilterVerdict(likely_report=True)
