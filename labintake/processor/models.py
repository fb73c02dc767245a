from dataclasses import dataclass

OUTCOME_COMPLETED = "completed"
OUTCOME_FAILED = "failed"
OUTCOME_DISCARDED = "discarded"
OUTCOME_DUPLICATE = "duplicate"
OUTCOME_SKIPPED = "skipped"


@dataclass(frozen=True)
class ProcessOutcome:
    """What one processing attempt did to a document."""

    document_id: int
    status: str
    provider: str | None = None
    error: str | None = None
