from dataclasses import asdict, dataclass, field
from typing import Any

DEFAULT_VIRAL_LOAD_UNIT = "Copies/mL"


@dataclass(frozen=True)
class PatientFields:
    """Patient identity as printed on the report."""

    civil_id: str
    name: str | None = None
    date_of_birth: str | None = None
    nationality: str | None = None
    gender: str | None = None
    passport_no: str | None = None


@dataclass(frozen=True)
class TestFields:
    """One test result row."""

    test_type: str
    result: str
    viral_load: str | None = None
    unit: str = DEFAULT_VIRAL_LOAD_UNIT
    sample_no: str | None = None
    accession_no: str | None = None
    department_no: str | None = None
    accession_date: str | None = None
    signed_by: str | None = None
    signed_at: str | None = None
    location: str | None = None


@dataclass(frozen=True)
class ExtractionResult:
    """Validated output of one provider call."""

    has_test_results: bool
    patient: PatientFields
    tests: list[TestFields] = field(default_factory=list)
    raw: str = ""

    @property
    def is_recognizable(self) -> bool:
        """True when the report can be stored as test data."""
        return self.has_test_results and bool(self.patient.civil_id) and bool(self.tests)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("raw")
        return data
