"""Validates provider JSON and builds an ExtractionResult."""

from typing import Any

from labintake.extraction.exceptions import ExtractionValidationError
from labintake.extraction.models import (
    DEFAULT_VIRAL_LOAD_UNIT,
    ExtractionResult,
    PatientFields,
    TestFields,
)

_MAX_TESTS = 100

_PATIENT_FIELDS = {
    "name": "name",
    "dateOfBirth": "date_of_birth",
    "nationality": "nationality",
    "gender": "gender",
    "passportNo": "passport_no",
}

_TEST_FIELDS = {
    "viralLoad": "viral_load",
    "sampleNo": "sample_no",
    "accessionNo": "accession_no",
    "departmentNo": "department_no",
    "accessionDate": "accession_date",
    "signedBy": "signed_by",
    "signedAt": "signed_at",
    "location": "location",
}


def validate_and_build(data: dict[str, Any], raw: str = "") -> ExtractionResult:
    """Validate parsed provider JSON and build an ExtractionResult.

    Missing or blank optional fields become None. An empty civil id or test
    list is valid here; the processor decides whether the result is usable.

    Raises:
        ExtractionValidationError: on any structural violation.
    """
    has_test_results = data.get("hasTestResults")
    if not isinstance(has_test_results, bool):
        raise ExtractionValidationError("'hasTestResults' must be a boolean")
    patient = _build_patient(data.get("patient"))
    tests = _build_tests(data.get("tests", []))
    return ExtractionResult(
        has_test_results=has_test_results, patient=patient, tests=tests, raw=raw
    )


def _build_patient(raw: Any) -> PatientFields:
    if not isinstance(raw, dict):
        raise ExtractionValidationError("'patient' must be an object")
    civil_id = _optional_text(raw.get("civilId"), "patient.civilId") or ""
    optional = {
        attr: _optional_text(raw.get(key), f"patient.{key}")
        for key, attr in _PATIENT_FIELDS.items()
    }
    return PatientFields(civil_id=civil_id, **optional)


def _build_tests(raw: Any) -> list[TestFields]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ExtractionValidationError("'tests' must be a list")
    if len(raw) > _MAX_TESTS:
        raise ExtractionValidationError(f"Too many tests: {len(raw)} (max {_MAX_TESTS})")
    return [_build_test(item, i) for i, item in enumerate(raw)]


def _build_test(raw: Any, index: int) -> TestFields:
    if not isinstance(raw, dict):
        raise ExtractionValidationError(f"Test at index {index} must be an object")
    test_type = _optional_text(raw.get("testType"), f"tests[{index}].testType")
    if not test_type:
        raise ExtractionValidationError(
            f"Test at index {index}: 'testType' must be a non-empty string"
        )
    result = _optional_text(raw.get("result"), f"tests[{index}].result")
    if not result:
        raise ExtractionValidationError(
            f"Test at index {index}: 'result' must be a non-empty string"
        )
    optional = {
        attr: _optional_text(raw.get(key), f"tests[{index}].{key}")
        for key, attr in _TEST_FIELDS.items()
    }
    unit = _optional_text(raw.get("unit"), f"tests[{index}].unit") or DEFAULT_VIRAL_LOAD_UNIT
    return TestFields(test_type=test_type, result=result, unit=unit, **optional)


def _optional_text(value: Any, path: str) -> str | None:
    """Strings are stripped (blank -> None); bare numbers are kept as text."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ExtractionValidationError(f"'{path}' must be a string or null")
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        raise ExtractionValidationError(f"'{path}' must be a string or null")
    return value.strip() or None
