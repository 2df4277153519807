"""Error taxonomy for catalog lookups, response validation and scoring.

Two families matter at the boundary:

* ``ValidationError`` and ``AggregationError`` describe bad caller input.  The
  caller re-prompts the user; nothing is retried automatically.
* ``CatalogError`` describes a defect in reference data (for example a score
  that no configured range covers).  These go to operators, never to users.
"""
from __future__ import annotations

from typing import Iterable, List, Optional


class AssessmentError(Exception):
    """Root of every error raised by ``assess_core``."""

    code: str = "assessment_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class NotFoundError(AssessmentError):
    code = "not_found"

    def __init__(self, test_code: str) -> None:
        super().__init__(f"unknown test code: {test_code}")
        self.test_code = test_code


class ValidationError(AssessmentError):
    code = "validation_error"

    def __init__(self, message: str, question_ids: Optional[Iterable[int]] = None) -> None:
        super().__init__(message)
        self.question_ids: List[int] = sorted(set(question_ids or []))

    def to_dict(self) -> dict:
        out = super().to_dict()
        if self.question_ids:
            out["questionIds"] = list(self.question_ids)
        return out


class IncompleteResponseError(ValidationError):
    code = "incomplete_response"

    def __init__(self, test_code: str, missing: Iterable[int]) -> None:
        missing = sorted(set(missing))
        ids = ", ".join(str(q) for q in missing)
        super().__init__(f"{test_code}: unanswered question(s) {ids}", missing)
        self.test_code = test_code


class DuplicateResponseError(ValidationError):
    code = "duplicate_response"

    def __init__(self, test_code: str, duplicated: Iterable[int]) -> None:
        duplicated = sorted(set(duplicated))
        ids = ", ".join(str(q) for q in duplicated)
        super().__init__(f"{test_code}: more than one answer for question(s) {ids}", duplicated)
        self.test_code = test_code


class InvalidOptionError(ValidationError):
    code = "invalid_option"

    def __init__(self, test_code: str, question_id: int, option: object, reason: str = "") -> None:
        detail = reason or f"option {option!r} does not belong to question {question_id}"
        super().__init__(f"{test_code}: {detail}", [question_id])
        self.test_code = test_code
        self.option = option


class AggregationError(AssessmentError):
    code = "aggregation_error"

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = sorted(set(missing))
        super().__init__("missing sub-result(s) for: " + ", ".join(self.missing))

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["missingCategories"] = list(self.missing)
        return out


class CatalogError(AssessmentError):
    """Reference data is malformed; not recoverable by the user."""

    code = "catalog_defect"


class UnclassifiableScoreError(CatalogError):
    code = "catalog_defect"

    def __init__(self, score: float, test_code: str = "") -> None:
        where = f" for {test_code}" if test_code else ""
        super().__init__(f"score {score} falls outside every scoring range{where}")
        self.score = score
        self.test_code = test_code


class SessionStateError(AssessmentError):
    code = "session_state"


__all__ = [
    "AssessmentError",
    "NotFoundError",
    "ValidationError",
    "IncompleteResponseError",
    "DuplicateResponseError",
    "InvalidOptionError",
    "AggregationError",
    "CatalogError",
    "UnclassifiableScoreError",
    "SessionStateError",
]
