# assess_core/classify.py
from __future__ import annotations
import logging
from typing import Iterable, List, Optional
from .errors import UnclassifiableScoreError
from .types import Classification, Number, ScoringRange

log = logging.getLogger(__name__)


def ordered_ranges(ranges: Iterable[ScoringRange]) -> List[ScoringRange]:
    return sorted(ranges, key=lambda r: r.min_score)


def classify(score: Number, ranges: Iterable[ScoringRange], test_code: str = "") -> Classification:
    """First range (ascending ``min_score``) with ``min <= score <= max`` wins."""
    for r in ordered_ranges(ranges):
        if r.contains(score):
            return Classification(
                severity_level=r.severity_level,
                severity_label=r.severity_label,
                interpretation=r.interpretation,
                color_code=r.color_code,
            )
    log.error("catalog defect: score %s matches no scoring range (test=%s)", score, test_code or "?")
    raise UnclassifiableScoreError(score, test_code)


def baseline_level(ranges: Iterable[ScoringRange]) -> Optional[str]:
    """Severity level of the lowest band, i.e. the best outcome for the test."""
    ordered = ordered_ranges(ranges)
    return ordered[0].severity_level if ordered else None
