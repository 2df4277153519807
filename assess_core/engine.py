# assess_core/engine.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Optional, Sequence
from datetime import datetime, timezone
from collections import defaultdict
import logging

from . import config
from .aggregate import aggregate
from .catalog import default_catalog
from .classify import baseline_level, classify as classify_score
from .errors import CatalogError, SessionStateError, ValidationError, InvalidOptionError
from .recommendations import for_single_test
from .scoring import score_with_breakdown
from .types import (
    Classification,
    ComprehensiveResult,
    Number,
    ResponseItem,
    ScoredResult,
    TestDefinition,
    ValueResponse,
)
from .validators import value_responses_to_items


log = logging.getLogger(__name__)

SessionState = Literal["collecting", "scored", "classified", "finalized", "aborted"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AssessmentSession:
    """One submission moving through collecting -> scored -> classified -> finalized.

    Any validation or catalog failure moves the session to ``aborted``; an
    aborted session is dead and the caller starts a new one.
    """

    definition: TestDefinition
    state: SessionState = "collecting"
    raw_score: Optional[Number] = None
    classification: Optional[Classification] = None
    result: Optional[ScoredResult] = None
    error: Optional[Exception] = None
    _responses: List[ResponseItem] = field(default_factory=list)

    @classmethod
    def from_responses(cls, definition: TestDefinition, responses: Iterable[ResponseItem]) -> "AssessmentSession":
        # submitted sets are kept verbatim so duplicates surface at scoring time
        return cls(definition=definition, _responses=list(responses))

    def _require(self, state: SessionState, action: str) -> None:
        if self.state != state:
            raise SessionStateError(f"cannot {action} while {self.state} (needs {state})")

    def _abort(self, exc: Exception) -> None:
        self.state = "aborted"
        self.error = exc
        if isinstance(exc, CatalogError):
            log.error("catalog defect while assessing %s: %s", self.definition.code, exc)
        else:
            log.info("assessment %s rejected: %s", self.definition.code, exc)

    @property
    def responses(self) -> tuple[ResponseItem, ...]:
        return tuple(self._responses)

    def answer(self, question_id: int, option_id: int) -> None:
        """Record or replace the answer to one question."""
        self._require("collecting", "answer")
        q = self.definition.question(question_id)
        if q is None or q.option(option_id) is None:
            raise InvalidOptionError(self.definition.code, question_id, option_id)
        self._responses = [r for r in self._responses if r.question_id != question_id]
        self._responses.append(ResponseItem(question_id=question_id, selected_option_id=option_id))

    def missing(self) -> List[int]:
        answered = {r.question_id for r in self._responses}
        return [q.id for q in self.definition.questions if q.id not in answered]

    def score(self) -> Number:
        self._require("collecting", "score")
        try:
            total, _rows = score_with_breakdown(self.definition, self._responses)
        except ValidationError as exc:
            self._abort(exc)
            raise
        self.raw_score = total
        self.state = "scored"
        return total

    def classify(self) -> Classification:
        self._require("scored", "classify")
        try:
            cls_ = classify_score(self.raw_score, self.definition.scoring_ranges, self.definition.code)
        except CatalogError as exc:
            self._abort(exc)
            raise
        self.classification = cls_
        self.state = "classified"
        return cls_

    def finalize(self, now: Optional[datetime] = None) -> ScoredResult:
        self._require("classified", "finalize")
        c = self.classification
        d = self.definition
        self.result = ScoredResult(
            test_code=d.code,
            test_name=d.name,
            category=d.category,
            raw_score=self.raw_score,
            max_score=d.max_score,
            severity_level=c.severity_level,
            severity_label=c.severity_label,
            interpretation=c.interpretation,
            responses=self.responses,
            computed_at=now or _utcnow(),
            color_code=c.color_code,
            baseline_level=baseline_level(d.scoring_ranges),
            recommendations=tuple(for_single_test(d.code, c.severity_level)),
        )
        self.state = "finalized"
        return self.result

    def run(self, now: Optional[datetime] = None) -> ScoredResult:
        self.score()
        self.classify()
        return self.finalize(now)


def assess(definition: TestDefinition, responses: Iterable[ResponseItem],
           now: Optional[datetime] = None) -> ScoredResult:
    """Score, classify and finalize one submission."""
    return AssessmentSession.from_responses(definition, responses).run(now)


def battery_offsets(definitions: Sequence[TestDefinition]) -> Dict[str, int]:
    """Question-number offset of each sub-test inside the combined battery."""
    offsets: Dict[str, int] = {}
    running = 0
    for d in definitions:
        offsets[d.category] = running
        running += d.total_questions
    return offsets


def assess_comprehensive(
    values: Iterable[ValueResponse],
    catalog=None,
    now: Optional[datetime] = None,
    categories: Optional[Sequence[str]] = None,
) -> ComprehensiveResult:
    """Score the combined depression/anxiety/stress battery.

    Answers carry their position in the combined list and the chosen option
    value; each category is mapped back onto its own test definition and
    scored through ``assess`` so local and remote scoring cannot diverge.
    """
    cat = catalog or default_catalog()
    wanted = [c.lower() for c in (categories or config.COMPREHENSIVE_CATEGORIES)]
    defs: List[TestDefinition] = []
    for c in wanted:
        code = config.COMPREHENSIVE_TESTS.get(c)
        if code is None:
            candidates = cat.list_tests(c)
            if not candidates:
                raise CatalogError(f"no test configured for category {c!r}")
            defs.append(candidates[0])
        else:
            defs.append(cat.get_test_definition(code))

    grouped: Dict[str, List[ValueResponse]] = defaultdict(list)
    for v in values:
        key = (v.category or "").lower()
        if key not in wanted:
            raise ValidationError(f"response for question {v.question_number} has unknown category {v.category!r}",
                                  [v.question_number])
        grouped[key].append(v)

    offsets = battery_offsets(defs)
    stamp = now or _utcnow()
    subs: Dict[str, ScoredResult] = {}
    for d in defs:
        items = value_responses_to_items(d, grouped.get(d.category, []), offset=offsets[d.category])
        subs[d.category] = assess(d, items, now=stamp)
    return aggregate(subs, expected=wanted, now=stamp)


def rescore(result: ScoredResult, catalog=None, now: Optional[datetime] = None) -> ScoredResult:
    """Re-run scoring and classification on a stored result's responses."""
    cat = catalog or default_catalog()
    return assess(cat.get_test_definition(result.test_code), result.responses, now=now)


def is_consistent(stored: ScoredResult, fresh: ScoredResult) -> bool:
    return stored.raw_score == fresh.raw_score and stored.severity_level == fresh.severity_level
