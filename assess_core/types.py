from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Literal, Tuple, Union
RiskLevel = Literal["low","medium","high"]
Number = Union[int, float]
@dataclass(frozen=True)
class AnswerOption:
    id: int; text: str; value: Number
    weight: Number = 1
    display_order: int = 0
@dataclass(frozen=True)
class Question:
    id: int; number: int; text: str
    options: Tuple[AnswerOption, ...] = ()
    is_reverse_scored: bool = False

    def option(self, option_id: int) -> Optional[AnswerOption]:
        return next((o for o in self.options if o.id == option_id), None)

    @property
    def max_option_value(self) -> Number:
        return max((o.value for o in self.options), default=0)
@dataclass(frozen=True)
class ScoringRange:
    min_score: Number; max_score: Number
    severity_label: str; severity_level: str; interpretation: str
    color_code: Optional[str] = None

    def contains(self, score: Number) -> bool:
        return self.min_score <= score <= self.max_score
@dataclass(frozen=True)
class TestDefinition:
    __test__ = False
    code: str; name: str; category: str
    questions: Tuple[Question, ...] = ()
    scoring_ranges: Tuple[ScoringRange, ...] = ()
    description: str = ""

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def max_score(self) -> Number:
        total: Number = 0
        for q in self.questions:
            total += max((o.value * o.weight for o in q.options), default=0)
        return total

    def question(self, question_id: int) -> Optional[Question]:
        return next((q for q in self.questions if q.id == question_id), None)

    def question_by_number(self, number: int) -> Optional[Question]:
        return next((q for q in self.questions if q.number == number), None)
@dataclass(frozen=True)
class ResponseItem:
    question_id: int; selected_option_id: int
@dataclass(frozen=True)
class ValueResponse:
    """Fallback-path answer: a position in the combined battery and the option value."""
    question_number: int; raw_value: Number; category: str
@dataclass(frozen=True)
class Classification:
    severity_level: str; severity_label: str; interpretation: str
    color_code: Optional[str] = None
@dataclass(frozen=True)
class ScoredResult:
    test_code: str
    test_name: str
    category: str
    raw_score: Number
    max_score: Number
    severity_level: str
    severity_label: str
    interpretation: str
    responses: Tuple[ResponseItem, ...]
    computed_at: datetime
    color_code: Optional[str] = None
    baseline_level: Optional[str] = None
    recommendations: Tuple[str, ...] = ()

    @property
    def percentage(self) -> int:
        if not self.max_score:
            return 0
        return int(round(self.raw_score / self.max_score * 100))
@dataclass(frozen=True)
class ComprehensiveResult:
    sub_results: Dict[str, ScoredResult]
    overall_score: Number
    max_score: Number
    overall_risk_level: RiskLevel
    recommendations: List[str] = field(default_factory=list)
    computed_at: Optional[datetime] = None
