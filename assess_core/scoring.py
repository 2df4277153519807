from __future__ import annotations
from typing import Dict, Iterable, List, Tuple, Any
from .types import AnswerOption, Number, Question, ResponseItem, TestDefinition
from .validators import check_responses


def _as_number(x: float) -> Number:
    return int(x) if float(x).is_integer() else x


def resolve_value(question: Question, option: AnswerOption) -> Number:
    """Value contributed by ``option`` before weighting.

    Reverse-scored questions mirror the value against the question's own
    scale: ``max(option values) - value``.
    """
    if question.is_reverse_scored:
        return question.max_option_value - option.value
    return option.value


def item_contributions(defn: TestDefinition, responses: Iterable[ResponseItem]) -> List[Dict[str, Any]]:
    """Per-question breakdown in question order; validates like ``score``."""
    chosen = check_responses(defn, responses)
    rows: List[Dict[str, Any]] = []
    for q in defn.questions:
        opt = chosen[q.id]
        value = resolve_value(q, opt)
        rows.append({
            "question_id": q.id,
            "question_number": q.number,
            "option_id": opt.id,
            "value": opt.value,
            "resolved": value,
            "weight": opt.weight,
            "contribution": _as_number(value * opt.weight),
            "reverse_scored": q.is_reverse_scored,
        })
    return rows


def score(defn: TestDefinition, responses: Iterable[ResponseItem]) -> Number:
    """Raw score for a complete response set.

    Pure and deterministic; raises ``IncompleteResponseError``,
    ``DuplicateResponseError`` or ``InvalidOptionError`` on bad input.
    """
    return score_with_breakdown(defn, responses)[0]


def score_with_breakdown(defn: TestDefinition, responses: Iterable[ResponseItem]) -> Tuple[Number, List[Dict[str, Any]]]:
    rows = item_contributions(defn, responses)
    total: Number = 0
    for row in rows:
        total += row["contribution"]
    return _as_number(total), rows
