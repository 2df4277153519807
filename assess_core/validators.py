from __future__ import annotations
from collections import Counter
from typing import Dict, Iterable, List, Sequence
from .errors import DuplicateResponseError, IncompleteResponseError, InvalidOptionError, ValidationError
from .types import AnswerOption, Question, ResponseItem, TestDefinition, ValueResponse


def check_responses(defn: TestDefinition, responses: Iterable[ResponseItem]) -> Dict[int, AnswerOption]:
    """Gate a response set before scoring.

    Returns ``{question_id: chosen option}`` for every question of ``defn``.
    Raises a ``ValidationError`` subclass on duplicates, unknown questions,
    unanswered questions or options that belong to another question.
    """
    items = list(responses)
    counts = Counter(r.question_id for r in items)
    dups = [qid for qid, n in counts.items() if n > 1]
    if dups:
        raise DuplicateResponseError(defn.code, dups)

    by_id = {q.id: q for q in defn.questions}
    for r in items:
        if r.question_id not in by_id:
            raise InvalidOptionError(
                defn.code, r.question_id, r.selected_option_id,
                reason=f"question {r.question_id} is not part of this test",
            )

    missing = [qid for qid in by_id if qid not in counts]
    if missing:
        raise IncompleteResponseError(defn.code, missing)

    chosen: Dict[int, AnswerOption] = {}
    for r in items:
        opt = by_id[r.question_id].option(r.selected_option_id)
        if opt is None:
            raise InvalidOptionError(defn.code, r.question_id, r.selected_option_id)
        chosen[r.question_id] = opt
    return chosen


def _option_for_value(q: Question, value: float) -> AnswerOption | None:
    return next((o for o in q.options if o.value == value), None)


def value_responses_to_items(defn: TestDefinition, values: Sequence[ValueResponse],
                             offset: int = 0) -> List[ResponseItem]:
    """Map fallback answers ``(question_number, raw_value)`` onto option ids.

    ``offset`` is subtracted from ``question_number`` when the numbers come
    from a combined battery (PSS-10 item 1 is number 17 there). Errors name
    catalog question ids, like ``check_responses``.
    """
    resolved: List[tuple[Question, ValueResponse]] = []
    for v in values:
        q = defn.question_by_number(v.question_number - offset)
        if q is None:
            raise ValidationError(
                f"{defn.code}: question number {v.question_number} is not part of this test"
            )
        resolved.append((q, v))

    counts = Counter(q.id for q, _v in resolved)
    dups = [qid for qid, c in counts.items() if c > 1]
    if dups:
        raise DuplicateResponseError(defn.code, dups)

    out: List[ResponseItem] = []
    for q, v in resolved:
        opt = _option_for_value(q, v.raw_value)
        if opt is None:
            raise InvalidOptionError(
                defn.code, q.id, v.raw_value,
                reason=f"value {v.raw_value!r} is not on the answer scale of question {q.number}",
            )
        out.append(ResponseItem(question_id=q.id, selected_option_id=opt.id))
    return out
