from __future__ import annotations

import pytest

from assess_core.errors import DuplicateResponseError, IncompleteResponseError, InvalidOptionError
from assess_core.scoring import item_contributions, score
from assess_core.types import ResponseItem

from tests.conftest import answers_for, build_synthetic_definition


def test_score_is_deterministic(phq9):
    responses = answers_for(phq9, [3, 2, 1, 0, 3, 2, 1, 0, 1])
    first = score(phq9, responses)
    assert first == 13
    assert score(phq9, responses) == first
    assert score(phq9, list(reversed(responses))) == first, "order of answers must not matter"


def test_reverse_scored_question_mirrors_its_own_scale():
    defn = build_synthetic_definition(n_questions=1, reverse=(1,), ranges=[(0, 3, "any")])
    assert score(defn, answers_for(defn, [0])) == 3
    assert score(defn, answers_for(defn, [3])) == 0
    assert score(defn, answers_for(defn, [1])) == 2


def test_reverse_scoring_uses_non_zero_based_scale():
    defn = build_synthetic_definition(n_questions=2, scale=(1, 2, 3, 4, 5), reverse=(2,), ranges=[(0, 10, "any")])
    # forward item answers 5, reversed item answers 1 -> 5 + (5 - 1)
    assert score(defn, answers_for(defn, [5, 1])) == 9


def test_weights_multiply_resolved_values():
    defn = build_synthetic_definition(n_questions=2, weights={1: 2}, ranges=[(0, 9, "any")])
    assert score(defn, answers_for(defn, [3, 1])) == 7


def test_fractional_weights_keep_fraction():
    defn = build_synthetic_definition(n_questions=2, weights={2: 0.5}, ranges=[(0, 5, "any")])
    total = score(defn, answers_for(defn, [1, 3]))
    assert total == pytest.approx(2.5)
    assert isinstance(score(defn, answers_for(defn, [1, 2])), int)


def test_pss10_all_sometimes_scores_twenty(pss10):
    assert score(pss10, answers_for(pss10, [2] * 10)) == 20


def test_pss10_reverse_items(pss10):
    # items 4, 5, 7 and 8 are reverse-scored: answering 0 there contributes 4 each
    values = [0, 0, 0, 0, 0, 0, 0, 0, 0, 0]
    assert score(pss10, answers_for(pss10, values)) == 16
    rows = item_contributions(pss10, answers_for(pss10, values))
    reversed_numbers = [r["question_number"] for r in rows if r["reverse_scored"]]
    assert reversed_numbers == [4, 5, 7, 8]


def test_missing_answer_names_question(phq9):
    responses = answers_for(phq9, [1] * 9)
    dropped = responses.pop(4)
    with pytest.raises(IncompleteResponseError) as err:
        score(phq9, responses)
    assert err.value.question_ids == [dropped.question_id]
    assert str(dropped.question_id) in err.value.message


def test_duplicate_answers_are_rejected(phq9):
    responses = answers_for(phq9, [1] * 9)
    first = phq9.questions[0]
    responses.append(ResponseItem(question_id=first.id, selected_option_id=first.options[0].id))
    with pytest.raises(DuplicateResponseError) as err:
        score(phq9, responses)
    assert err.value.question_ids == [first.id]


def test_option_from_another_question_is_rejected(phq9):
    responses = answers_for(phq9, [0] * 9)
    q1, q2 = phq9.questions[0], phq9.questions[1]
    responses[0] = ResponseItem(question_id=q1.id, selected_option_id=q2.options[0].id)
    with pytest.raises(InvalidOptionError) as err:
        score(phq9, responses)
    assert err.value.question_ids == [q1.id]


def test_unknown_question_is_rejected(synthetic):
    responses = answers_for(synthetic, [0, 0, 0, 0])
    responses.append(ResponseItem(question_id=999, selected_option_id=1))
    with pytest.raises(InvalidOptionError):
        score(synthetic, responses)
