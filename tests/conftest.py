from __future__ import annotations

from datetime import datetime, timezone

import pytest

from assess_core.catalog import StaticCatalog, load_static_catalog
from assess_core.types import AnswerOption, Question, ResponseItem, ScoringRange, TestDefinition

FIXED_NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def build_synthetic_definition(
    *,
    code: str = "SYN4",
    category: str = "synthetic",
    n_questions: int = 4,
    scale: tuple[int, ...] = (0, 1, 2, 3),
    reverse: tuple[int, ...] = (),
    ranges: list[tuple[int, int, str]] | None = None,
    weights: dict[int, float] | None = None,
) -> TestDefinition:
    """Create a deterministic definition for tests; ``reverse`` holds question numbers."""

    questions = []
    for n in range(1, n_questions + 1):
        qid = 100 + n
        options = tuple(
            AnswerOption(
                id=qid * 10 + pos,
                text=f"opt {value}",
                value=value,
                weight=(weights or {}).get(n, 1),
                display_order=pos,
            )
            for pos, value in enumerate(scale)
        )
        questions.append(
            Question(id=qid, number=n, text=f"{code} question {n}", options=options, is_reverse_scored=n in reverse)
        )
    top = n_questions * max(scale)
    if ranges is None:
        mid = top // 2
        ranges = [(0, mid, "low"), (mid + 1, top, "high")]
    return TestDefinition(
        code=code,
        name=f"{code} synthetic",
        category=category,
        questions=tuple(questions),
        scoring_ranges=tuple(
            ScoringRange(min_score=lo, max_score=hi, severity_label=lvl.title(), severity_level=lvl,
                         interpretation=f"{lvl} interpretation")
            for lo, hi, lvl in ranges
        ),
    )


def answers_for(defn: TestDefinition, values: list[int]) -> list[ResponseItem]:
    """Pick, for each question in order, the option carrying ``values[i]``."""

    out = []
    for q, v in zip(defn.questions, values):
        opt = next(o for o in q.options if o.value == v)
        out.append(ResponseItem(question_id=q.id, selected_option_id=opt.id))
    return out


@pytest.fixture(scope="session")
def catalog() -> StaticCatalog:
    return load_static_catalog()


@pytest.fixture
def phq9(catalog) -> TestDefinition:
    return catalog.get_test_definition("PHQ9")


@pytest.fixture
def gad7(catalog) -> TestDefinition:
    return catalog.get_test_definition("GAD7")


@pytest.fixture
def pss10(catalog) -> TestDefinition:
    return catalog.get_test_definition("PSS10")


@pytest.fixture
def synthetic() -> TestDefinition:
    return build_synthetic_definition()
