from __future__ import annotations

import pytest

from assess_core.aggregate import aggregate, overall_risk
from assess_core.errors import AggregationError
from assess_core.types import ScoredResult

from tests.conftest import FIXED_NOW


def _result(category: str, score: int, level: str, baseline: str, max_score: int = 27) -> ScoredResult:
    return ScoredResult(
        test_code=category.upper(),
        test_name=category,
        category=category,
        raw_score=score,
        max_score=max_score,
        severity_level=level,
        severity_label=level.title(),
        interpretation=f"{category} is {level}",
        responses=(),
        computed_at=FIXED_NOW,
        baseline_level=baseline,
    )


def test_one_severe_category_dominates():
    subs = {
        "depression": _result("depression", 2, "minimal", "minimal"),
        "anxiety": _result("anxiety", 18, "severe", "minimal", 21),
        "stress": _result("stress", 5, "low", "low", 40),
    }
    res = aggregate(subs)
    assert res.overall_risk_level == "high"


def test_moderate_without_high_is_medium():
    subs = {
        "depression": _result("depression", 11, "moderate", "minimal"),
        "anxiety": _result("anxiety", 6, "mild", "minimal", 21),
        "stress": _result("stress", 5, "low", "low", 40),
    }
    assert aggregate(subs).overall_risk_level == "medium"


def test_mild_everywhere_is_low():
    subs = [_result("depression", 6, "mild", "minimal"), _result("anxiety", 6, "mild", "minimal", 21)]
    assert overall_risk(subs) == "low"


def test_overall_score_is_rounded_mean_of_raw_scores():
    subs = {
        "depression": _result("depression", 10, "moderate", "minimal"),
        "anxiety": _result("anxiety", 5, "mild", "minimal", 21),
        "stress": _result("stress", 20, "moderate", "low", 40),
    }
    res = aggregate(subs)
    # (10 + 5 + 20) / 3 = 11.67
    assert res.overall_score == 12
    assert res.max_score == 88


def test_half_rounds_up():
    subs = {
        "depression": _result("depression", 1, "minimal", "minimal"),
        "anxiety": _result("anxiety", 2, "minimal", "minimal", 21),
    }
    assert aggregate(subs, expected=["depression", "anxiety"]).overall_score == 2


def test_recommendations_list_non_baseline_interpretations_then_generic():
    subs = {
        "depression": _result("depression", 2, "minimal", "minimal"),
        "anxiety": _result("anxiety", 18, "severe", "minimal", 21),
        "stress": _result("stress", 20, "moderate", "low", 40),
    }
    recs = aggregate(subs).recommendations
    assert recs[0] == "anxiety is severe"
    assert recs[1] == "stress is moderate"
    assert "depression is minimal" not in recs
    assert recs[2:] == [
        "Professional consultation is strongly recommended",
        "Consider comprehensive treatment plan including medication and therapy",
    ]


def test_all_baseline_gets_maintenance_advice():
    subs = {
        "depression": _result("depression", 1, "minimal", "minimal"),
        "anxiety": _result("anxiety", 0, "minimal", "minimal", 21),
        "stress": _result("stress", 3, "low", "low", 40),
    }
    res = aggregate(subs)
    assert res.overall_risk_level == "low"
    assert res.recommendations == [
        "Continue monitoring your mental health regularly",
        "Maintain healthy lifestyle habits",
    ]


def test_missing_category_raises():
    subs = {"depression": _result("depression", 1, "minimal", "minimal")}
    with pytest.raises(AggregationError) as err:
        aggregate(subs)
    assert err.value.missing == ["anxiety", "stress"]


def test_empty_input_raises():
    with pytest.raises(AggregationError):
        aggregate({}, expected=[])
