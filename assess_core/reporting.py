# assess_core/reporting.py
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from .types import ComprehensiveResult, ResponseItem, ScoredResult


# -------- utils: make any object JSON-safe ----------
def _to_basic(x: Any) -> Any:
    if x is None or isinstance(x, (bool, int, float, str)):
        return x
    if isinstance(x, datetime):
        return x.isoformat()
    if isinstance(x, dict):
        return {str(k): _to_basic(v) for k, v in x.items()}
    if isinstance(x, (list, tuple, set)):
        return [_to_basic(v) for v in x]
    if hasattr(x, "__dict__"):
        return _to_basic(vars(x))
    return str(x)


def _parse_ts(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    return datetime.now(timezone.utc)


def response_to_wire(r: ResponseItem) -> Dict[str, int]:
    return {"questionId": r.question_id, "optionId": r.selected_option_id}


# -------- public API ----------
def to_wire(result: ScoredResult) -> Dict[str, Any]:
    """Render a ``ScoredResult`` with the HTTP contract's field names."""
    return {
        "testCode": result.test_code,
        "testName": result.test_name,
        "category": result.category,
        "calculatedScore": result.raw_score,
        "maxScore": result.max_score,
        "percentage": result.percentage,
        "severityLevel": result.severity_level,
        "severityLabel": result.severity_label,
        "interpretation": result.interpretation,
        "colorCode": result.color_code,
        "baselineLevel": result.baseline_level,
        "recommendations": list(result.recommendations),
        "rawResponses": [response_to_wire(r) for r in result.responses],
        "createdAt": _to_basic(result.computed_at),
    }


def result_from_wire(payload: Mapping[str, Any]) -> ScoredResult:
    """Inverse of ``to_wire``; used to re-score stored results."""
    responses = tuple(
        ResponseItem(
            question_id=int(r.get("questionId", r.get("question_id"))),
            selected_option_id=int(r.get("optionId", r.get("option_id", r.get("selected_option_id")))),
        )
        for r in payload.get("rawResponses") or []
    )
    return ScoredResult(
        test_code=str(payload.get("testCode", "")),
        test_name=str(payload.get("testName", "")),
        category=str(payload.get("category", "")),
        raw_score=payload.get("calculatedScore", 0),
        max_score=payload.get("maxScore", 0),
        severity_level=str(payload.get("severityLevel", "")),
        severity_label=str(payload.get("severityLabel", "")),
        interpretation=str(payload.get("interpretation", "")),
        responses=responses,
        computed_at=_parse_ts(payload.get("createdAt")),
        color_code=payload.get("colorCode"),
        baseline_level=payload.get("baselineLevel"),
        recommendations=tuple(payload.get("recommendations") or ()),
    )


def comprehensive_to_wire(result: ComprehensiveResult) -> Dict[str, Any]:
    out: Dict[str, Any] = {cat: to_wire(sub) for cat, sub in result.sub_results.items()}
    out.update({
        "assessmentType": "COMPREHENSIVE",
        "totalScore": result.overall_score,
        "maxScore": result.max_score,
        "overallRiskLevel": result.overall_risk_level,
        "recommendations": list(result.recommendations),
        "createdAt": _to_basic(result.computed_at),
    })
    return out


def stored_sub_results(payload: Mapping[str, Any]) -> Dict[str, Mapping[str, Any]]:
    """Split a stored payload into its single-test parts, keyed by category."""
    if payload.get("assessmentType") == "COMPREHENSIVE":
        return {k: v for k, v in payload.items() if isinstance(v, Mapping) and "testCode" in v}
    return {str(payload.get("category") or "result"): payload}
