from __future__ import annotations
from typing import Dict, List, Tuple
from . import config

_BY_SEVERITY: Dict[str, Tuple[str, ...]] = {
    "minimal": (
        "Continue monitoring your mental health regularly",
        "Maintain healthy lifestyle habits",
    ),
    "mild": (
        "Consider implementing stress management techniques",
        "Monitor symptoms and consider follow-up assessment",
    ),
    "moderate": (
        "Consider seeking professional consultation",
        "Implement evidence-based self-help strategies",
    ),
    "severe": (
        "Professional consultation is strongly recommended",
        "Consider medication and therapy options",
        "Develop a comprehensive treatment plan",
    ),
}
_BY_SEVERITY["low"] = _BY_SEVERITY["minimal"]
_BY_SEVERITY["moderately_severe"] = _BY_SEVERITY["severe"]
_BY_SEVERITY["high"] = _BY_SEVERITY["severe"]

_BY_TEST_PREFIX: Tuple[Tuple[str, str], ...] = (
    ("PHQ", "Focus on mood regulation and positive activities"),
    ("GAD", "Practice relaxation techniques and mindfulness"),
    ("PSS", "Develop stress management and coping strategies"),
)

_BY_RISK: Dict[str, Tuple[str, str]] = {
    "low": (
        "Continue monitoring your mental health regularly",
        "Maintain healthy lifestyle habits",
    ),
    "medium": (
        "Consider professional consultation for specific concerns",
        "Implement evidence-based self-help strategies",
    ),
    "high": (
        "Professional consultation is strongly recommended",
        "Consider comprehensive treatment plan including medication and therapy",
    ),
}


def risk_tier(severity_level: str) -> str:
    """Map a test-specific severity level to ``high``, ``medium`` or ``low``."""
    lvl = (severity_level or "").lower()
    if lvl in config.HIGH_RISK_LEVELS:
        return "high"
    if lvl in config.MODERATE_RISK_LEVELS:
        return "medium"
    return "low"


def for_single_test(test_code: str, severity_level: str) -> List[str]:
    out = list(_BY_SEVERITY.get((severity_level or "").lower(), ()))
    code = (test_code or "").upper()
    for prefix, text in _BY_TEST_PREFIX:
        if code.startswith(prefix):
            out.append(text)
            break
    return out


def for_risk_level(risk: str) -> List[str]:
    return list(_BY_RISK.get(risk, _BY_RISK["low"]))
