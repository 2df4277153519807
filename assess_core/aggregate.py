from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable, List, Mapping, Optional

from . import config
from .errors import AggregationError
from .recommendations import for_risk_level, risk_tier
from .types import ComprehensiveResult, Number, RiskLevel, ScoredResult

log = logging.getLogger(__name__)

_RISK_ORDER = {"low": 0, "medium": 1, "high": 2}


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def overall_risk(sub_results: Iterable[ScoredResult]) -> RiskLevel:
    """Worst tier across sub-results: one severe category outweighs any number of mild ones."""

    worst = "low"
    for res in sub_results:
        tier = risk_tier(res.severity_level)
        if _RISK_ORDER[tier] > _RISK_ORDER[worst]:
            worst = tier
    return worst  # type: ignore[return-value]


def _is_baseline(res: ScoredResult) -> bool:
    if res.baseline_level:
        return res.severity_level == res.baseline_level
    return res.severity_level in ("minimal", "low")


def aggregate(
    sub_results: Mapping[str, ScoredResult],
    expected: Optional[Iterable[str]] = None,
    now: Optional[datetime] = None,
) -> ComprehensiveResult:
    """Combine per-category results into one comprehensive result.

    ``overall_score`` is the rounded mean of the raw sub-scores.  The
    sub-scales have different maxima, so the mean is a display figure and not
    a normalized composite.
    """

    wanted = [c.lower() for c in (expected if expected is not None else config.COMPREHENSIVE_CATEGORIES)]
    subs = {str(k).lower(): v for k, v in sub_results.items()}
    missing = [c for c in wanted if c not in subs]
    if missing or not subs:
        raise AggregationError(missing or wanted or ["<any>"])

    ordered: List[str] = wanted + [c for c in subs if c not in wanted]
    results = [subs[c] for c in ordered]

    total: Number = sum(r.raw_score for r in results)
    overall_score = _round_half_up(total / len(results))
    max_score: Number = sum(r.max_score for r in results)
    risk = overall_risk(results)

    recs: List[str] = [r.interpretation for r in results if not _is_baseline(r)]
    recs.extend(for_risk_level(risk))

    stamp = now or max((r.computed_at for r in results), default=None)
    log.debug("aggregated %s -> score=%s risk=%s", ordered, overall_score, risk)
    return ComprehensiveResult(
        sub_results={c: subs[c] for c in ordered},
        overall_score=overall_score,
        max_score=max_score,
        overall_risk_level=risk,
        recommendations=recs,
        computed_at=stamp,
    )
