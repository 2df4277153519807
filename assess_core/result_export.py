"""Helpers to export a result's per-question audit rows in JSON/CSV formats."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List
import csv
import io

from .scoring import item_contributions
from .types import ScoredResult, TestDefinition

_FIELDS: tuple[str, ...] = (
    "test_code",
    "question_id",
    "question_number",
    "option_id",
    "value",
    "weight",
    "reverse_scored",
    "contribution",
)


def _normalize_row(row: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in _FIELDS:
        val = row.get(key)
        if key in {"question_id", "question_number", "option_id"}:
            try:
                out[key] = int(val)
            except (TypeError, ValueError):
                out[key] = 0
        elif key == "test_code":
            out[key] = "" if val is None else str(val)
        elif key == "reverse_scored":
            out[key] = bool(val)
        else:
            out[key] = 0 if val is None else val
    return out


def audit_rows(defn: TestDefinition, result: ScoredResult) -> List[Dict[str, Any]]:
    """Per-question breakdown of ``result`` recomputed against ``defn``."""

    return [_normalize_row({**r, "test_code": defn.code}) for r in item_contributions(defn, result.responses)]


def to_json(rows: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a JSON-safe payload for response export."""

    normalized: List[Dict[str, Any]] = [_normalize_row(r or {}) for r in rows]
    return {"rows": normalized}


def to_csv(rows: Iterable[Dict[str, Any]]) -> str:
    """Render audit rows as CSV with a fixed header."""

    normalized = [_normalize_row(r or {}) for r in rows]
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_FIELDS)
    writer.writeheader()
    for row in normalized:
        writer.writerow(row)
    return buf.getvalue()


__all__ = ["audit_rows", "to_json", "to_csv"]
