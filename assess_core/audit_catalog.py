from __future__ import annotations

import argparse
import json
import logging
import tempfile
from pathlib import Path
from typing import Iterable, List

from . import config
from .catalog import load_static_catalog
from .classify import ordered_ranges
from .types import Question, TestDefinition

log = logging.getLogger(__name__)

DEFAULT_SUMMARY_PATH = Path(tempfile.gettempdir()) / "catalog_audit.json"


def _is_int(x: object) -> bool:
    return float(x).is_integer()  # type: ignore[arg-type]


def _question_warnings(code: str, q: Question) -> List[str]:
    out: List[str] = []
    if not q.options:
        out.append(f"{code} Q{q.number} has no answer options")
        return out
    ids = [o.id for o in q.options]
    if len(set(ids)) != len(ids):
        out.append(f"{code} Q{q.number} has duplicate option ids")
    values = [o.value for o in sorted(q.options, key=lambda o: o.display_order)]
    if len(set(values)) != len(values):
        out.append(f"{code} Q{q.number} has duplicate option values {values}")
    else:
        rising = all(b > a for a, b in zip(values, values[1:]))
        falling = all(b < a for a, b in zip(values, values[1:]))
        if not (rising or falling):
            out.append(f"{code} Q{q.number} option values are not monotonic {values}")
    return out


def _range_warnings(defn: TestDefinition) -> List[str]:
    code = defn.code
    ranges = ordered_ranges(defn.scoring_ranges)
    if not ranges:
        return [f"{code} has no scoring ranges"]
    out: List[str] = []
    discrete = _is_int(defn.max_score) and all(_is_int(r.min_score) and _is_int(r.max_score) for r in ranges)
    step = 1 if discrete else 0
    for r in ranges:
        if r.min_score > r.max_score:
            out.append(f"{code} range {r.severity_level} has min {r.min_score} > max {r.max_score}")
    if ranges[0].min_score > 0:
        out.append(f"{code} scores 0..{ranges[0].min_score - step} are not covered")
    for prev, nxt in zip(ranges, ranges[1:]):
        if nxt.min_score > prev.max_score + step:
            out.append(f"{code} gap between {prev.severity_level} (..{prev.max_score}) and "
                       f"{nxt.severity_level} ({nxt.min_score}..)")
        elif nxt.min_score <= prev.max_score and (discrete or nxt.min_score < prev.max_score):
            out.append(f"{code} overlap between {prev.severity_level} (..{prev.max_score}) and "
                       f"{nxt.severity_level} ({nxt.min_score}..)")
    top = max(r.max_score for r in ranges)
    if top < defn.max_score:
        out.append(f"{code} scores above {top} (max possible {defn.max_score}) are not covered")
    return out


def audit_definitions(defs: Iterable[TestDefinition]) -> dict[str, object]:
    tests: dict[str, dict[str, object]] = {}
    warnings: list[str] = []
    totals = {"tests": 0, "questions": 0, "reverse_scored": 0}

    for defn in defs:
        test_warnings: list[str] = []
        qids = [q.id for q in defn.questions]
        if len(set(qids)) != len(qids):
            test_warnings.append(f"{defn.code} has duplicate question ids")
        numbers = [q.number for q in defn.questions]
        if len(set(numbers)) != len(numbers):
            test_warnings.append(f"{defn.code} has duplicate question numbers")
        for q in defn.questions:
            test_warnings.extend(_question_warnings(defn.code, q))
        test_warnings.extend(_range_warnings(defn))

        reverse = sum(1 for q in defn.questions if q.is_reverse_scored)
        tests[defn.code] = {
            "category": defn.category,
            "questions": defn.total_questions,
            "reverse_scored": reverse,
            "max_score": defn.max_score,
            "ranges": len(defn.scoring_ranges),
            "warnings": test_warnings,
        }
        warnings.extend(test_warnings)
        totals["tests"] += 1
        totals["questions"] += defn.total_questions
        totals["reverse_scored"] += reverse

    return {"tests": tests, "warnings": warnings, "totals": totals}


def print_report(summary: dict[str, object]) -> None:
    tests: dict[str, dict[str, object]] = summary["tests"]  # type: ignore[assignment]
    print("=== Catalog Audit ===")
    for code in sorted(tests):
        data = tests[code]
        print(f"\nTest: {code} ({data['category']})")
        print(f"  questions={data['questions']:3d}  reverse={data['reverse_scored']:2d}  "
              f"max_score={data['max_score']}  ranges={data['ranges']}")

    warnings: list[str] = summary["warnings"]  # type: ignore[assignment]
    if warnings:
        print("\nWarnings:")
        for msg in warnings:
            print(f" - {msg}")
    else:
        print("\nNo warnings.")

    print("\nTotals:", summary["totals"])


def write_summary(summary: dict[str, object], path: Path = DEFAULT_SUMMARY_PATH) -> str:
    text = json.dumps(summary, indent=2, sort_keys=True)
    path.write_text(text + "\n", encoding="utf-8")
    return text


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Check test definitions for scoring defects.")
    ap.add_argument("--catalog", default=config.CATALOG_PATH, help="catalog snapshot JSON")
    ap.add_argument("--out", default=str(DEFAULT_SUMMARY_PATH), help="where to write the JSON summary")
    args = ap.parse_args(argv)

    catalog = load_static_catalog(args.catalog)
    summary = audit_definitions(catalog.list_tests())
    print_report(summary)
    write_summary(summary, Path(args.out))
    if summary["warnings"]:
        log.warning("catalog %s has %d defect(s)", args.catalog, len(summary["warnings"]))  # type: ignore[arg-type]
        return 2
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL, format="[%(levelname)s] %(message)s")
    raise SystemExit(main())
