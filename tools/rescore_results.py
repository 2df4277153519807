# tools/rescore_results.py
from __future__ import annotations
import argparse, logging
from api.storage import iter_result_ids, load_result
from assess_core import config
from assess_core.catalog import load_static_catalog
from assess_core.engine import is_consistent, rescore
from assess_core.errors import AssessmentError
from assess_core.reporting import result_from_wire, stored_sub_results

log = logging.getLogger("tools.rescore_results")


def check_all(catalog) -> dict:
    checked = drifted = failed = 0
    for rid in iter_result_ids():
        payload = load_result(rid)
        if not payload:
            continue
        for key, sub in stored_sub_results(payload).items():
            checked += 1
            old = result_from_wire(sub)
            try:
                fresh = rescore(old, catalog=catalog)
            except AssessmentError as e:
                failed += 1
                log.error("%s/%s cannot be rescored: %s", rid, key, e)
                continue
            if not is_consistent(old, fresh):
                drifted += 1
                log.warning("%s/%s drifted: %s/%s -> %s/%s", rid, key, old.raw_score,
                            old.severity_level, fresh.raw_score, fresh.severity_level)
    return {"checked": checked, "drifted": drifted, "failed": failed}


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Re-score stored results and report drift.")
    ap.add_argument("--catalog", default=None, help="catalog snapshot JSON (defaults to the bundled one)")
    args = ap.parse_args(argv)
    logging.basicConfig(level=config.LOG_LEVEL, format="[%(levelname)s] %(message)s")
    summary = check_all(load_static_catalog(args.catalog))
    print(f"checked={summary['checked']} drifted={summary['drifted']} failed={summary['failed']}")
    return 2 if summary["drifted"] or summary["failed"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
