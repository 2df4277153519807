"""Utility helpers for persisting scored results.

Results are written as JSON files under ``DATA_DIR`` with a small index that
maps result ids to their owner and headline figures.  A database-backed store
can replace this module as long as it keeps the same functions.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

log = logging.getLogger(__name__)

DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
RESULTS_DIR = DATA_ROOT / "results"
RESULT_INDEX_PATH = DATA_ROOT / "results_index.json"

_LOCK = threading.Lock()


def _ensure_dirs() -> None:
    RESULTS_DIR.mkdir(parents=True, exist_ok=True)


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        log.warning("unreadable store file %s: %s", path, exc)
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def save_result(result_id: str, result: Dict[str, Any], metadata: Dict[str, Any]) -> None:
    """Persist the result JSON and its index metadata."""

    _ensure_dirs()
    # result file first: an index entry must never point at a missing file
    _write_json(RESULTS_DIR / f"{result_id}.json", result)
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
        index[result_id] = metadata
        _write_json(RESULT_INDEX_PATH, index)


def load_result(result_id: str) -> Optional[Dict[str, Any]]:
    path = RESULTS_DIR / f"{result_id}.json"
    if not path.exists():
        return None
    return _read_json(path, None)


def delete_result(result_id: str) -> bool:
    removed = False
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
        if result_id in index:
            index.pop(result_id, None)
            _write_json(RESULT_INDEX_PATH, index)
            removed = True
    path = RESULTS_DIR / f"{result_id}.json"
    if path.exists():
        path.unlink()
        removed = True
    return removed


def list_results_for_user(user_id: str) -> List[Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
    out: List[Dict[str, Any]] = []
    for rid, meta in index.items():
        if meta.get("userId") == user_id:
            item = {"id": rid}
            item.update({k: v for k, v in meta.items() if k != "id"})
            out.append(item)
    out.sort(key=lambda r: r.get("createdAt", ""), reverse=True)
    return out


def iter_result_ids() -> List[str]:
    index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
    return sorted(index)
