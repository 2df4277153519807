"""Test catalog: immutable test definitions shared by every scoring request.

Two sources implement the same lookup interface:

* ``StaticCatalog`` reads the snapshot bundled in ``data/catalog.json``.
* ``RemoteCatalog`` fetches definitions from a catalog service over HTTP,
  caches them for ``CATALOG_CACHE_TTL_S`` and falls back to a static catalog
  when the service cannot be reached.

Callers only ever see ``get_test_definition(code)``; choosing a source is done
once by ``default_catalog()``.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import httpx

from . import config
from .errors import CatalogError, NotFoundError
from .types import AnswerOption, Question, ScoringRange, TestDefinition

log = logging.getLogger(__name__)


def _pick(raw: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in raw and raw[name] is not None:
            return raw[name]
    return default


def _number(value: Any) -> int | float:
    num = float(value)
    return int(num) if num.is_integer() else num


def _option_from_dict(raw: Mapping[str, Any], position: int) -> AnswerOption:
    return AnswerOption(
        id=int(_pick(raw, "id", "option_id", "optionId")),
        text=str(_pick(raw, "text", "option_text", "optionText", "label", default="")),
        value=_number(_pick(raw, "value", "option_value", "optionValue")),
        weight=_number(_pick(raw, "weight", default=1)),
        display_order=int(_pick(raw, "display_order", "displayOrder", "option_order", default=position)),
    )


def _question_from_dict(raw: Mapping[str, Any], position: int) -> Question:
    opts = [_option_from_dict(o, i) for i, o in enumerate(_pick(raw, "options", default=[]), start=1)]
    opts.sort(key=lambda o: o.display_order)
    return Question(
        id=int(_pick(raw, "id", "question_id", "questionId")),
        number=int(_pick(raw, "number", "question_number", "questionNumber", "question_order", default=position)),
        text=str(_pick(raw, "text", "question_text", "questionText", default="")),
        options=tuple(opts),
        is_reverse_scored=bool(_pick(raw, "is_reverse_scored", "isReverseScored", default=False)),
    )


def _compact_questions(raw: Mapping[str, Any]) -> List[Question]:
    """Expand the ``questions: [str] + response_options: [...]`` snapshot form.

    Option ids are derived as ``question_id * 100 + position`` so they stay
    stable across loads.
    """
    first_id = int(_pick(raw, "first_question_id", default=1))
    reverse = {int(n) for n in _pick(raw, "reverse_scored", default=[])}
    scale = _pick(raw, "response_options", default=[])
    out: List[Question] = []
    for idx, text in enumerate(raw.get("questions") or [], start=1):
        qid = first_id + idx - 1
        options = []
        for pos, opt in enumerate(scale, start=1):
            if isinstance(opt, str):
                opt = {"text": opt, "value": pos - 1}
            options.append(
                AnswerOption(
                    id=qid * 100 + pos,
                    text=str(opt.get("text", "")),
                    value=_number(opt.get("value", pos - 1)),
                    weight=_number(opt.get("weight", 1)),
                    display_order=pos,
                )
            )
        out.append(
            Question(id=qid, number=idx, text=str(text), options=tuple(options), is_reverse_scored=idx in reverse)
        )
    return out


def _range_from_dict(raw: Mapping[str, Any]) -> ScoringRange:
    return ScoringRange(
        min_score=_number(_pick(raw, "min_score", "minScore")),
        max_score=_number(_pick(raw, "max_score", "maxScore")),
        severity_label=str(_pick(raw, "severity_label", "severityLabel", default="")),
        severity_level=str(_pick(raw, "severity_level", "severityLevel")),
        interpretation=str(_pick(raw, "interpretation", default="")),
        color_code=_pick(raw, "color_code", "colorCode"),
    )


def definition_from_dict(raw: Mapping[str, Any]) -> TestDefinition:
    """Build a ``TestDefinition`` from wire, stored or snapshot JSON."""

    if not isinstance(raw, Mapping):
        raise CatalogError(f"test definition must be an object, got {type(raw).__name__}")
    header = raw.get("test_definition") if isinstance(raw.get("test_definition"), Mapping) else raw
    try:
        questions_raw = raw.get("questions") or []
        if questions_raw and all(isinstance(q, str) for q in questions_raw):
            questions = _compact_questions(raw)
        else:
            questions = [_question_from_dict(q, i) for i, q in enumerate(questions_raw, start=1)]
        questions.sort(key=lambda q: q.number)
        code = _pick(header, "code", "test_code", "testCode")
        if not code:
            raise CatalogError("test definition without a code")
        ranges = [_range_from_dict(r) for r in _pick(raw, "scoring_ranges", "scoringRanges", default=[])]
        return TestDefinition(
            code=str(code).upper(),
            name=str(_pick(header, "name", "test_name", "testName", default="")),
            category=str(_pick(header, "category", "test_category", "testCategory", default="")).lower(),
            questions=tuple(questions),
            scoring_ranges=tuple(ranges),
            description=str(_pick(header, "description", default="")),
        )
    except (TypeError, ValueError, AttributeError) as exc:
        raise CatalogError(f"malformed test definition: {exc}") from exc


def definition_to_wire(defn: TestDefinition) -> Dict[str, Any]:
    return {
        "code": defn.code,
        "name": defn.name,
        "category": defn.category,
        "description": defn.description,
        "totalQuestions": defn.total_questions,
        "maxScore": defn.max_score,
        "questions": [
            {
                "id": q.id,
                "number": q.number,
                "text": q.text,
                "isReverseScored": q.is_reverse_scored,
                "options": [
                    {
                        "id": o.id,
                        "text": o.text,
                        "value": o.value,
                        "weight": o.weight,
                        "displayOrder": o.display_order,
                    }
                    for o in q.options
                ],
            }
            for q in defn.questions
        ],
        "scoringRanges": [
            {
                "minScore": r.min_score,
                "maxScore": r.max_score,
                "severityLevel": r.severity_level,
                "severityLabel": r.severity_label,
                "interpretation": r.interpretation,
                "colorCode": r.color_code,
            }
            for r in defn.scoring_ranges
        ],
    }


class StaticCatalog:
    """Read-only catalog built once from a list of definitions."""

    def __init__(self, definitions: Iterable[TestDefinition], version: str = "") -> None:
        self._defs: Dict[str, TestDefinition] = {}
        for d in definitions:
            self._defs[d.code.upper()] = d
        self.version = version

    @classmethod
    def from_file(cls, path: str | Path) -> "StaticCatalog":
        p = Path(path)
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CatalogError(f"cannot read catalog snapshot {p}: {exc}") from exc
        defs = [definition_from_dict(t) for t in raw.get("tests", [])]
        log.debug("loaded %d test definitions from %s", len(defs), p)
        return cls(defs, version=str(raw.get("version", "")))

    def get_test_definition(self, code: str) -> TestDefinition:
        defn = self._defs.get(str(code or "").upper())
        if defn is None:
            raise NotFoundError(code)
        return defn

    def list_tests(self, category: Optional[str] = None) -> List[TestDefinition]:
        defs = list(self._defs.values())
        if category:
            defs = [d for d in defs if d.category == category.lower()]
        return defs

    def list_categories(self) -> List[str]:
        seen: List[str] = []
        for d in self._defs.values():
            if d.category not in seen:
                seen.append(d.category)
        return seen


class RemoteCatalog:
    """Catalog service client with a TTL cache and a static fallback.

    Every network or decoding failure is logged and answered from
    ``fallback``; an HTTP 404 is authoritative and raises ``NotFoundError``.
    """

    def __init__(
        self,
        base_url: str,
        fallback: StaticCatalog,
        *,
        timeout: float = config.CATALOG_TIMEOUT_S,
        ttl: float = config.CATALOG_CACHE_TTL_S,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.fallback = fallback
        self.ttl = float(ttl)
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout)
        self._cache: Dict[str, Tuple[float, TestDefinition]] = {}
        self._lock = threading.Lock()

    @property
    def version(self) -> str:
        return f"remote:{self.base_url}"

    def _cached(self, key: str) -> Optional[TestDefinition]:
        with self._lock:
            hit = self._cache.get(key)
            if hit is None:
                return None
            fetched_at, defn = hit
            if time.monotonic() - fetched_at >= self.ttl:
                self._cache.pop(key, None)
                return None
            return defn

    def _fetch(self, key: str) -> TestDefinition:
        resp = self._client.get(f"/tests/{key}")
        if resp.status_code == 404:
            raise NotFoundError(key)
        resp.raise_for_status()
        return definition_from_dict(resp.json())

    def get_test_definition(self, code: str) -> TestDefinition:
        key = str(code or "").upper()
        defn = self._cached(key)
        if defn is not None:
            return defn
        try:
            defn = self._fetch(key)
        except (httpx.HTTPError, ValueError, CatalogError) as exc:
            log.warning("catalog service unavailable for %s (%s); using static snapshot %s",
                        key, exc, self.fallback.version or "unversioned")
            return self.fallback.get_test_definition(key)
        with self._lock:
            self._cache[key] = (time.monotonic(), defn)
        return defn

    def list_tests(self, category: Optional[str] = None) -> List[TestDefinition]:
        try:
            resp = self._client.get("/tests", params={"category": category} if category else None)
            resp.raise_for_status()
            codes = [str(t.get("code")) for t in resp.json().get("tests", [])]
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            log.warning("catalog service listing failed (%s); using static snapshot", exc)
            return self.fallback.list_tests(category)
        return [self.get_test_definition(c) for c in codes]

    def list_categories(self) -> List[str]:
        seen: List[str] = []
        for d in self.list_tests():
            if d.category not in seen:
                seen.append(d.category)
        return seen


_DEFAULT: Optional[StaticCatalog | RemoteCatalog] = None
_DEFAULT_LOCK = threading.Lock()


def load_static_catalog(path: str | Path | None = None) -> StaticCatalog:
    return StaticCatalog.from_file(path or config.CATALOG_PATH)


def default_catalog() -> StaticCatalog | RemoteCatalog:
    """Process-wide catalog, built on first use."""

    global _DEFAULT
    with _DEFAULT_LOCK:
        if _DEFAULT is None:
            cfg = config.load_config()
            static = load_static_catalog(cfg.get("CATALOG_PATH"))
            url = cfg.get("CATALOG_URL") or ""
            if url:
                _DEFAULT = RemoteCatalog(
                    url,
                    static,
                    timeout=float(cfg.get("CATALOG_TIMEOUT_S", config.CATALOG_TIMEOUT_S)),
                    ttl=float(cfg.get("CATALOG_CACHE_TTL_S", config.CATALOG_CACHE_TTL_S)),
                )
            else:
                _DEFAULT = static
        return _DEFAULT


def reset_default_catalog() -> None:
    global _DEFAULT
    with _DEFAULT_LOCK:
        _DEFAULT = None


def get_test_definition(code: str) -> TestDefinition:
    return default_catalog().get_test_definition(code)
