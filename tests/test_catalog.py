from __future__ import annotations

import json
import logging

import httpx
import pytest

from assess_core import catalog as catalog_mod
from assess_core.catalog import (
    RemoteCatalog,
    StaticCatalog,
    default_catalog,
    definition_from_dict,
    definition_to_wire,
    reset_default_catalog,
)
from assess_core.errors import CatalogError, NotFoundError

from tests.conftest import build_synthetic_definition


# ---- static snapshot ----
def test_bundled_snapshot_has_the_three_screeners(catalog):
    codes = sorted(d.code for d in catalog.list_tests())
    assert codes == ["GAD7", "PHQ9", "PSS10"]
    assert catalog.list_categories() == ["depression", "anxiety", "stress"]
    assert catalog.version


def test_question_ids_are_unique_across_the_battery(catalog):
    ids = [q.id for d in catalog.list_tests() for q in d.questions]
    assert ids == list(range(1, 27))


def test_lookup_is_case_insensitive(catalog):
    assert catalog.get_test_definition("phq9") is catalog.get_test_definition("PHQ9")


def test_unknown_code_is_not_found(catalog):
    with pytest.raises(NotFoundError) as err:
        catalog.get_test_definition("BDI2")
    assert err.value.test_code == "BDI2"


def test_filter_by_category(catalog):
    assert [d.code for d in catalog.list_tests("Anxiety")] == ["GAD7"]
    assert catalog.list_tests("sleep") == []


def test_compact_form_derives_stable_option_ids(phq9, pss10):
    q1 = phq9.question_by_number(1)
    assert [o.id for o in q1.options] == [101, 102, 103, 104]
    assert [o.value for o in q1.options] == [0, 1, 2, 3]
    assert phq9.max_score == 27
    assert [q.number for q in pss10.questions if q.is_reverse_scored] == [4, 5, 7, 8]
    assert pss10.max_score == 40


def test_snake_case_with_wrapper_is_accepted():
    raw = {
        "test_definition": {"test_code": "mini", "test_name": "Mini", "test_category": "Mood"},
        "questions": [
            {
                "question_id": 7,
                "question_number": 1,
                "question_text": "How are you?",
                "is_reverse_scored": True,
                "options": [
                    {"option_id": 71, "option_text": "Fine", "option_value": 0, "option_order": 1},
                    {"option_id": 72, "option_text": "Bad", "option_value": 2, "option_order": 2},
                ],
            }
        ],
        "scoring_ranges": [
            {"min_score": 0, "max_score": 2, "severity_level": "low", "severity_label": "Low"},
        ],
    }
    defn = definition_from_dict(raw)
    assert defn.code == "MINI"
    assert defn.category == "mood"
    q = defn.question(7)
    assert q.is_reverse_scored
    assert q.option(72).value == 2


def test_definition_without_code_is_a_catalog_defect():
    with pytest.raises(CatalogError):
        definition_from_dict({"name": "nameless", "questions": []})


def test_malformed_values_are_a_catalog_defect():
    raw = {"code": "BAD", "questions": [{"id": 1, "options": [{"id": 1, "value": "lots"}]}]}
    with pytest.raises(CatalogError):
        definition_from_dict(raw)


def test_unreadable_snapshot_raises_catalog_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogError):
        StaticCatalog.from_file(path)


def test_snapshot_file_round_trip(tmp_path):
    defn = build_synthetic_definition(reverse=(2,))
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"version": "t1", "tests": [definition_to_wire(defn)]}), encoding="utf-8")
    loaded = StaticCatalog.from_file(path)
    assert loaded.version == "t1"
    assert loaded.get_test_definition("syn4") == defn


# ---- remote catalog ----
class _Service:
    def __init__(self, definitions, status: int = 200):
        self.defs = {d.code: d for d in definitions}
        self.status = status
        self.calls: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.path)
        if self.status != 200:
            return httpx.Response(self.status)
        if request.url.path == "/tests":
            return httpx.Response(200, json={"tests": [{"code": c} for c in self.defs]})
        code = request.url.path.rsplit("/", 1)[-1]
        if code not in self.defs:
            return httpx.Response(404, json={"error": "not_found"})
        return httpx.Response(200, json=definition_to_wire(self.defs[code]))


def _remote(service: _Service, fallback: StaticCatalog, ttl: float = 3600) -> RemoteCatalog:
    client = httpx.Client(base_url="http://catalog.test", transport=httpx.MockTransport(service))
    return RemoteCatalog("http://catalog.test", fallback, ttl=ttl, client=client)


def test_remote_definition_is_fetched_once_and_cached():
    remote_def = build_synthetic_definition(code="REM5", n_questions=5)
    service = _Service([remote_def])
    remote = _remote(service, StaticCatalog([]))
    first = remote.get_test_definition("rem5")
    second = remote.get_test_definition("REM5")
    assert first == remote_def
    assert second is first
    assert service.calls == ["/tests/REM5"]


def test_expired_cache_entry_is_refetched():
    service = _Service([build_synthetic_definition()])
    remote = _remote(service, StaticCatalog([]), ttl=0)
    remote.get_test_definition("SYN4")
    remote.get_test_definition("SYN4")
    assert len(service.calls) == 2


def test_service_outage_falls_back_to_snapshot(caplog):
    local = build_synthetic_definition()
    remote = _remote(_Service([], status=503), StaticCatalog([local], version="snap-1"))
    with caplog.at_level(logging.WARNING, logger="assess_core.catalog"):
        defn = remote.get_test_definition("SYN4")
    assert defn is local
    assert any("snap-1" in rec.getMessage() for rec in caplog.records)


def test_connection_error_falls_back_to_snapshot():
    local = build_synthetic_definition()

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.Client(base_url="http://catalog.test", transport=httpx.MockTransport(refuse))
    remote = RemoteCatalog("http://catalog.test", StaticCatalog([local]), client=client)
    assert remote.get_test_definition("SYN4") is local


def test_non_object_body_falls_back_to_snapshot():
    local = build_synthetic_definition()

    def listy(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["oops"])

    client = httpx.Client(base_url="http://catalog.test", transport=httpx.MockTransport(listy))
    remote = RemoteCatalog("http://catalog.test", StaticCatalog([local]), client=client)
    assert remote.get_test_definition("SYN4") is local


def test_non_object_definition_is_a_catalog_defect():
    with pytest.raises(CatalogError):
        definition_from_dict("Bad Gateway")


def test_remote_404_is_authoritative():
    local = build_synthetic_definition()
    remote = _remote(_Service([]), StaticCatalog([local]))
    with pytest.raises(NotFoundError):
        remote.get_test_definition("SYN4")


def test_remote_listing_and_categories():
    service = _Service([build_synthetic_definition(), build_synthetic_definition(code="OTH3", category="other")])
    remote = _remote(service, StaticCatalog([]))
    assert sorted(d.code for d in remote.list_tests()) == ["OTH3", "SYN4"]
    assert sorted(remote.list_categories()) == ["other", "synthetic"]


def test_remote_listing_falls_back_on_outage():
    local = build_synthetic_definition()
    remote = _remote(_Service([], status=500), StaticCatalog([local]))
    assert remote.list_tests() == [local]


# ---- process-wide default ----
@pytest.fixture
def fresh_default():
    reset_default_catalog()
    yield
    reset_default_catalog()


def test_default_catalog_is_static_without_url(fresh_default, monkeypatch):
    monkeypatch.delenv("CATALOG_URL", raising=False)
    monkeypatch.setattr(catalog_mod.config, "CATALOG_URL", "")
    cat = default_catalog()
    assert isinstance(cat, StaticCatalog)
    assert default_catalog() is cat


def test_default_catalog_goes_remote_when_url_is_set(fresh_default, monkeypatch):
    monkeypatch.setenv("CATALOG_URL", "http://catalog.example")
    cat = default_catalog()
    assert isinstance(cat, RemoteCatalog)
    assert cat.version == "remote:http://catalog.example"
