from __future__ import annotations
from fastapi import FastAPI, HTTPException, Body, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
import logging, os, uuid, typing as t

# ---- Engine imports ----
from assess_core import config
from assess_core.catalog import default_catalog, definition_to_wire
from assess_core.engine import assess, assess_comprehensive, is_consistent, rescore
from assess_core.errors import (
    AggregationError,
    AssessmentError,
    CatalogError,
    NotFoundError,
    ValidationError,
)
from assess_core.reporting import comprehensive_to_wire, result_from_wire, stored_sub_results, to_wire
from assess_core.result_export import audit_rows, to_csv as rows_to_csv, to_json as rows_to_json
from assess_core.types import ResponseItem, ValueResponse
from .storage import (
    delete_result,
    list_results_for_user,
    load_result,
    save_result,
    utcnow_iso,
)

log = logging.getLogger(__name__)

app = FastAPI(title="Assessment Scoring API")


@app.get("/")
def root():
    return {"status": "ok", "service": "assessment-scoring-api"}


ALLOWED_ORIGINS = [
    o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",") if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,  # keep False unless you use cookies
)


# ---- Error mapping ----
@app.exception_handler(NotFoundError)
async def _not_found(_request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content=exc.to_dict())


@app.exception_handler(ValidationError)
async def _invalid_input(_request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content=exc.to_dict())


@app.exception_handler(AggregationError)
async def _aggregation(_request: Request, exc: AggregationError):
    return JSONResponse(status_code=422, content=exc.to_dict())


@app.exception_handler(CatalogError)
async def _catalog_defect(request: Request, exc: CatalogError):
    log.error("catalog defect on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "catalog_defect", "message": exc.message})


@app.exception_handler(AssessmentError)
async def _assessment_error(_request: Request, exc: AssessmentError):
    return JSONResponse(status_code=400, content=exc.to_dict())


# ---- Schemas ----
class AnswerIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    question_id: int = Field(alias="questionId")
    option_id: int = Field(alias="optionId")


class AssessReq(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    responses: list[AnswerIn]
    user_id: str | None = Field(default=None, alias="userId")


class ValueAnswerIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    question_id: int = Field(alias="questionId")
    response: float
    category: str


class ComprehensiveReq(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    responses: list[ValueAnswerIn]
    user_id: str | None = Field(default=None, alias="userId")


# ---- Helpers ----
def _catalog():
    return default_catalog()


def _summary(defn) -> dict[str, t.Any]:
    return {
        "code": defn.code,
        "name": defn.name,
        "category": defn.category,
        "description": defn.description,
        "totalQuestions": defn.total_questions,
        "maxScore": defn.max_score,
    }


def _persist(payload: dict[str, t.Any], user_id: str | None, headline: dict[str, t.Any]) -> dict[str, t.Any]:
    rid = str(uuid.uuid4())
    payload = dict(payload)
    payload["id"] = rid
    payload["resultId"] = rid
    if user_id:
        payload["userId"] = user_id
    if not config.RESULTS_PERSIST_ENABLED:
        payload["persisted"] = False
        return payload
    metadata = {"userId": user_id, "createdAt": payload.get("createdAt") or utcnow_iso(), **headline}
    try:
        save_result(rid, payload, metadata)
        payload["persisted"] = True
    except OSError as exc:
        # the scored result stays valid even when the store is down
        log.error("could not persist result %s: %s", rid, exc)
        payload["persisted"] = False
    return payload


def _stored(result_id: str) -> dict[str, t.Any]:
    stored = load_result(result_id)
    if not stored:
        raise HTTPException(404, "result not found")
    return stored


# ---- Health ----
@app.get("/health")
def health():
    cat = _catalog()
    return {
        "catalog_version": getattr(cat, "version", ""),
        "catalog_url": config.CATALOG_URL or None,
        "persist_results": config.RESULTS_PERSIST_ENABLED,
        "response_export": config.RESPONSE_EXPORT_ENABLED,
    }


# ---- Catalog ----
@app.get("/tests")
def list_tests(category: str | None = Query(None)):
    return {"tests": [_summary(d) for d in _catalog().list_tests(category)]}


@app.get("/tests/categories")
def list_categories():
    return {"categories": _catalog().list_categories()}


@app.get("/tests/{code}")
def get_test(code: str):
    return definition_to_wire(_catalog().get_test_definition(code))


# ---- Scoring ----
@app.post("/tests/{code}/assess")
def assess_test(code: str, req: AssessReq = Body(...)):
    defn = _catalog().get_test_definition(code)
    responses = [ResponseItem(question_id=a.question_id, selected_option_id=a.option_id) for a in req.responses]
    result = assess(defn, responses)
    headline = {
        "kind": "single",
        "testCode": result.test_code,
        "calculatedScore": result.raw_score,
        "severityLevel": result.severity_level,
    }
    return _persist(to_wire(result), req.user_id, headline)


@app.post("/assessments/comprehensive")
def assess_battery(req: ComprehensiveReq = Body(...)):
    values = [ValueResponse(question_number=a.question_id, raw_value=a.response, category=a.category)
              for a in req.responses]
    result = assess_comprehensive(values, catalog=_catalog())
    headline = {
        "kind": "comprehensive",
        "testCode": "COMPREHENSIVE",
        "calculatedScore": result.overall_score,
        "severityLevel": result.overall_risk_level,
    }
    return _persist(comprehensive_to_wire(result), req.user_id, headline)


# ---- Stored results ----
@app.get("/results/{result_id}")
def get_result(result_id: str):
    return _stored(result_id)


@app.delete("/results/{result_id}")
def delete_result_endpoint(result_id: str):
    if not delete_result(result_id):
        raise HTTPException(404, "result not found")
    return {"ok": True}


@app.post("/results/{result_id}/rescore")
def rescore_result(result_id: str):
    stored = _stored(result_id)
    cat = _catalog()
    out: dict[str, t.Any] = {}
    consistent = True
    for key, sub in stored_sub_results(stored).items():
        old = result_from_wire(sub)
        fresh = rescore(old, catalog=cat)
        ok = is_consistent(old, fresh)
        consistent = consistent and ok
        if not ok:
            log.warning("result %s (%s) drifted on rescore: %s/%s -> %s/%s", result_id, key,
                        old.raw_score, old.severity_level, fresh.raw_score, fresh.severity_level)
        out[key] = to_wire(fresh)
    return {"resultId": result_id, "consistent": consistent, "rescored": out}


def _export_rows(result_id: str) -> list[dict[str, t.Any]]:
    if not config.RESPONSE_EXPORT_ENABLED:
        raise HTTPException(404, "response export disabled")
    stored = _stored(result_id)
    cat = _catalog()
    rows: list[dict[str, t.Any]] = []
    for sub in stored_sub_results(stored).values():
        res = result_from_wire(sub)
        rows.extend(audit_rows(cat.get_test_definition(res.test_code), res))
    return rows


@app.get("/results/{result_id}/responses.json")
def get_responses_json(result_id: str):
    return {"result_id": result_id, **rows_to_json(_export_rows(result_id))}


@app.get("/results/{result_id}/responses.csv")
def get_responses_csv(result_id: str):
    body = rows_to_csv(_export_rows(result_id))
    filename = f"{result_id}_responses.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )


@app.get("/users/{user_id}/results")
def list_user_results(user_id: str):
    return {"results": list_results_for_user(user_id)}
