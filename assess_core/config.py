from __future__ import annotations
import os, json, pathlib


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_tuple(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return tuple(part.strip().lower() for part in raw.split(",") if part.strip())


CATALOG_PATH: str = str(pathlib.Path(__file__).with_name("data") / "catalog.json")
CATALOG_URL: str = ""
CATALOG_TIMEOUT_S: float = 5.0
# test details were cached for 12h by the web client
CATALOG_CACHE_TTL_S: float = 12 * 60 * 60

COMPREHENSIVE_CATEGORIES: tuple[str, ...] = ("depression", "anxiety", "stress")
COMPREHENSIVE_TESTS: dict[str, str] = {
    "depression": "PHQ9",
    "anxiety": "GAD7",
    "stress": "PSS10",
}

HIGH_RISK_LEVELS: frozenset[str] = frozenset({"severe", "moderately_severe", "high"})
MODERATE_RISK_LEVELS: frozenset[str] = frozenset({"moderate"})

RESULTS_PERSIST_ENABLED: bool = True
RESPONSE_EXPORT_ENABLED: bool = True

LOG_LEVEL: str = "INFO"

# // env overrides for staging/ops; defaults remain conservative.
CATALOG_PATH = os.getenv("CATALOG_PATH", CATALOG_PATH)
CATALOG_URL = os.getenv("CATALOG_URL", CATALOG_URL).strip()
CATALOG_TIMEOUT_S = _env_float("CATALOG_TIMEOUT_S", CATALOG_TIMEOUT_S)
CATALOG_CACHE_TTL_S = _env_float("CATALOG_CACHE_TTL_S", CATALOG_CACHE_TTL_S)
COMPREHENSIVE_CATEGORIES = _env_tuple("COMPREHENSIVE_CATEGORIES", COMPREHENSIVE_CATEGORIES)
RESULTS_PERSIST_ENABLED = _env_bool("RESULTS_PERSIST_ENABLED", RESULTS_PERSIST_ENABLED)
RESPONSE_EXPORT_ENABLED = _env_bool("RESPONSE_EXPORT_ENABLED", RESPONSE_EXPORT_ENABLED)
LOG_LEVEL = os.getenv("LOG_LEVEL", LOG_LEVEL).upper()


def load_config() -> dict:
    """Read the optional ``config.json`` and overlay environment values."""
    cfg = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError: cfg = {}
    e = os.environ
    if e.get("CATALOG_URL"): cfg["CATALOG_URL"] = e.get("CATALOG_URL", "").strip()
    if e.get("CATALOG_PATH"): cfg["CATALOG_PATH"] = e.get("CATALOG_PATH")
    if e.get("CATALOG_TIMEOUT_S"): cfg["CATALOG_TIMEOUT_S"] = _env_float("CATALOG_TIMEOUT_S", CATALOG_TIMEOUT_S)
    if e.get("CATALOG_CACHE_TTL_S"): cfg["CATALOG_CACHE_TTL_S"] = _env_float("CATALOG_CACHE_TTL_S", CATALOG_CACHE_TTL_S)
    cfg.setdefault("CATALOG_URL", CATALOG_URL)
    cfg.setdefault("CATALOG_PATH", CATALOG_PATH)
    cfg.setdefault("CATALOG_TIMEOUT_S", CATALOG_TIMEOUT_S)
    cfg.setdefault("CATALOG_CACHE_TTL_S", CATALOG_CACHE_TTL_S)
    return cfg
