from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    db_path: str = "data/roster.sqlite3"
    edit_key: str = ""
    catalog_cache_ttl_seconds: float = 300.0
    catalog_search_limit: int = 25
    db_timeout_seconds: float = 5.0
    log_level: str = "INFO"
    log_json: bool = False


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return Settings(
        db_path=os.getenv("ROSTER_DB_PATH", Settings.db_path),
        edit_key=os.getenv("EDIT_KEY", ""),
        catalog_cache_ttl_seconds=_float_env("CATALOG_CACHE_TTL_SECONDS", Settings.catalog_cache_ttl_seconds),
        catalog_search_limit=_int_env("CATALOG_SEARCH_LIMIT", Settings.catalog_search_limit),
        db_timeout_seconds=_float_env("DB_TIMEOUT_SECONDS", Settings.db_timeout_seconds),
        log_level=os.getenv("LOG_LEVEL", Settings.log_level).strip() or Settings.log_level,
        log_json=os.getenv("LOG_FORMAT", "text").strip().lower() == "json",
    )
