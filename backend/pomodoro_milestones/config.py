# backend/pomodoro_milestones/config.py

"""Settings loaded from environment variables (+ .env via python-dotenv).

One frozen Settings object is shared by the API server (database URL), the remote
backend (API base URL, token, timeout), the on-device backend (data directory) and
the timeline layout (padding, minimum span, proximity threshold).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "POMODORO"

load_dotenv(override=True)


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v.strip()


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(_env(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- API server ----
    database_url: str

    # ---- Remote backend ----
    api_base_url: str
    api_token: str | None
    api_timeout: float

    # ---- On-device backend ----
    data_dir: Path

    # ---- Logging ----
    log_level: str
    log_dir: Path | None

    # ---- Timeline layout ----
    timeline_padding_days: int
    timeline_min_span_days: int
    timeline_proximity: float


def load_settings() -> Settings:
    log_dir = _env(_k("LOG_DIR"))
    return Settings(
        database_url=_env(_k("DATABASE_URL"), "sqlite:///./pomodoro_milestones.db"),
        api_base_url=_env(_k("API_BASE_URL"), "http://localhost:5000/api").rstrip("/"),
        api_token=_env(_k("API_TOKEN")) or None,
        api_timeout=_env_float(_k("API_TIMEOUT"), 10.0),
        data_dir=Path(_env(_k("DATA_DIR"), ".local/pomodoro")).expanduser(),
        log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
        log_dir=Path(log_dir).expanduser() if log_dir else None,
        timeline_padding_days=_env_int(_k("TIMELINE_PADDING_DAYS"), 3),
        timeline_min_span_days=_env_int(_k("TIMELINE_MIN_SPAN_DAYS"), 7),
        timeline_proximity=_env_float(_k("TIMELINE_PROXIMITY"), 5.0),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
