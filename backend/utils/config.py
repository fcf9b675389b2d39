"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return int(raw)


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    roll_interval_ms: int
    max_sessions: int
    max_roster_rows: int
    random_seed: Optional[int]
    export_title: str
    export_sheet_name: str
    pdf_rows_per_page: int

    @property
    def roll_interval_seconds(self) -> float:
        return self.roll_interval_ms / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings once per process; tests derive variants with replace()."""
    return Settings(
        app_name=os.getenv("APP_NAME", "Apartment Lottery"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        roll_interval_ms=_env_int("LOTTERY_ROLL_INTERVAL_MS", 50),
        max_sessions=_env_int("LOTTERY_MAX_SESSIONS", 32),
        max_roster_rows=_env_int("LOTTERY_MAX_ROSTER_ROWS", 5000),
        random_seed=_env_optional_int("LOTTERY_RANDOM_SEED"),
        export_title=os.getenv("LOTTERY_EXPORT_TITLE", "公寓摇号结果"),
        export_sheet_name=os.getenv("LOTTERY_EXPORT_SHEET_NAME", "摇号结果"),
        pdf_rows_per_page=_env_int("LOTTERY_PDF_ROWS_PER_PAGE", 25),
    )
