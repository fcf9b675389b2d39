"""Domain-level validation rules for lottery sessions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LotteryConfig:
    roll_interval_ms: int
    max_sessions: int
    max_roster_rows: int
    pdf_rows_per_page: int
    random_seed: Optional[int] = None


def validate_lottery_config(config: LotteryConfig) -> None:
    if config.roll_interval_ms <= 0:
        raise ValueError("roll_interval_ms must be > 0")
    if config.max_sessions <= 0:
        raise ValueError("max_sessions must be > 0")
    if config.max_roster_rows <= 0:
        raise ValueError("max_roster_rows must be > 0")
    if config.pdf_rows_per_page <= 0:
        raise ValueError("pdf_rows_per_page must be > 0")
    if config.random_seed is not None and config.random_seed < 0:
        raise ValueError("random_seed must be >= 0 when provided")
