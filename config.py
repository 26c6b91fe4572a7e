#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Application configuration, read from the environment with defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class DatabaseConfig:
    path: str = "study_timer.db"


@dataclass
class LoggingConfig:
    log_file: str = "logs/study_timer.log"
    level: str = "INFO"
    max_bytes: int = 10_000_000
    backup_count: int = 5


@dataclass
class TimerHostConfig:
    tick_ms: int = 1000
    user_id: Optional[str] = None


@dataclass
class AppConfig:
    database: DatabaseConfig
    logging: LoggingConfig
    timer: TimerHostConfig


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_config() -> AppConfig:
    level = (os.getenv("STUDY_TIMER_LOG_LEVEL") or "INFO").upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        level = "INFO"

    return AppConfig(
        database=DatabaseConfig(
            path=os.getenv("STUDY_TIMER_DB_PATH") or str(Path("study_timer.db")),
        ),
        logging=LoggingConfig(
            log_file=os.getenv("STUDY_TIMER_LOG_FILE") or "logs/study_timer.log",
            level=level,
        ),
        timer=TimerHostConfig(
            tick_ms=max(100, _env_int("STUDY_TIMER_TICK_MS", 1000)),
            user_id=os.getenv("STUDY_TIMER_USER_ID") or None,
        ),
    )
