# -*- coding: utf-8 -*-

import datetime as dt
from dataclasses import dataclass
from typing import Any, Dict, Optional

PHASES = ("focus", "shortBreak", "longBreak")
MODES = ("pomodoro", "custom")
SESSION_KINDS = ("study", "review", "practice")

# (min, max, default) per preference field
BOUNDS = {
    "focus_minutes": (1, 180, 25),
    "short_break_minutes": (1, 60, 5),
    "long_break_minutes": (1, 120, 15),
    "sessions_until_long_break": (1, 12, 4),
    "custom_minutes": (5, 180, 25),
}


def _clamped(name: str, value: Any) -> int:
    lo, hi, default = BOUNDS[name]
    try:
        v = int(value)
    except (TypeError, ValueError):
        return default
    if v == 0:
        return default
    return max(lo, min(hi, v))


def local_date(epoch_ms: int) -> str:
    return dt.datetime.fromtimestamp(epoch_ms / 1000).date().isoformat()


def local_hhmm(epoch_ms: int) -> str:
    return dt.datetime.fromtimestamp(epoch_ms / 1000).strftime("%H:%M")


@dataclass(frozen=True)
class TimerConfig:
    mode: str = "pomodoro"  # pomodoro | custom
    focus_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    sessions_until_long_break: int = 4
    custom_minutes: int = 25

    def clamped(self) -> "TimerConfig":
        return TimerConfig(
            mode=self.mode if self.mode in MODES else "pomodoro",
            focus_minutes=_clamped("focus_minutes", self.focus_minutes),
            short_break_minutes=_clamped("short_break_minutes", self.short_break_minutes),
            long_break_minutes=_clamped("long_break_minutes", self.long_break_minutes),
            sessions_until_long_break=_clamped(
                "sessions_until_long_break", self.sessions_until_long_break
            ),
            custom_minutes=_clamped("custom_minutes", self.custom_minutes),
        )

    @classmethod
    def from_preferences(cls, prefs: Optional[Dict[str, Any]]) -> "TimerConfig":
        """
        Build from the stored preferences document:
        {"studyMethod": ..., "customMinutes": ..., "pomodoroSettings": {...}}
        """
        prefs = prefs or {}
        pomo = prefs.get("pomodoroSettings") or {}
        return cls(
            mode=prefs.get("studyMethod") or "pomodoro",
            focus_minutes=pomo.get("focusTime"),
            short_break_minutes=pomo.get("shortBreak"),
            long_break_minutes=pomo.get("longBreak"),
            sessions_until_long_break=pomo.get("sessionsUntilLongBreak"),
            custom_minutes=prefs.get("customMinutes"),
        ).clamped()

    def phase_seconds(self, phase: str) -> int:
        if self.mode == "custom":
            return self.custom_minutes * 60
        if phase == "focus":
            return self.focus_minutes * 60
        if phase == "shortBreak":
            return self.short_break_minutes * 60
        return self.long_break_minutes * 60


@dataclass(frozen=True)
class SessionContext:
    subject_id: Optional[str] = None
    title: str = "Focus Session"
    kind: str = "study"  # study | review | practice


@dataclass(frozen=True)
class Subject:
    id: str
    name: str
    color: str = "#3B82F6"
    priority: int = 1


@dataclass(frozen=True)
class SessionCompleted:
    subject_id: Optional[str]
    title: str
    kind: str
    duration_minutes: int
    start_timestamp: int  # epoch ms
    end_timestamp: int  # epoch ms

    @property
    def date(self) -> str:
        return local_date(self.end_timestamp)

    @property
    def start_time(self) -> str:
        return local_hhmm(self.start_timestamp)

    @property
    def end_time(self) -> str:
        return local_hhmm(self.end_timestamp)


@dataclass(frozen=True)
class StreakTouched:
    date: str  # yyyy-mm-dd


@dataclass(frozen=True)
class Streak:
    current: int
    longest: int
    last_study_date: Optional[str] = None


@dataclass(frozen=True)
class SessionLog:
    id: str
    user_id: str
    subject_id: Optional[str]
    title: str
    duration: int  # minutes
    scheduled_date: str
    start_time: Optional[str]
    end_time: Optional[str]
    session_type: str
