# -*- coding: utf-8 -*-

from __future__ import annotations

import copy
import json
import logging
import uuid
from typing import Any, Dict, List, Optional

from domain.models import Subject, TimerConfig
from storage.repos import AppStateRepo

logger = logging.getLogger(__name__)

PREFS_KEY = "preferences"

DEFAULT_PREFERENCES: Dict[str, Any] = {
    "subjects": [],
    "studyMethod": "pomodoro",
    "customMinutes": 25,
    "pomodoroSettings": {
        "focusTime": 25,
        "shortBreak": 5,
        "longBreak": 15,
        "sessionsUntilLongBreak": 4,
    },
}


def _scoped(user_id: Optional[str]) -> str:
    return f"{user_id or 'guest'}:{PREFS_KEY}"


class PreferencesService:
    def __init__(self, state_repo: AppStateRepo):
        self.state = state_repo

    def get_preferences(self, user_id: Optional[str]) -> Dict[str, Any]:
        prefs = copy.deepcopy(DEFAULT_PREFERENCES)
        raw = self.state.get(_scoped(user_id))
        if not raw:
            return prefs
        try:
            saved = json.loads(raw)
        except ValueError:
            logger.warning(f"Preferences for {user_id or 'guest'} unreadable, using defaults")
            return prefs
        if isinstance(saved, dict):
            prefs.update(saved)
        return prefs

    def save_preferences(self, user_id: Optional[str], prefs: Dict[str, Any]) -> None:
        self.state.set(_scoped(user_id), json.dumps(prefs))

    def get_timer_config(self, user_id: Optional[str]) -> TimerConfig:
        return TimerConfig.from_preferences(self.get_preferences(user_id))

    def set_study_method(self, user_id: Optional[str], method: str) -> None:
        if method not in ("pomodoro", "custom"):
            raise ValueError("Invalid study method. Use pomodoro/custom.")
        prefs = self.get_preferences(user_id)
        prefs["studyMethod"] = method
        self.save_preferences(user_id, prefs)

    def set_pomodoro_settings(self, user_id: Optional[str], **settings: int) -> None:
        allowed = ("focusTime", "shortBreak", "longBreak", "sessionsUntilLongBreak")
        prefs = self.get_preferences(user_id)
        pomo = dict(prefs.get("pomodoroSettings") or {})
        for k, v in settings.items():
            if k not in allowed:
                raise ValueError(f"Unknown pomodoro setting: {k}")
            pomo[k] = v
        prefs["pomodoroSettings"] = pomo
        self.save_preferences(user_id, prefs)

    def set_custom_minutes(self, user_id: Optional[str], minutes: int) -> None:
        prefs = self.get_preferences(user_id)
        prefs["customMinutes"] = int(minutes)
        self.save_preferences(user_id, prefs)

    # ---- subjects ----
    def list_subjects(self, user_id: Optional[str]) -> List[Subject]:
        out = []
        for s in self.get_preferences(user_id).get("subjects") or []:
            try:
                out.append(
                    Subject(
                        id=s["id"],
                        name=s["name"],
                        color=s.get("color", "#3B82F6"),
                        priority=int(s.get("priority", 1)),
                    )
                )
            except (KeyError, TypeError, ValueError):
                continue
        return out

    def add_subject(self, user_id: Optional[str], name: str, color: str = "#3B82F6") -> Subject:
        name = (name or "").strip()
        if not name:
            raise ValueError("Subject name cannot be empty.")
        subject = Subject(id=str(uuid.uuid4()), name=name, color=color)
        prefs = self.get_preferences(user_id)
        prefs["subjects"] = list(prefs.get("subjects") or []) + [
            {"id": subject.id, "name": subject.name, "color": subject.color, "priority": subject.priority}
        ]
        self.save_preferences(user_id, prefs)
        return subject
