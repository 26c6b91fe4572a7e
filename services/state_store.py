# -*- coding: utf-8 -*-

import json
import logging
import sqlite3
from typing import Any, Dict, Optional

from storage.repos import AppStateRepo

logger = logging.getLogger(__name__)


class TimerStateStore:
    """
    JSON slots in app_state. Keys arrive already scoped
    ("<user_id>:timer-state" or "guest:timer-state").
    """

    def __init__(self, state_repo: AppStateRepo):
        self.state_repo = state_repo

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self.state_repo.get(key)
        except sqlite3.Error as e:
            logger.warning(f"Read of {key} failed: {e}")
            return None
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring corrupt JSON under {key}")
            return None
        return data if isinstance(data, dict) else None

    def set(self, key: str, snapshot: Dict[str, Any]) -> bool:
        try:
            self.state_repo.set(key, json.dumps(snapshot))
        except sqlite3.Error as e:
            logger.warning(f"Write of {key} dropped: {e}")
            return False
        return True
