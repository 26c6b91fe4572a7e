# -*- coding: utf-8 -*-

import datetime as dt
from typing import Any, Dict, Optional

from storage.db import Database


def _today() -> str:
    return dt.date.today().isoformat()


class StatsService:
    def __init__(self, db: Database):
        self.db = db

    def total_today_focus_minutes(self, user_id: str, today: Optional[str] = None) -> int:
        conn = self.db.connect()
        row = conn.execute(
            """
            SELECT COALESCE(SUM(duration), 0) AS total
            FROM study_sessions
            WHERE user_id = ?
              AND completed = 1
              AND scheduled_date = ?
            """,
            (user_id, today or _today()),
        ).fetchone()
        return int(row["total"] or 0)

    def minutes_by_subject(self, user_id: str) -> Dict[Optional[str], int]:
        conn = self.db.connect()
        rows = conn.execute(
            """
            SELECT subject_id, COALESCE(SUM(duration), 0) AS total
            FROM study_sessions
            WHERE user_id = ?
              AND completed = 1
            GROUP BY subject_id
            """,
            (user_id,),
        ).fetchall()
        return {r["subject_id"]: int(r["total"] or 0) for r in rows}
