# storage/repos.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import time
import uuid
from typing import List, Optional

from domain.models import SessionLog, Streak
from storage.db import Database


def _now_ts() -> int:
    return int(time.time())


class AppStateRepo:
    def __init__(self, db: Database):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        row = self.db.conn.execute(
            "SELECT value FROM app_state WHERE key=?",
            (key,),
        ).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        self.db.conn.execute(
            """
            INSERT INTO app_state(key, value) VALUES(?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value
            """,
            (key, value),
        )
        self.db.conn.commit()


class SessionRepo:
    def __init__(self, db: Database):
        self.db = db

    def record_completed(
        self,
        user_id: str,
        subject_id: Optional[str],
        title: str,
        duration: int,
        scheduled_date: str,
        start_time: Optional[str],
        end_time: Optional[str],
        session_type: str = "study",
    ) -> SessionLog:
        sid = str(uuid.uuid4())
        self.db.conn.execute(
            """
            INSERT INTO study_sessions(
                id, user_id, subject_id, title, duration, completed,
                scheduled_date, start_time, end_time, session_type, created_at
            )
            VALUES(?,?,?,?,?,1,?,?,?,?,?)
            """,
            (
                sid,
                user_id,
                subject_id,
                title,
                int(duration),
                scheduled_date,
                start_time,
                end_time,
                session_type,
                _now_ts(),
            ),
        )
        self.db.conn.commit()
        return self.get(sid)

    def get(self, session_id: str) -> Optional[SessionLog]:
        r = self.db.conn.execute(
            """
            SELECT id, user_id, subject_id, title, duration, scheduled_date,
                   start_time, end_time, session_type
            FROM study_sessions WHERE id=?
            """,
            (session_id,),
        ).fetchone()
        return SessionLog(**dict(r)) if r else None

    def list_for_user(
        self, user_id: str, scheduled_date: Optional[str] = None
    ) -> List[SessionLog]:
        if scheduled_date:
            rows = self.db.conn.execute(
                """
                SELECT id, user_id, subject_id, title, duration, scheduled_date,
                       start_time, end_time, session_type
                FROM study_sessions
                WHERE user_id=? AND scheduled_date=?
                ORDER BY created_at ASC
                """,
                (user_id, scheduled_date),
            ).fetchall()
        else:
            rows = self.db.conn.execute(
                """
                SELECT id, user_id, subject_id, title, duration, scheduled_date,
                       start_time, end_time, session_type
                FROM study_sessions
                WHERE user_id=?
                ORDER BY created_at ASC
                """,
                (user_id,),
            ).fetchall()
        return [SessionLog(**dict(r)) for r in rows]


class StreakRepo:
    def __init__(self, db: Database):
        self.db = db

    def get(self, user_id: str) -> Optional[Streak]:
        r = self.db.conn.execute(
            """
            SELECT current_streak, longest_streak, last_study_date
            FROM study_streaks WHERE user_id=?
            """,
            (user_id,),
        ).fetchone()
        if not r:
            return None
        return Streak(
            current=r["current_streak"],
            longest=r["longest_streak"],
            last_study_date=r["last_study_date"],
        )

    def save(self, user_id: str, streak: Streak) -> None:
        self.db.conn.execute(
            """
            INSERT INTO study_streaks(user_id, current_streak, longest_streak, last_study_date, updated_at)
            VALUES(?,?,?,?,?)
            ON CONFLICT(user_id) DO UPDATE SET
                current_streak=excluded.current_streak,
                longest_streak=excluded.longest_streak,
                last_study_date=excluded.last_study_date,
                updated_at=excluded.updated_at
            """,
            (user_id, streak.current, streak.longest, streak.last_study_date, _now_ts()),
        )
        self.db.conn.commit()
