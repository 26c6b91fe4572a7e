#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
import sqlite3

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, db_path: str = "study_timer.db"):
        self.db_path = db_path
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON;")

    def connect(self) -> sqlite3.Connection:
        return self.conn

    def init_schema(self):
        cur = self.conn.cursor()

        # --- key/value slots (timer snapshots, preferences) ---
        cur.execute("""
            CREATE TABLE IF NOT EXISTS app_state (
                key TEXT PRIMARY KEY,
                value TEXT
            );
        """)

        # --- completed focus sessions ---
        cur.execute("""
            CREATE TABLE IF NOT EXISTS study_sessions (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                subject_id TEXT,
                title TEXT NOT NULL,
                duration INTEGER NOT NULL,
                completed INTEGER NOT NULL DEFAULT 1,
                scheduled_date TEXT NOT NULL,
                start_time TEXT,
                end_time TEXT,
                session_type TEXT NOT NULL DEFAULT 'study',
                created_at INTEGER NOT NULL
            );
        """)

        # --- daily study streaks ---
        cur.execute("""
            CREATE TABLE IF NOT EXISTS study_streaks (
                user_id TEXT PRIMARY KEY,
                current_streak INTEGER NOT NULL DEFAULT 0,
                longest_streak INTEGER NOT NULL DEFAULT 0,
                last_study_date TEXT,
                updated_at INTEGER NOT NULL
            );
        """)

        cur.execute("CREATE INDEX IF NOT EXISTS idx_sessions_user_date ON study_sessions(user_id, scheduled_date);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sessions_subject ON study_sessions(subject_id);")

        self.conn.commit()
        logger.debug(f"Schema ready at {self.db_path} ")

    def close(self):
        try:
            self.conn.close()
        except sqlite3.Error:
            pass
