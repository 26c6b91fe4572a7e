# -*- coding: utf-8 -*-

import logging
import sqlite3

from domain.models import SessionCompleted
from storage.repos import SessionRepo

logger = logging.getLogger(__name__)


class SessionLogger:
    """Writes completed focus sessions to study_sessions for one user."""

    def __init__(self, session_repo: SessionRepo, user_id: str):
        self.session_repo = session_repo
        self.user_id = user_id

    def record_completed_session(self, event: SessionCompleted) -> bool:
        try:
            log = self.session_repo.record_completed(
                user_id=self.user_id,
                subject_id=event.subject_id,
                title=event.title,
                duration=event.duration_minutes,
                scheduled_date=event.date,
                start_time=event.start_time,
                end_time=event.end_time,
                session_type=event.kind,
            )
        except sqlite3.Error as e:
            logger.error(f"Could not log session for {self.user_id}: {e}")
            return False

        logger.info(
            f"Logged {log.duration}m {log.session_type} session "
            f"'{log.title}' on {log.scheduled_date}"
        )
        return True
