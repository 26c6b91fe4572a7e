# -*- coding: utf-8 -*-

import datetime as dt
import logging

from domain.models import Streak
from storage.repos import StreakRepo

logger = logging.getLogger(__name__)


class StreakService:
    def __init__(self, streak_repo: StreakRepo, user_id: str):
        self.streak_repo = streak_repo
        self.user_id = user_id

    def get(self) -> Streak:
        return self.streak_repo.get(self.user_id) or Streak(current=0, longest=0)

    def touch(self, date: str) -> Streak:
        """
        Count `date` (yyyy-mm-dd) as a study day.
        Same day: unchanged. Day after the last one: +1. Otherwise restart at 1.
        """
        day = dt.date.fromisoformat(date)
        prev = self.streak_repo.get(self.user_id)

        if prev is None or not prev.last_study_date:
            current = 1
        else:
            last = dt.date.fromisoformat(prev.last_study_date)
            if day <= last:
                return prev
            current = prev.current + 1 if day - last == dt.timedelta(days=1) else 1

        longest = max(prev.longest if prev else 0, current)
        streak = Streak(current=current, longest=longest, last_study_date=day.isoformat())
        self.streak_repo.save(self.user_id, streak)

        logger.info(f"Streak for {self.user_id}: {current} (best {longest})")
        return streak
