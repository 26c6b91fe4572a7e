#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging

from config import load_config
from services.preferences_service import PreferencesService
from services.stats_service import StatsService
from services.streak_service import StreakService
from services.timer_service import TimerService
from storage.db import Database
from storage.repos import AppStateRepo, SessionRepo, StreakRepo
from utils.logger import setup_logger

logger = logging.getLogger(__name__)


def main():
    cfg = load_config()
    setup_logger(
        cfg.logging.log_file,
        level=cfg.logging.level,
        max_bytes=cfg.logging.max_bytes,
        backup_count=cfg.logging.backup_count,
    )

    db = Database(db_path=cfg.database.path)
    db.init_schema()

    state_repo = AppStateRepo(db)
    session_repo = SessionRepo(db)
    streak_repo = StreakRepo(db)

    preferences = PreferencesService(state_repo)
    stats_service = StatsService(db)
    timer_service = TimerService(state_repo, session_repo, streak_repo, preferences)

    user_id = cfg.timer.user_id
    timer_service.activate(user_id)
    streaks = StreakService(streak_repo, user_id) if user_id else None

    # imported late so the services above stay usable without a display
    from ui.main_window import MainWindow

    logger.info(f"Starting Study Timer (db={cfg.database.path}, user={user_id or 'guest'})")
    app = MainWindow(
        timer_service,
        stats_service,
        preferences,
        streaks=streaks,
        tick_ms=cfg.timer.tick_ms,
    )
    try:
        app.run()
    finally:
        timer_service.deactivate()
        db.close()


if __name__ == "__main__":
    main()
