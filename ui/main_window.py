# -*- coding: utf-8 -*-

import tkinter as tk
from tkinter import ttk
from typing import Optional

from domain.models import SessionCompleted
from services.preferences_service import PreferencesService
from services.stats_service import StatsService
from services.streak_service import StreakService
from services.timer_service import TimerService
from ui.settings_panel import SettingsPanel
from ui.timer_widget import TimerWidget


class MainWindow:
    def __init__(
        self,
        timer_service: TimerService,
        stats_service: StatsService,
        preferences: PreferencesService,
        streaks: Optional[StreakService] = None,
        tick_ms: int = 1000,
    ):
        self.timer_service = timer_service
        self.stats_service = stats_service
        self.preferences = preferences
        self.streaks = streaks

        self.root = tk.Tk()
        self.root.title("Study Timer")
        self.root.geometry("460x620")

        outer = ttk.Frame(self.root, padding=10)
        outer.pack(fill="both", expand=True)
        outer.columnconfigure(0, weight=1)

        self.timer = TimerWidget(
            outer,
            timer_service=self.timer_service,
            preferences=self.preferences,
            tick_ms=tick_ms,
            on_request_refresh=self._refresh_stats,
        )
        self.timer.grid(row=0, column=0, sticky="ew")

        self.settings = SettingsPanel(
            outer,
            timer_service=self.timer_service,
            preferences=self.preferences,
            on_subjects_changed=self.timer.reload_subjects,
        )
        self.settings.grid(row=1, column=0, sticky="ew", pady=(10, 0))

        stats = ttk.Labelframe(outer, text="Progress", padding=10)
        stats.grid(row=2, column=0, sticky="nsew", pady=(10, 0))

        self.stats_var = tk.StringVar(value="")
        ttk.Label(stats, textvariable=self.stats_var, font=("Sans", 11)).grid(
            row=0, column=0, sticky="w"
        )

        self.last_logged_var = tk.StringVar(value="")
        ttk.Label(stats, textvariable=self.last_logged_var).grid(
            row=1, column=0, sticky="w", pady=(6, 0)
        )

        self.timer_service.set_on_session_completed(self._on_session_completed)
        self._refresh_stats()

    def run(self):
        self.root.mainloop()

    def _on_session_completed(self, event: SessionCompleted):
        if self.timer_service.user_id:
            self.last_logged_var.set(f"Last logged: {event.title} ({event.duration_minutes}m)")
        self._refresh_stats()

    def _refresh_stats(self):
        user_id = self.timer_service.user_id
        if not user_id:
            self.stats_var.set("Guest mode: sessions are not logged")
            return
        today = self.stats_service.total_today_focus_minutes(user_id)
        lines = [f"Today (focus): {today}m"]
        if self.streaks is not None:
            streak = self.streaks.get()
            lines.append(f"Streak: {streak.current} day(s), best {streak.longest}")
        by_subject = self._minutes_by_subject_name(user_id)
        if by_subject:
            lines.append("By subject: " + ", ".join(f"{name} {m}m" for name, m in by_subject))
        self.stats_var.set("\n".join(lines))

    def _minutes_by_subject_name(self, user_id: str):
        names = {s.id: s.name for s in self.preferences.list_subjects(user_id)}
        totals = self.stats_service.minutes_by_subject(user_id)
        rows = [(names.get(sid, "Other"), m) for sid, m in totals.items()]
        return sorted(rows, key=lambda r: -r[1])
