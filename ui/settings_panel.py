# -*- coding: utf-8 -*-

import tkinter as tk
from tkinter import messagebox, ttk
from typing import Callable, Optional

from domain.models import BOUNDS, SESSION_KINDS
from services.preferences_service import PreferencesService
from services.timer_service import TimerService


class SettingsPanel(ttk.Labelframe):
    """
    Subjects, session details and timer durations for the active identity.
    """

    def __init__(
        self,
        master,
        timer_service: TimerService,
        preferences: PreferencesService,
        on_subjects_changed: Optional[Callable[[], None]] = None,
    ):
        super().__init__(master, text="Settings", padding=10)

        self.timer_service = timer_service
        self.preferences = preferences
        self.on_subjects_changed = on_subjects_changed or (lambda: None)

        self._build_ui()
        self.load()

    def _build_ui(self):
        self.columnconfigure(1, weight=1)

        # subjects
        self.subject_name_var = tk.StringVar(value="")
        ttk.Label(self, text="New subject").grid(row=0, column=0, sticky="w")
        name_entry = ttk.Entry(self, textvariable=self.subject_name_var)
        name_entry.grid(row=0, column=1, sticky="ew", padx=6)
        name_entry.bind("<Return>", lambda e: self._add_subject())
        ttk.Button(self, text="Add", command=self._add_subject).grid(row=0, column=2)

        # session details
        self.title_var = tk.StringVar(value="")
        self.kind_var = tk.StringVar(value="study")
        ttk.Label(self, text="Title").grid(row=1, column=0, sticky="w", pady=(6, 0))
        ttk.Entry(self, textvariable=self.title_var).grid(
            row=1, column=1, sticky="ew", padx=6, pady=(6, 0)
        )
        kind_box = ttk.Combobox(
            self, textvariable=self.kind_var, values=list(SESSION_KINDS),
            state="readonly", width=9,
        )
        kind_box.grid(row=1, column=2, pady=(6, 0))
        ttk.Button(self, text="Set", command=self._apply_details).grid(
            row=2, column=2, sticky="e", pady=(4, 0)
        )

        # durations
        self.method_var = tk.StringVar(value="pomodoro")
        self.custom_var = tk.IntVar(value=25)
        self.focus_var = tk.IntVar(value=25)
        self.short_var = tk.IntVar(value=5)
        self.long_var = tk.IntVar(value=15)
        self.every_var = tk.IntVar(value=4)

        grid = ttk.Frame(self)
        grid.grid(row=3, column=0, columnspan=3, sticky="ew", pady=(10, 0))

        ttk.Label(grid, text="Method").grid(row=0, column=0, sticky="w")
        ttk.Combobox(
            grid, textvariable=self.method_var, values=["pomodoro", "custom"],
            state="readonly", width=9,
        ).grid(row=0, column=1, sticky="w", padx=(4, 10))
        ttk.Label(grid, text="Custom").grid(row=0, column=2, sticky="w")
        lo, hi, _ = BOUNDS["custom_minutes"]
        ttk.Spinbox(grid, from_=lo, to=hi, textvariable=self.custom_var, width=4).grid(
            row=0, column=3, sticky="w", padx=4
        )

        fields = (
            ("Focus", self.focus_var, "focus_minutes"),
            ("Short", self.short_var, "short_break_minutes"),
            ("Long", self.long_var, "long_break_minutes"),
            ("Every", self.every_var, "sessions_until_long_break"),
        )
        for i, (label, var, name) in enumerate(fields):
            lo, hi, _ = BOUNDS[name]
            ttk.Label(grid, text=label).grid(row=1, column=i * 2, sticky="w", pady=(4, 0))
            ttk.Spinbox(grid, from_=lo, to=hi, textvariable=var, width=4).grid(
                row=1, column=i * 2 + 1, sticky="w", padx=(4, 10), pady=(4, 0)
            )

        ttk.Button(self, text="Apply", command=self._apply_settings).grid(
            row=4, column=2, sticky="e", pady=(6, 0)
        )

    def load(self):
        """Fill the form from the active identity's preferences and snapshot."""
        cfg = self.preferences.get_timer_config(self.timer_service.user_id)
        self.method_var.set(cfg.mode)
        self.custom_var.set(cfg.custom_minutes)
        self.focus_var.set(cfg.focus_minutes)
        self.short_var.set(cfg.short_break_minutes)
        self.long_var.set(cfg.long_break_minutes)
        self.every_var.set(cfg.sessions_until_long_break)

        snap = self.timer_service.get_snapshot()
        if snap:
            self.title_var.set(snap.context.title)
            self.kind_var.set(snap.context.kind)

    def _add_subject(self):
        try:
            self.timer_service.add_subject(self.subject_name_var.get())
        except ValueError as e:
            messagebox.showwarning("Subject", str(e), parent=self)
            return
        self.subject_name_var.set("")
        self.on_subjects_changed()

    def _apply_details(self):
        try:
            self.timer_service.set_session_details(
                title=self.title_var.get(), kind=self.kind_var.get()
            )
        except ValueError as e:
            messagebox.showwarning("Session", str(e), parent=self)

    def _apply_settings(self):
        try:
            self.timer_service.update_settings(
                method=self.method_var.get(),
                custom_minutes=self.custom_var.get(),
                focusTime=self.focus_var.get(),
                shortBreak=self.short_var.get(),
                longBreak=self.long_var.get(),
                sessionsUntilLongBreak=self.every_var.get(),
            )
        except (ValueError, tk.TclError) as e:
            messagebox.showwarning("Settings", str(e), parent=self)
            return
        # show the clamped values that were actually applied
        self.load()
