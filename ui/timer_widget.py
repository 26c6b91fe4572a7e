# -*- coding: utf-8 -*-

import tkinter as tk
from tkinter import ttk
from typing import Callable, Dict, Optional

from core.timer_engine import EngineState
from services.preferences_service import PreferencesService
from services.timer_service import TimerService

PHASE_LABELS = {
    "focus": "Focus",
    "shortBreak": "Short Break",
    "longBreak": "Long Break",
}


def format_time(seconds: int) -> str:
    m = max(0, seconds) // 60
    s = max(0, seconds) % 60
    return f"{m:02d}:{s:02d}"


class TimerWidget(ttk.Frame):
    """
    Host for the timer: owns the tick loop (after()) and forwards
    window focus/map events as visibility signals.
    """

    def __init__(
        self,
        master,
        timer_service: TimerService,
        preferences: PreferencesService,
        tick_ms: int = 1000,
        on_request_refresh: Optional[Callable[[], None]] = None,
    ):
        super().__init__(master)

        self.timer_service = timer_service
        self.preferences = preferences
        self.tick_ms = tick_ms
        self.on_request_refresh = on_request_refresh or (lambda: None)

        self._tick_job = None
        self._subject_name_to_id: Dict[str, str] = {}

        self._build_ui()

        # wire callbacks from service -> widget UI
        self.timer_service.set_on_tick(self._on_tick)
        self.timer_service.set_on_phase_change(self._on_phase_change)
        self.timer_service.set_on_state_change(self._on_state_change)

        top = self.winfo_toplevel()
        for ev in ("<FocusIn>", "<Map>"):
            top.bind(ev, lambda e: self._on_visible(), add="+")

        snap = self.timer_service.get_snapshot()
        if snap:
            self._render(snap)
            if snap.is_running:
                self._ensure_tick_loop()
        self.reload_subjects()

    def _build_ui(self):
        self.columnconfigure(0, weight=1)

        self.phase_var = tk.StringVar(value="Focus")
        self.time_var = tk.StringVar(value="25:00")
        self.info_var = tk.StringVar(value="Select a subject to start")
        self.subject_var = tk.StringVar(value="")

        title = ttk.Label(self, text="Study Timer", font=("Sans", 12, "bold"))
        title.grid(row=0, column=0, sticky="w", pady=(0, 6))

        self.subject_box = ttk.Combobox(self, textvariable=self.subject_var, state="readonly")
        self.subject_box.grid(row=1, column=0, sticky="ew")
        self.subject_box.bind("<<ComboboxSelected>>", lambda e: self._select_subject())

        self.phase_label = ttk.Label(self, textvariable=self.phase_var)
        self.phase_label.grid(row=2, column=0, sticky="w", pady=(6, 0))

        self.time_label = ttk.Label(
            self, textvariable=self.time_var, font=("Sans", 32, "bold")
        )
        self.time_label.grid(row=3, column=0, sticky="w", pady=(8, 4))

        self.info_label = ttk.Label(self, textvariable=self.info_var)
        self.info_label.grid(row=4, column=0, sticky="w", pady=(0, 10))

        btns = ttk.Frame(self)
        btns.grid(row=5, column=0, sticky="w")

        self.start_btn = ttk.Button(btns, text="Start", command=self._start_or_pause)
        self.reset_btn = ttk.Button(btns, text="Reset", command=self._reset)

        self.start_btn.grid(row=0, column=0, padx=(0, 6))
        self.reset_btn.grid(row=0, column=1)

    def reload_subjects(self):
        subjects = self.preferences.list_subjects(self.timer_service.user_id)
        self._subject_name_to_id = {s.name: s.id for s in subjects}
        self.subject_box["values"] = [s.name for s in subjects]

        snap = self.timer_service.get_snapshot()
        current = snap.context.subject_id if snap else None
        for s in subjects:
            if s.id == current:
                self.subject_var.set(s.name)
                break

    def _select_subject(self):
        subject_id = self._subject_name_to_id.get(self.subject_var.get())
        if subject_id:
            self.timer_service.set_subject(subject_id)

    def _start_or_pause(self):
        try:
            self.timer_service.start_or_pause()
        except ValueError as e:
            self.info_var.set(str(e))
            return

        snap = self.timer_service.get_snapshot()
        if snap and snap.is_running:
            self._ensure_tick_loop()
        else:
            self._stop_tick_loop()
        self.on_request_refresh()

    def _reset(self):
        self.timer_service.reset()
        self._stop_tick_loop()
        self.on_request_refresh()

    def _on_visible(self):
        self.timer_service.on_visible()
        snap = self.timer_service.get_snapshot()
        if snap and snap.is_running:
            self._ensure_tick_loop()

    # ---- Tick loop (UI-driven) ----
    def _ensure_tick_loop(self):
        if self._tick_job is None:
            self._tick_job = self.after(self.tick_ms, self._tick_once)

    def _stop_tick_loop(self):
        if self._tick_job is not None:
            try:
                self.after_cancel(self._tick_job)
            except tk.TclError:
                pass
            self._tick_job = None

    def _tick_once(self):
        self._tick_job = None
        snap = self.timer_service.get_snapshot()
        if snap and snap.is_running:
            self.timer_service.tick()
        snap = self.timer_service.get_snapshot()
        if snap and snap.is_running:
            self._tick_job = self.after(self.tick_ms, self._tick_once)

    # ---- Service callbacks ----
    def _on_tick(self, snap: EngineState):
        self._render(snap)

    def _on_phase_change(self, snap: EngineState):
        self._stop_tick_loop()
        if snap.phase == "focus":
            self.info_var.set("Break over. Start when ready.")
        else:
            self.info_var.set("Focus complete! Start your break.")
        self._render(snap, keep_info=True)
        self.on_request_refresh()

    def _on_state_change(self, snap: EngineState):
        self._render(snap)
        self.on_request_refresh()

    def _render(self, snap: EngineState, keep_info: bool = False):
        self.time_var.set(format_time(snap.remaining_seconds))
        label = PHASE_LABELS.get(snap.phase, snap.phase)
        if snap.mode == "custom":
            label = "Custom Session"
        self.phase_var.set(label)
        self.start_btn.config(text="Pause" if snap.is_running else "Start")

        if keep_info:
            return
        if not snap.context.subject_id:
            self.info_var.set("Select a subject to start")
        elif snap.is_running:
            self.info_var.set("Running...")
        elif snap.remaining_seconds < snap.phase_duration_seconds:
            self.info_var.set("Paused")
        else:
            self.info_var.set("Ready")
