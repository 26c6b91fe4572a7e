# -*- coding: utf-8 -*-

import logging
from typing import Callable, Optional

from core.timer_engine import EngineState, TimerEngine
from domain.models import SessionCompleted, Subject
from services.preferences_service import PreferencesService
from services.session_logger import SessionLogger
from services.state_store import TimerStateStore
from services.streak_service import StreakService
from storage.repos import AppStateRepo, SessionRepo, StreakRepo

logger = logging.getLogger(__name__)


class TimerService:
    """
    Orchestrates:
    - one TimerEngine per signed-in identity (or guest)
    - wiring of snapshot store, session log and streak collaborators
    - subject selection rules
    - Callbacks for UI

    Until activate() is called there is no active configuration and every
    timer operation is a no-op.
    """

    def __init__(
        self,
        state_repo: AppStateRepo,
        session_repo: SessionRepo,
        streak_repo: StreakRepo,
        preferences: PreferencesService,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.state_repo = state_repo
        self.session_repo = session_repo
        self.streak_repo = streak_repo
        self.preferences = preferences
        self.clock = clock

        self.engine: Optional[TimerEngine] = None
        self.user_id: Optional[str] = None

        self._on_tick: Optional[Callable[[EngineState], None]] = None
        self._on_phase_change: Optional[Callable[[EngineState], None]] = None
        self._on_state_change: Optional[Callable[[EngineState], None]] = None
        self._on_session_completed: Optional[Callable[[SessionCompleted], None]] = None

    # ----- Callbacks -----
    def set_on_tick(self, fn: Callable[[EngineState], None]) -> None:
        self._on_tick = fn

    def set_on_phase_change(self, fn: Callable[[EngineState], None]) -> None:
        self._on_phase_change = fn

    def set_on_state_change(self, fn: Callable[[EngineState], None]) -> None:
        self._on_state_change = fn

    def set_on_session_completed(self, fn: Callable[[SessionCompleted], None]) -> None:
        self._on_session_completed = fn

    def _emit_tick(self) -> None:
        if self._on_tick and self.engine:
            self._on_tick(self.engine.snapshot())

    def _emit_phase_change(self) -> None:
        if self._on_phase_change and self.engine:
            self._on_phase_change(self.engine.snapshot())

    def _emit_state_change(self) -> None:
        if self._on_state_change and self.engine:
            self._on_state_change(self.engine.snapshot())

    def _on_engine_event(self, event) -> None:
        if isinstance(event, SessionCompleted) and self._on_session_completed:
            self._on_session_completed(event)

    # ----- Lifecycle -----
    def activate(self, user_id: Optional[str]) -> EngineState:
        """Build (or restore) the timer for this identity."""
        self.deactivate()

        config = self.preferences.get_timer_config(user_id)
        session_logger = None
        streak_tracker = None
        if user_id:
            # guests keep a timer but nothing is logged
            session_logger = SessionLogger(self.session_repo, user_id)
            streak_tracker = StreakService(self.streak_repo, user_id)

        engine = TimerEngine(
            config,
            store=TimerStateStore(self.state_repo),
            identity=user_id,
            session_logger=session_logger,
            streak_tracker=streak_tracker,
            clock=self.clock,
        )
        engine.add_listener(self._on_engine_event)

        self.engine = engine
        self.user_id = user_id
        snap = engine.restore()

        subjects = self.preferences.list_subjects(user_id)
        known = {s.id for s in subjects}
        if subjects and snap.context.subject_id not in known:
            engine.set_context(subject_id=subjects[0].id)

        logger.info(
            f"Timer activated for {user_id or 'guest'}: {snap.phase}, "
            f"{'running' if snap.is_running else 'stopped'}"
        )
        self._emit_state_change()
        return engine.snapshot()

    def deactivate(self) -> None:
        if self.engine is not None:
            logger.info(f"Timer discarded for {self.user_id or 'guest'}")
        self.engine = None
        self.user_id = None

    # ----- Public API -----
    def get_snapshot(self) -> Optional[EngineState]:
        return self.engine.snapshot() if self.engine else None

    def start_or_pause(self) -> None:
        if self.engine is None:
            return

        snap = self.engine.snapshot()
        if not snap.is_running and not snap.context.subject_id:
            # hard constraint: must have a subject
            raise ValueError("Subject must be selected before starting timer.")

        self.engine.start_or_pause()
        self._after_mutation(snap.phase)

    def reset(self) -> None:
        if self.engine is None:
            return
        self.engine.reset()
        self._emit_state_change()
        self._emit_tick()

    def tick(self) -> None:
        """
        Called by the UI loop about once per second.
        Handles phase switching via the engine.
        """
        if self.engine is None:
            return
        snap_before = self.engine.snapshot()
        if not snap_before.is_running:
            return

        self.engine.tick()
        self._emit_tick()
        if self.engine.snapshot().phase != snap_before.phase:
            self._emit_phase_change()

    def on_visible(self) -> None:
        if self.engine is None:
            return
        phase_before = self.engine.snapshot().phase
        self.engine.on_visible()
        self._after_mutation(phase_before)

    def set_subject(self, subject_id: str) -> None:
        if self.engine is None:
            return
        subject_ids = {s.id for s in self.preferences.list_subjects(self.user_id)}
        if subject_id not in subject_ids:
            raise ValueError("Selected subject not found.")
        self.engine.set_context(subject_id=subject_id)
        self._emit_state_change()

    def set_session_details(self, title: Optional[str] = None, kind: Optional[str] = None) -> None:
        if self.engine is None:
            return
        self.engine.set_context(title=title, kind=kind)
        self._emit_state_change()

    def add_subject(self, name: str, color: str = "#3B82F6") -> Subject:
        """Create a subject for the active identity; selects it if none is."""
        subject = self.preferences.add_subject(self.user_id, name, color)
        if self.engine is not None and not self.engine.snapshot().context.subject_id:
            self.engine.set_context(subject_id=subject.id)
            self._emit_state_change()
        return subject

    def update_settings(
        self,
        method: Optional[str] = None,
        custom_minutes: Optional[int] = None,
        **pomodoro: int,
    ) -> None:
        """Save timer preferences, then apply them to the running engine."""
        if method is not None:
            self.preferences.set_study_method(self.user_id, method)
        if custom_minutes is not None:
            self.preferences.set_custom_minutes(self.user_id, custom_minutes)
        if pomodoro:
            self.preferences.set_pomodoro_settings(self.user_id, **pomodoro)
        self.reload_preferences()

    def reload_preferences(self) -> None:
        if self.engine is None:
            return
        self.engine.update_config(self.preferences.get_timer_config(self.user_id))
        self._emit_state_change()
        self._emit_tick()

    def _after_mutation(self, phase_before: str) -> None:
        if self.engine.snapshot().phase != phase_before:
            self._emit_phase_change()
        self._emit_state_change()
        self._emit_tick()
