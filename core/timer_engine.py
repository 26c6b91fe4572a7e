# -*- coding: utf-8 -*-

import logging
import time
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from domain.models import (
    MODES,
    PHASES,
    SESSION_KINDS,
    SessionCompleted,
    SessionContext,
    StreakTouched,
    TimerConfig,
)

logger = logging.getLogger(__name__)

STATE_KEY = "timer-state"
GUEST_SCOPE = "guest"


def _now_ms() -> int:
    return int(time.time() * 1000)


def state_key(identity: Optional[str]) -> str:
    return f"{identity or GUEST_SCOPE}:{STATE_KEY}"


@dataclass
class EngineState:
    phase: str = "focus"  # focus | shortBreak | longBreak
    is_running: bool = False
    phase_duration_seconds: int = 25 * 60
    remaining_seconds: int = 25 * 60
    phase_start_epoch_ms: Optional[int] = None  # set iff is_running
    completed_focus_count: int = 0
    focus_start_epoch_ms: Optional[int] = None
    context: SessionContext = field(default_factory=SessionContext)
    mode: str = "pomodoro"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineState":
        phase = data["phase"]
        if phase not in PHASES:
            raise ValueError(f"Unknown phase: {phase!r}")

        duration = int(data["phase_duration_seconds"])
        if duration <= 0:
            raise ValueError("Phase duration must be positive.")

        ctx = data.get("context")
        if not isinstance(ctx, dict):
            ctx = {}
        kind = ctx.get("kind") or "study"
        if kind not in SESSION_KINDS:
            kind = "study"

        anchor = data.get("phase_start_epoch_ms")
        focus_start = data.get("focus_start_epoch_ms")
        title = ctx.get("title")
        if not isinstance(title, str) or not title.strip():
            title = "Focus Session"
        subject_id = ctx.get("subject_id")
        if subject_id is not None and not isinstance(subject_id, str):
            subject_id = None
        return cls(
            phase=phase,
            is_running=bool(data.get("is_running", False)),
            phase_duration_seconds=duration,
            remaining_seconds=int(data.get("remaining_seconds", duration)),
            phase_start_epoch_ms=int(anchor) if anchor is not None else None,
            completed_focus_count=max(0, int(data.get("completed_focus_count", 0))),
            focus_start_epoch_ms=int(focus_start) if focus_start is not None else None,
            context=SessionContext(
                subject_id=subject_id,
                title=title,
                kind=kind,
            ),
            mode=data.get("mode") if data.get("mode") in MODES else "pomodoro",
        )


class TimerEngine:
    """
    Wall-clock Pomodoro engine (no UI, no I/O of its own).

    The host calls tick() periodically and on_visible() when it regains the
    foreground. Remaining time is always derived from phase_start_epoch_ms,
    so missed ticks are caught up in one step.

    Collaborators (all optional):
    - store: get(key) -> dict | None, set(key, dict)
    - session_logger: record_completed_session(SessionCompleted) -> bool
    - streak_tracker: touch(date) -> Streak
    - clock: () -> epoch milliseconds
    """

    def __init__(
        self,
        config: Optional[TimerConfig] = None,
        store=None,
        identity: Optional[str] = None,
        session_logger=None,
        streak_tracker=None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.config = (config or TimerConfig()).clamped()
        self.store = store
        self.key = state_key(identity)
        self.session_logger = session_logger
        self.streak_tracker = streak_tracker
        self.clock = clock or _now_ms

        self._listeners: List[Callable[[Any], None]] = []

        self.state = EngineState()
        self._rederive_duration()
        self.state.remaining_seconds = self.state.phase_duration_seconds

    # ----- Read side -----
    def snapshot(self) -> EngineState:
        return replace(self.state)

    def remaining_at(self, now: int) -> int:
        """Pure: remaining seconds at `now` given the current state."""
        st = self.state
        if not st.is_running or st.phase_start_epoch_ms is None:
            return st.remaining_seconds
        elapsed = (now - st.phase_start_epoch_ms) // 1000
        return max(0, min(st.phase_duration_seconds, st.phase_duration_seconds - elapsed))

    def add_listener(self, fn: Callable[[Any], None]) -> None:
        """fn receives SessionCompleted and StreakTouched events."""
        self._listeners.append(fn)

    # ----- Public API -----
    def start_or_pause(self) -> bool:
        if self.state.is_running:
            self.pause()
        else:
            self.start()
        return self.state.is_running

    def start(self) -> None:
        st = self.state
        if st.is_running:
            return

        now = self.clock()
        st.is_running = True
        if st.phase_start_epoch_ms is None:
            # line the anchor up with what is already shown
            st.phase_start_epoch_ms = now - (
                st.phase_duration_seconds - st.remaining_seconds
            ) * 1000
        if st.phase == "focus" and st.focus_start_epoch_ms is None:
            st.focus_start_epoch_ms = st.phase_start_epoch_ms

        logger.debug(f"Timer started: {st.phase}, {st.remaining_seconds}s left")
        self._persist()

    def pause(self) -> None:
        st = self.state
        if not st.is_running:
            return

        now = self.clock()
        remaining = self.remaining_at(now)
        if remaining <= 0:
            st.remaining_seconds = 0
            self._complete_phase(now)
            return

        st.is_running = False
        st.phase_start_epoch_ms = None
        st.remaining_seconds = remaining

        logger.debug(f"Timer paused: {st.phase}, {remaining}s left")
        self._persist()

    def reset(self) -> None:
        st = self.state
        st.is_running = False
        st.phase_start_epoch_ms = None
        st.focus_start_epoch_ms = None
        self._rederive_duration()
        st.remaining_seconds = st.phase_duration_seconds

        logger.debug(f"Timer reset: {st.phase}")
        self._persist()

    def recompute(self, now: Optional[int] = None) -> int:
        """
        Recompute remaining time from the anchor. Runs phase completion
        right away when the countdown has reached zero.
        Returns the remaining seconds observed at `now`.
        """
        st = self.state
        if not st.is_running:
            return st.remaining_seconds

        if now is None:
            now = self.clock()
        remaining = self.remaining_at(now)
        st.remaining_seconds = remaining

        if remaining <= 0:
            self._complete_phase(now)
            return 0

        self._persist()
        return remaining

    def tick(self) -> int:
        return self.recompute()

    def on_visible(self) -> int:
        return self.recompute()

    def update_config(self, config: TimerConfig) -> None:
        """
        New durations apply at once while stopped. While running the
        current phase keeps its duration until the next phase boundary.
        """
        config = config.clamped()
        if config == self.config:
            return
        self.config = config

        st = self.state
        if not st.is_running:
            before = st.phase_duration_seconds
            self._rederive_duration()
            if st.phase_duration_seconds != before:
                st.remaining_seconds = st.phase_duration_seconds
                st.phase_start_epoch_ms = None
        else:
            logger.debug("Config change deferred to next phase boundary")

        self._persist()

    def set_context(
        self,
        subject_id: Optional[str] = None,
        title: Optional[str] = None,
        kind: Optional[str] = None,
    ) -> None:
        ctx = self.state.context
        if title is not None and not isinstance(title, str):
            raise ValueError("Session title must be text.")
        if kind is not None and kind not in SESSION_KINDS:
            raise ValueError("Invalid session type. Use study/review/practice.")
        self.state.context = SessionContext(
            subject_id=subject_id if subject_id is not None else ctx.subject_id,
            title=title if title is not None else ctx.title,
            kind=kind if kind is not None else ctx.kind,
        )
        self._persist()

    def restore(self) -> EngineState:
        """
        Load the persisted snapshot. A running phase that ran out while the
        process was away is completed (and logged) before returning.
        """
        saved = self._load()
        if saved is None:
            return self.snapshot()

        self.state = saved
        st = self.state

        if st.is_running:
            now = self.clock()
            if st.phase_start_epoch_ms is None:
                st.remaining_seconds = max(
                    0, min(st.phase_duration_seconds, st.remaining_seconds)
                )
                st.phase_start_epoch_ms = now - (
                    st.phase_duration_seconds - st.remaining_seconds
                ) * 1000
            if st.phase == "focus" and st.focus_start_epoch_ms is None:
                st.focus_start_epoch_ms = st.phase_start_epoch_ms
            self.recompute(now)
            return self.snapshot()

        st.phase_start_epoch_ms = None
        st.remaining_seconds = max(0, min(st.phase_duration_seconds, st.remaining_seconds))
        if self.config.phase_seconds(st.phase) != st.phase_duration_seconds:
            self._rederive_duration()
            st.remaining_seconds = st.phase_duration_seconds
        self._persist()
        return self.snapshot()

    # ----- Internals -----
    def _rederive_duration(self) -> None:
        st = self.state
        st.phase_duration_seconds = self.config.phase_seconds(st.phase)
        st.mode = self.config.mode

    def _complete_phase(self, now: int) -> None:
        st = self.state
        finished = st.phase
        event = None

        if finished == "focus":
            duration = st.phase_duration_seconds
            anchor = st.phase_start_epoch_ms
            end_ts = now if anchor is None else min(now, anchor + duration * 1000)
            if st.focus_start_epoch_ms is not None:
                start_ts = st.focus_start_epoch_ms
            elif anchor is not None:
                start_ts = anchor
            else:
                start_ts = end_ts - duration * 1000

            ctx = st.context
            event = SessionCompleted(
                subject_id=ctx.subject_id,
                title=(ctx.title or "").strip() or "Focus Session",
                kind=ctx.kind,
                duration_minutes=int(round(duration / 60)),
                start_timestamp=start_ts,
                end_timestamp=end_ts,
            )

            # cadence is checked before the counter moves
            long_break = (
                st.completed_focus_count + 1
            ) % self.config.sessions_until_long_break == 0
            st.completed_focus_count += 1
            st.phase = "longBreak" if long_break else "shortBreak"
        else:
            st.phase = "focus"

        st.is_running = False
        st.phase_start_epoch_ms = None
        st.focus_start_epoch_ms = None
        self._rederive_duration()
        st.remaining_seconds = st.phase_duration_seconds

        logger.info(
            f"Phase complete: {finished} -> {st.phase} "
            f"(focus sessions: {st.completed_focus_count})"
        )
        self._persist()

        if event is not None:
            self._emit_completed(event)

    def _emit_completed(self, event: SessionCompleted) -> None:
        if self.session_logger is not None:
            try:
                ok = self.session_logger.record_completed_session(event)
                if ok is False:
                    logger.warning(f"Session log rejected: {event.title} ({event.duration_minutes}m)")
            except Exception:
                logger.warning("Session log failed", exc_info=True)

        touched = StreakTouched(date=event.date)
        if self.streak_tracker is not None:
            try:
                self.streak_tracker.touch(touched.date)
            except Exception:
                logger.warning("Streak update failed", exc_info=True)

        for fn in list(self._listeners):
            for ev in (event, touched):
                try:
                    fn(ev)
                except Exception:
                    logger.warning("Timer listener failed", exc_info=True)

    def _load(self) -> Optional[EngineState]:
        if self.store is None:
            return None
        try:
            data = self.store.get(self.key)
        except Exception:
            logger.warning(f"Could not read {self.key}, starting fresh", exc_info=True)
            return None
        if not data:
            return None
        try:
            return EngineState.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable snapshot {self.key}: {e}")
            return None

    def _persist(self) -> None:
        if self.store is None:
            return
        try:
            self.store.set(self.key, self.state.to_dict())
        except Exception:
            logger.warning(f"Could not write {self.key}", exc_info=True)
