"""Tests for the wall-clock timer engine.

Covers: phase transitions and long-break cadence, pause/resume anchoring,
catch-up after suspension, snapshot restore, config changes, and
collaborator failures.
"""

import pytest

from core.timer_engine import EngineState, TimerEngine, state_key
from domain.models import SessionContext, TimerConfig


def finish_phase(engine, clock):
    """Start the current phase and let it run out."""
    engine.start()
    clock.advance(engine.snapshot().phase_duration_seconds)
    return engine.tick()


# ═══════════════════════════════════════════════════════════════════════════
#  INITIAL STATE / RESET
# ═══════════════════════════════════════════════════════════════════════════


class TestInitialState:

    def test_fresh_engine_is_paused_focus(self, make_engine):
        snap = make_engine().snapshot()
        assert snap.phase == "focus"
        assert snap.is_running is False
        assert snap.phase_duration_seconds == 25 * 60
        assert snap.remaining_seconds == 25 * 60
        assert snap.phase_start_epoch_ms is None
        assert snap.completed_focus_count == 0

    def test_custom_mode_uses_custom_minutes(self, make_engine):
        engine = make_engine(TimerConfig(mode="custom", custom_minutes=40))
        assert engine.snapshot().phase_duration_seconds == 40 * 60

    def test_out_of_range_config_is_clamped(self, make_engine):
        engine = make_engine(TimerConfig(focus_minutes=999))
        assert engine.snapshot().phase_duration_seconds == 180 * 60


class TestReset:

    @pytest.mark.parametrize(
        "config",
        [
            TimerConfig(),
            TimerConfig(focus_minutes=50, short_break_minutes=10),
            TimerConfig(mode="custom", custom_minutes=90),
            TimerConfig(focus_minutes=-5, sessions_until_long_break=0),
        ],
    )
    def test_reset_restores_full_duration(self, make_engine, clock, config):
        engine = make_engine(config)
        engine.start()
        clock.advance(130)
        engine.tick()
        engine.reset()

        snap = engine.snapshot()
        assert snap.remaining_seconds == snap.phase_duration_seconds
        assert snap.is_running is False
        assert snap.phase_start_epoch_ms is None

    def test_reset_keeps_phase_and_counter(self, make_engine, clock):
        engine = make_engine()
        finish_phase(engine, clock)
        engine.start()
        clock.advance(60)
        engine.reset()

        snap = engine.snapshot()
        assert snap.phase == "shortBreak"
        assert snap.completed_focus_count == 1
        assert snap.remaining_seconds == 5 * 60

    def test_reset_does_not_count_focus(self, make_engine, clock, session_log):
        engine = make_engine()
        engine.start()
        clock.advance(1499)
        engine.reset()
        assert engine.snapshot().completed_focus_count == 0
        assert session_log.events == []


# ═══════════════════════════════════════════════════════════════════════════
#  WALL-CLOCK COUNTDOWN
# ═══════════════════════════════════════════════════════════════════════════


class TestCountdown:

    def test_tick_reads_wall_clock(self, make_engine, clock):
        engine = make_engine()
        engine.start()
        clock.advance(61)
        assert engine.tick() == 1500 - 61
        assert engine.snapshot().remaining_seconds == 1439

    def test_missed_ticks_do_not_drift(self, make_engine, clock):
        engine = make_engine()
        engine.start()
        # host throttled: one tick after ten minutes
        clock.advance(600)
        assert engine.tick() == 900

    def test_recompute_is_idempotent(self, make_engine, clock):
        engine = make_engine()
        engine.start()
        clock.advance(42)
        now = clock()
        assert engine.remaining_at(now) == engine.remaining_at(now)
        first = engine.recompute(now)
        second = engine.recompute(now)
        assert first == second == 1500 - 42

    def test_clock_going_backwards_never_exceeds_duration(self, make_engine, clock):
        engine = make_engine()
        engine.start()
        clock.advance(-30)
        assert engine.tick() == 1500

    def test_tick_while_paused_is_noop(self, make_engine, clock, store):
        engine = make_engine()
        writes = store.writes
        clock.advance(100)
        assert engine.tick() == 1500
        assert store.writes == writes

    def test_pause_resume_sum_matches_consumed(self, make_engine, clock):
        engine = make_engine()
        running = 0
        for run, idle in [(100, 50), (250, 3600), (17, 1), (400, 9)]:
            engine.start()
            clock.advance(run)
            running += run
            engine.pause()
            clock.advance(idle)

        snap = engine.snapshot()
        assert snap.remaining_seconds == 1500 - running
        assert snap.phase_start_epoch_ms is None

    def test_resume_anchor_matches_displayed_time(self, make_engine, clock):
        engine = make_engine()
        engine.start()
        clock.advance(900)
        engine.pause()
        assert engine.snapshot().remaining_seconds == 600

        clock.advance(3600)
        engine.start()
        snap = engine.snapshot()
        assert snap.phase_start_epoch_ms == clock() - 900_000
        assert abs(engine.recompute() - 600) <= 1

    def test_anchor_present_iff_running(self, make_engine, clock):
        engine = make_engine()
        steps = [engine.start, engine.pause, engine.start, engine.reset, engine.start]
        for step in steps:
            step()
            clock.advance(10)
            snap = engine.snapshot()
            assert (snap.phase_start_epoch_ms is not None) == snap.is_running

    def test_visibility_catches_up_long_suspension(self, make_engine, clock, session_log):
        engine = make_engine()
        engine.start()
        clock.advance(5000)
        assert engine.on_visible() == 0

        snap = engine.snapshot()
        assert snap.phase == "shortBreak"
        assert snap.is_running is False
        assert len(session_log.events) == 1

        # later ticks find nothing to do
        clock.advance(5000)
        engine.tick()
        engine.on_visible()
        assert len(session_log.events) == 1


# ═══════════════════════════════════════════════════════════════════════════
#  PHASE STATE MACHINE
# ═══════════════════════════════════════════════════════════════════════════


class TestTransitions:

    def test_focus_completion_at_exact_duration(self, make_engine, clock, session_log, streaks):
        engine = make_engine(TimerConfig(focus_minutes=25))
        t0 = clock()
        engine.start()
        clock.advance(1500)

        assert engine.tick() == 0
        assert len(session_log.events) == 1
        event = session_log.events[0]
        assert event.duration_minutes == 25
        assert event.start_timestamp == t0
        assert event.end_timestamp == t0 + 1_500_000
        assert streaks.dates == [event.date]

    def test_next_phase_starts_paused_at_full_duration(self, make_engine, clock):
        engine = make_engine()
        finish_phase(engine, clock)
        snap = engine.snapshot()
        assert snap.phase == "shortBreak"
        assert snap.is_running is False
        assert snap.remaining_seconds == snap.phase_duration_seconds == 5 * 60

    def test_break_returns_to_focus_without_logging(self, make_engine, clock, session_log):
        engine = make_engine()
        finish_phase(engine, clock)
        finish_phase(engine, clock)
        snap = engine.snapshot()
        assert snap.phase == "focus"
        assert snap.completed_focus_count == 1
        assert len(session_log.events) == 1

    def test_long_break_on_every_fourth_focus(self, make_engine, clock):
        engine = make_engine(TimerConfig(sessions_until_long_break=4))
        breaks = []
        for _ in range(8):
            finish_phase(engine, clock)
            breaks.append(engine.snapshot().phase)
            finish_phase(engine, clock)

        assert breaks == [
            "shortBreak", "shortBreak", "shortBreak", "longBreak",
            "shortBreak", "shortBreak", "shortBreak", "longBreak",
        ]
        assert engine.snapshot().completed_focus_count == 8

    def test_cadence_of_one_always_long(self, make_engine, clock):
        engine = make_engine(TimerConfig(sessions_until_long_break=1))
        finish_phase(engine, clock)
        assert engine.snapshot().phase == "longBreak"
        assert engine.snapshot().remaining_seconds == 15 * 60

    def test_pause_after_expiry_completes_phase(self, make_engine, clock, session_log):
        engine = make_engine()
        engine.start()
        clock.advance(1600)
        engine.pause()
        assert engine.snapshot().phase == "shortBreak"
        assert len(session_log.events) == 1

    def test_start_or_pause_toggles(self, make_engine, clock):
        engine = make_engine()
        assert engine.start_or_pause() is True
        clock.advance(5)
        assert engine.start_or_pause() is False
        assert engine.snapshot().remaining_seconds == 1495

    def test_focus_start_survives_pause(self, make_engine, clock, session_log):
        engine = make_engine()
        t0 = clock()
        engine.start()
        clock.advance(600)
        engine.pause()
        clock.advance(300)
        engine.start()
        clock.advance(900)
        engine.tick()

        event = session_log.events[0]
        assert event.start_timestamp == t0
        assert event.end_timestamp == t0 + 1_800_000

    def test_event_carries_session_context(self, make_engine, clock, session_log):
        engine = make_engine()
        engine.set_context(subject_id="math", title="  ", kind="practice")
        finish_phase(engine, clock)

        event = session_log.events[0]
        assert event.subject_id == "math"
        assert event.title == "Focus Session"
        assert event.kind == "practice"

    def test_invalid_kind_rejected(self, make_engine):
        with pytest.raises(ValueError):
            make_engine().set_context(kind="nap")

    def test_non_text_title_rejected(self, make_engine, store):
        engine = make_engine()
        with pytest.raises(ValueError):
            engine.set_context(title=5)
        assert engine.snapshot().context.title == "Focus Session"
        assert state_key(None) not in store.data

    def test_listener_sees_both_events(self, make_engine, clock):
        engine = make_engine()
        seen = []
        engine.add_listener(lambda ev: seen.append(type(ev).__name__))
        finish_phase(engine, clock)
        assert seen == ["SessionCompleted", "StreakTouched"]


# ═══════════════════════════════════════════════════════════════════════════
#  CONFIG CHANGES
# ═══════════════════════════════════════════════════════════════════════════


class TestConfigChanges:

    def test_change_while_stopped_applies_now(self, make_engine):
        engine = make_engine()
        engine.update_config(TimerConfig(focus_minutes=50))
        snap = engine.snapshot()
        assert snap.phase_duration_seconds == 3000
        assert snap.remaining_seconds == 3000

    def test_switch_to_custom_mode(self, make_engine):
        engine = make_engine()
        engine.update_config(TimerConfig(mode="custom", custom_minutes=45))
        snap = engine.snapshot()
        assert snap.mode == "custom"
        assert snap.remaining_seconds == 45 * 60

    def test_change_while_running_is_deferred(self, make_engine, clock, session_log):
        engine = make_engine()
        engine.start()
        clock.advance(100)
        engine.update_config(TimerConfig(focus_minutes=50, short_break_minutes=10))

        assert engine.snapshot().phase_duration_seconds == 1500
        assert engine.tick() == 1400

        clock.advance(1400)
        engine.tick()
        assert session_log.events[0].duration_minutes == 25
        assert engine.snapshot().remaining_seconds == 600

        finish_phase(engine, clock)
        assert engine.snapshot().phase_duration_seconds == 3000


# ═══════════════════════════════════════════════════════════════════════════
#  SNAPSHOT / RESTORE
# ═══════════════════════════════════════════════════════════════════════════


def running_snapshot(clock, seconds_ago, duration=1500, phase="focus", count=0):
    return EngineState(
        phase=phase,
        is_running=True,
        phase_duration_seconds=duration,
        remaining_seconds=duration,
        phase_start_epoch_ms=clock() - seconds_ago * 1000,
        completed_focus_count=count,
        context=SessionContext(subject_id="bio", title="Cells", kind="review"),
    ).to_dict()


class TestRestore:

    def test_every_mutation_is_persisted(self, make_engine, clock, store):
        engine = make_engine()
        engine.start()
        saved = store.data[state_key(None)]
        assert saved["is_running"] is True
        assert saved["phase_start_epoch_ms"] == clock()

        engine.pause()
        assert store.data[state_key(None)]["phase_start_epoch_ms"] is None

    def test_missing_snapshot_starts_fresh(self, make_engine):
        snap = make_engine().restore()
        assert snap.phase == "focus"
        assert snap.is_running is False

    def test_paused_snapshot_restored_verbatim(self, make_engine, clock, store):
        first = make_engine()
        first.set_context(subject_id="chem")
        first.start()
        clock.advance(100)
        first.pause()

        clock.advance(99999)
        snap = make_engine().restore()
        assert snap.is_running is False
        assert snap.remaining_seconds == 1400
        assert snap.context.subject_id == "chem"

    def test_running_snapshot_resumes_from_anchor(self, make_engine, clock):
        first = make_engine()
        first.start()
        clock.advance(700)

        snap = make_engine().restore()
        assert snap.is_running is True
        assert snap.remaining_seconds == 800

    def test_elapsed_phase_completes_exactly_once(self, make_engine, clock, store, session_log, streaks):
        store.data[state_key(None)] = running_snapshot(clock, seconds_ago=100_000)

        snap = make_engine().restore()
        assert snap.phase == "shortBreak"
        assert snap.is_running is False
        assert snap.remaining_seconds == 300
        assert snap.completed_focus_count == 1
        assert len(session_log.events) == 1
        assert len(streaks.dates) == 1

        event = session_log.events[0]
        assert event.subject_id == "bio"
        assert event.kind == "review"
        assert event.end_timestamp == event.start_timestamp + 1_500_000

        # a second reload sees the already-transitioned state
        make_engine().restore()
        assert len(session_log.events) == 1

    def test_elapsed_restore_uses_cadence(self, make_engine, clock, store):
        store.data[state_key(None)] = running_snapshot(clock, seconds_ago=2000, count=3)
        snap = make_engine().restore()
        assert snap.phase == "longBreak"
        assert snap.completed_focus_count == 4

    def test_elapsed_break_returns_to_focus(self, make_engine, clock, store, session_log):
        store.data[state_key(None)] = running_snapshot(
            clock, seconds_ago=1000, duration=300, phase="shortBreak", count=1
        )
        snap = make_engine().restore()
        assert snap.phase == "focus"
        assert snap.remaining_seconds == 1500
        assert session_log.events == []

    def test_running_without_anchor_is_reanchored(self, make_engine, clock, store):
        data = running_snapshot(clock, seconds_ago=0)
        data["phase_start_epoch_ms"] = None
        data["remaining_seconds"] = 600
        store.data[state_key(None)] = data

        snap = make_engine().restore()
        assert snap.is_running is True
        assert snap.phase_start_epoch_ms == clock() - 900_000
        assert snap.remaining_seconds == 600

    def test_paused_restore_with_new_config_resets(self, make_engine, clock, store):
        first = make_engine()
        first.start()
        clock.advance(100)
        first.pause()

        snap = make_engine(TimerConfig(focus_minutes=30)).restore()
        assert snap.phase_duration_seconds == 1800
        assert snap.remaining_seconds == 1800

    def test_remaining_clamped_on_restore(self, make_engine, store):
        data = EngineState(remaining_seconds=99999).to_dict()
        store.data[state_key(None)] = data
        snap = make_engine().restore()
        assert snap.remaining_seconds == snap.phase_duration_seconds

    @pytest.mark.parametrize(
        "data",
        [
            {"phase": "nap", "phase_duration_seconds": 60},
            {"phase": "focus"},
            {"phase": "focus", "phase_duration_seconds": 0},
            {"phase": "focus", "phase_duration_seconds": "x"},
        ],
    )
    def test_unreadable_snapshot_starts_fresh(self, make_engine, store, data):
        store.data[state_key(None)] = data
        snap = make_engine().restore()
        assert snap.phase == "focus"
        assert snap.remaining_seconds == 1500

    @pytest.mark.parametrize("context", ["oops", 7, ["bio"], None])
    def test_malformed_context_falls_back_to_defaults(self, make_engine, clock, store, context):
        data = running_snapshot(clock, seconds_ago=600)
        data["context"] = context
        store.data[state_key(None)] = data

        snap = make_engine().restore()
        assert snap.is_running is True
        assert snap.remaining_seconds == 900
        assert snap.context == SessionContext()

    @pytest.mark.parametrize("title", [5, None, ["x"], "   "])
    def test_bad_stored_title_still_completes_phase(
        self, make_engine, clock, store, session_log, title
    ):
        data = running_snapshot(clock, seconds_ago=2000)
        data["context"]["title"] = title
        data["context"]["subject_id"] = 42
        store.data[state_key(None)] = data

        snap = make_engine().restore()
        assert snap.phase == "shortBreak"
        assert snap.completed_focus_count == 1

        event = session_log.events[0]
        assert event.title == "Focus Session"
        assert event.subject_id is None
        assert event.kind == "review"

        # the transitioned snapshot reloads cleanly
        again = make_engine().restore()
        assert again.phase == "shortBreak"
        assert len(session_log.events) == 1

    def test_snapshot_fields_round_trip(self, make_engine, store):
        make_engine(TimerConfig(mode="custom", custom_minutes=40)).reset()
        saved = store.data[state_key(None)]
        assert set(saved) == {
            "phase", "is_running", "phase_duration_seconds", "remaining_seconds",
            "phase_start_epoch_ms", "completed_focus_count", "focus_start_epoch_ms",
            "context", "mode",
        }
        assert EngineState.from_dict(saved) == EngineState(
            phase_duration_seconds=2400, remaining_seconds=2400, mode="custom",
        )

    def test_unknown_stored_mode_reads_as_pomodoro(self):
        data = EngineState().to_dict()
        data["mode"] = "marathon"
        assert EngineState.from_dict(data).mode == "pomodoro"

    def test_snapshots_are_scoped_by_identity(self, make_engine, clock, store):
        alice = make_engine(identity="alice")
        alice.start()
        assert "alice:timer-state" in store.data

        bob = make_engine(identity="bob").restore()
        assert bob.is_running is False
        assert make_engine(identity="alice").restore().is_running is True


# ═══════════════════════════════════════════════════════════════════════════
#  COLLABORATOR FAILURES
# ═══════════════════════════════════════════════════════════════════════════


class TestCollaboratorFailures:

    def test_log_failure_does_not_block_transition(self, clock, store, streaks):
        from conftest import RecordingSessionLogger

        failing = RecordingSessionLogger(fail=True)
        engine = TimerEngine(
            TimerConfig(), store=store, session_logger=failing,
            streak_tracker=streaks, clock=clock,
        )
        finish_phase(engine, clock)

        assert engine.snapshot().phase == "shortBreak"
        assert len(failing.events) == 1
        assert len(streaks.dates) == 1

    def test_streak_failure_is_swallowed(self, clock, store, session_log):
        from conftest import RecordingStreaks

        engine = TimerEngine(
            TimerConfig(), store=store, session_logger=session_log,
            streak_tracker=RecordingStreaks(fail=True), clock=clock,
        )
        finish_phase(engine, clock)
        assert engine.snapshot().phase == "shortBreak"

    def test_store_read_failure_means_fresh(self, make_engine, store, clock):
        make_engine().start()
        store.fail_reads = True
        snap = make_engine().restore()
        assert snap.is_running is False

    def test_store_write_failure_never_blocks(self, make_engine, store, clock):
        store.fail_writes = True
        engine = make_engine()
        engine.start()
        clock.advance(10)
        assert engine.tick() == 1490
        engine.reset()
        assert engine.snapshot().remaining_seconds == 1500

    def test_engine_without_collaborators(self, clock):
        engine = TimerEngine(clock=clock)
        finish_phase(engine, clock)
        assert engine.snapshot().phase == "shortBreak"
        assert engine.restore().phase == "shortBreak"
