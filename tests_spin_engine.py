#!/usr/bin/env python3
"""
Tests for the Spin Engine

Validates:
1.  Cubic ease-out curve shape
2.  First-spin target = k·360 + (360 − midpoint), k ∈ [5, 10)
3.  Repeated spins accumulate rotation and still land on the selection
4.  Rotation is monotonically non-decreasing, including across early stop
5.  Early stop is continuous and keeps the preselected outcome
6.  Abort freezes the wheel without emitting a result
7.  Invalid transitions raise and leave the phase unchanged
8.  Pointer over a gap at settle → no outcome, not an error
9.  1000+ random round trips (Monte Carlo) land on the selected segment
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from sim_engine.wheel import (
    EmptySegmentSet, InvalidSpinRequest, SpinEngine, SpinPhase,
    allocate, ease_out_cubic, pointer_angle,
)
from config.settings import WheelConfig

EPS = 1e-9


# ── Helpers ──

class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class ScriptedSource:
    """Returns the given values in order, then repeats the last one."""

    def __init__(self, *values):
        self.values = list(values)

    def __call__(self) -> float:
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]


def _six():
    return allocate([{"name": f"s{i}", "weight": 1, "color": "#000"} for i in range(6)])


def _engine(source, **kw):
    clock = FakeClock()
    kw.setdefault("spin_duration_ms", 5000)
    kw.setdefault("stop_duration_ms", 1000)
    return SpinEngine(random_source=source, clock=clock, **kw), clock


def _run_to_end(engine, clock, frame_ms: float = 16.0):
    result = None
    while result is None:
        clock.now += frame_ms
        result = engine.tick()
    return result


# ============================================================
# Tests
# ============================================================

def test_ease_out_cubic_shape():
    """Curve starts at 0, ends at 1, passes 0.875 at the halfway mark."""
    assert ease_out_cubic(0) == 0
    assert ease_out_cubic(1) == 1
    assert abs(ease_out_cubic(0.5) - 0.875) < EPS
    samples = [ease_out_cubic(i / 1000) for i in range(1001)]
    assert all(b >= a for a, b in zip(samples, samples[1:])), "ease-out must be non-decreasing"
    print("✅ ease_out_cubic: 0 → 0, ½ → 0.875, 1 → 1, monotonic")


def test_first_spin_target():
    """From rotation 0: target = turns·360 + (360 − midpoint)."""
    engine, clock = _engine(ScriptedSource(0.1, 0.0))
    segs = _six()
    selected = engine.start_spin(segs)
    assert selected is segs[0]
    assert abs(engine.target_rotation - (5 * 360 + 330)) < EPS
    assert engine.phase is SpinPhase.SPINNING
    assert engine.selected_outcome is segs[0]

    clock.now = 2500
    assert engine.tick() is None
    assert abs(engine.current_rotation - 2130 * 0.875) < EPS

    clock.now = 5000
    result = engine.tick()
    assert result is not None
    assert result.segment is selected
    assert result.matches_selection
    assert engine.phase is SpinPhase.SETTLED
    assert engine.current_rotation == engine.target_rotation
    assert abs(result.pointer_angle - 30.0) < EPS
    print(f"✅ First spin: target {engine.target_rotation:.1f}°, landed on {result.segment.name}")


def test_turn_count_range():
    """Full turns stay within [MIN_TURNS, MAX_TURNS)."""
    engine, clock = _engine(ScriptedSource(0.999999))
    segs = _six()
    engine.start_spin(segs)
    travelled = engine.target_rotation - engine.state.start_rotation
    assert 9 * 360 <= travelled < 10 * 360, travelled

    import random
    engine, clock = _engine(random.Random(21).random)
    for _ in range(200):
        start = engine.current_rotation
        engine.start_spin(segs)
        travelled = engine.target_rotation - start
        assert WheelConfig.MIN_TURNS * 360 <= travelled < WheelConfig.MAX_TURNS * 360, travelled
        _run_to_end(engine, clock, frame_ms=1000)
    print("✅ Turn count always within [5, 10) full rotations")


def test_invalid_turn_range():
    try:
        SpinEngine(min_turns=5, max_turns=4)
    except ValueError:
        print("✅ Rejects max_turns < min_turns")
        return
    raise AssertionError("Expected ValueError for inverted turn range")


def test_repeated_spins_accumulate():
    """Rotation is never reset; every later spin still lands on its selection."""
    import random
    engine, clock = _engine(random.Random(8).random)
    segs = allocate([{"name": n, "weight": w, "color": "#000"}
                     for n, w in (("a", 5), ("b", 1), ("c", 0.25), ("d", 3))])
    previous_target = 0.0
    for _ in range(50):
        engine.start_spin(segs)
        assert engine.state.start_rotation == previous_target
        result = _run_to_end(engine, clock)
        assert result.matches_selection, (result.selected.name, result.segment)
        assert result.drift < WheelConfig.ANGLE_TOLERANCE
        previous_target = engine.target_rotation
    print(f"✅ 50 consecutive spins landed correctly (rotation {engine.current_rotation:.0f}°)")


def test_rotation_monotonic():
    """Sampled every millisecond, rotation never decreases, early stop included."""
    import random
    for stop_at in (None, 1300.0):
        engine, clock = _engine(random.Random(4).random)
        engine.start_spin(_six())
        last = engine.current_rotation
        result = None
        while result is None:
            clock.now += 1
            if stop_at is not None and clock.now == stop_at:
                result = engine.stop_early()
                if result is not None:
                    break
            result = engine.tick()
            assert engine.current_rotation >= last, (clock.now, engine.current_rotation, last)
            last = engine.current_rotation
        assert result.matches_selection
    print("✅ Rotation monotonic over full spin and over early stop")


def test_early_stop_continuity():
    """stop_early keeps rotation continuous and the same outcome."""
    import random
    for p in (0.05, 0.37, 0.8, 0.99):
        engine, clock = _engine(random.Random(17).random)
        selected = engine.start_spin(_six())
        clock.now = p * 5000
        engine.tick()
        before = engine.current_rotation

        assert engine.stop_early() is None
        assert engine.phase is SpinPhase.SETTLING
        assert engine.current_rotation == before
        assert engine.target_rotation == engine.state.target_rotation

        remaining = engine.target_rotation - before
        clock.now += 1
        engine.tick()
        step = engine.current_rotation - before
        assert 0 <= step <= remaining * ease_out_cubic(0.002), (step, remaining)

        clock.now = p * 5000 + 1001
        result = engine.tick()
        assert result is not None, f"stop at p={p} did not settle within the stop duration"
        assert result.segment is selected
        assert result.stopped_early
    print("✅ Early stop continuous at p ∈ {0.05, 0.37, 0.8, 0.99}, outcome unchanged")


def test_early_stop_without_prior_tick():
    """Stopping between frames first advances the curve to now."""
    engine, clock = _engine(ScriptedSource(0.5, 0.5))
    engine.start_spin(_six())
    clock.now = 2500
    engine.stop_early()
    assert abs(engine.current_rotation - engine.target_rotation * 0.875) < 1e-6
    print("✅ stop_early advances rotation to the current time before easing out")


def test_early_stop_after_duration_settles():
    engine, clock = _engine(ScriptedSource(0.3, 0.1))
    engine.start_spin(_six())
    clock.now = 6000
    result = engine.stop_early()
    assert result is not None and result.matches_selection
    assert not result.stopped_early
    assert engine.phase is SpinPhase.SETTLED
    print("✅ stop_early past the spin duration settles immediately")


def test_zero_stop_duration_settles_immediately():
    engine, clock = _engine(ScriptedSource(0.3, 0.1), stop_duration_ms=0)
    engine.start_spin(_six())
    clock.now = 1000
    result = engine.stop_early()
    assert result is not None and result.matches_selection
    assert engine.phase is SpinPhase.SETTLED
    print("✅ stop_animation_time = 0 settles on the stop call")


def test_abort():
    """Abort → IDLE, rotation frozen, no result emitted."""
    engine, clock = _engine(ScriptedSource(0.4, 0.2))
    settled = []
    engine.on_settle(settled.append)
    engine.start_spin(_six())
    clock.now = 1200
    engine.tick()
    frozen = engine.current_rotation

    engine.abort()
    assert engine.phase is SpinPhase.IDLE
    assert engine.current_rotation == frozen
    assert engine.selected_outcome is None
    clock.now = 9000
    assert engine.tick() is None
    assert engine.current_rotation == frozen
    assert settled == []

    # Wheel is usable again from the frozen angle
    selected = engine.start_spin(_six())
    result = _run_to_end(engine, clock)
    assert result.segment is selected
    assert len(settled) == 1
    print(f"✅ Abort froze rotation at {frozen:.2f}°, next spin landed on {selected.name}")


def test_invalid_transitions_keep_phase():
    engine, clock = _engine(ScriptedSource(0.2, 0.5))
    segs = _six()

    # stop_early while idle
    try:
        engine.stop_early()
        raise AssertionError("stop_early while idle should raise")
    except InvalidSpinRequest:
        pass
    assert engine.phase is SpinPhase.IDLE

    # spin with no segments
    try:
        engine.start_spin([])
        raise AssertionError("empty spin should raise")
    except EmptySegmentSet:
        pass
    assert engine.phase is SpinPhase.IDLE

    # second spin while spinning
    engine.start_spin(segs)
    target = engine.target_rotation
    try:
        engine.start_spin(segs)
        raise AssertionError("spin while spinning should raise")
    except InvalidSpinRequest:
        pass
    assert engine.phase is SpinPhase.SPINNING
    assert engine.target_rotation == target

    # stop twice
    clock.now = 1000
    engine.stop_early()
    try:
        engine.stop_early()
        raise AssertionError("stop while settling should raise")
    except InvalidSpinRequest:
        pass
    assert engine.phase is SpinPhase.SETTLING

    # spin while settling
    try:
        engine.start_spin(segs)
        raise AssertionError("spin while settling should raise")
    except InvalidSpinRequest:
        pass
    assert engine.phase is SpinPhase.SETTLING

    _run_to_end(engine, clock)
    try:
        engine.start_spin([])
        raise AssertionError("empty spin should raise")
    except EmptySegmentSet:
        pass
    assert engine.phase is SpinPhase.SETTLED
    print("✅ Invalid transitions raise and leave the phase unchanged")


def test_settle_over_gap_reports_no_outcome():
    """Segments edited mid-spin can leave the pointer in a gap: result, not crash."""
    engine, clock = _engine(ScriptedSource(0.1, 0.0))
    segs = allocate([{"name": "A", "weight": 1, "color": "#000"},
                     {"name": "B", "weight": 1, "color": "#fff"}])
    selected = engine.start_spin(segs)
    assert selected is segs[0]
    segs[0].start_angle = 100.0      # pointer will rest at 90°

    result = _run_to_end(engine, clock)
    assert result.segment is None
    assert not result.resolved
    assert not result.matches_selection
    assert abs(result.pointer_angle - 90.0) < 1e-6
    assert engine.phase is SpinPhase.SETTLED
    print("✅ Pointer over a gap → SpinResult.segment is None, phase SETTLED")


def test_result_emitted_once():
    engine, clock = _engine(ScriptedSource(0.6, 0.3))
    settled = []
    engine.on_settle(settled.append)
    engine.start_spin(_six())
    _run_to_end(engine, clock)
    for _ in range(10):
        clock.now += 100
        assert engine.tick() is None
    assert len(settled) == 1
    assert abs(pointer_angle(engine.current_rotation) - settled[0].selected.midpoint) < 1e-6
    print("✅ SpinResult emitted exactly once")


def test_state_snapshot():
    engine, clock = _engine(ScriptedSource(0.1, 0.0))
    engine.start_spin(_six(), now=100)
    state = engine.state.to_dict()
    assert state["phase"] == "spinning"
    assert state["start_time"] == 100
    assert state["selected_outcome"] == "s0"
    assert state["duration_ms"] == 5000
    print("✅ SpinState snapshot exposes phase, timing and selection")


def test_round_trip_monte_carlo():
    """1000 random wheels, random early stops: landed segment is always the selected one."""
    from tools.wheel_montecarlo import WheelValidator
    result = WheelValidator(seed=2024).validate_round_trip(n_trials=1000)
    assert result.passed, result.to_json()
    assert result.max_drift < WheelConfig.ANGLE_TOLERANCE, result.max_drift
    print(f"✅ Round trip: {result.n_trials} trials, 0 mismatches, "
          f"max drift {result.max_drift:.2e}°")


def test_round_trip_extreme_weights():
    """Very narrow slices next to very wide ones still land exactly."""
    import random
    from tools.wheel_rng import seeded_source
    engine, clock = _engine(seeded_source(5))
    segs = allocate([{"name": "tiny", "weight": 0.001, "color": "#000"},
                     {"name": "huge", "weight": 1000, "color": "#000"},
                     {"name": "tiny2", "weight": 0.001, "color": "#000"}])
    rng = random.Random(6)
    for _ in range(300):
        forced = rng.choice(segs)
        engine.random_source = ScriptedSource(
            sum(s.probability for s in segs[:segs.index(forced)]) / 100 + forced.probability / 200,
            rng.random(),
        )
        selected = engine.start_spin(segs)
        assert selected is forced
        result = _run_to_end(engine, clock, frame_ms=50)
        assert result.segment is forced, (forced.name, result.pointer_angle)
    print("✅ Narrow/wide slices: 300 forced selections all landed")


# ============================================================
# Run all tests
# ============================================================

if __name__ == "__main__":
    import logging
    logging.disable(logging.WARNING)

    tests = [
        test_ease_out_cubic_shape,
        test_first_spin_target,
        test_turn_count_range,
        test_invalid_turn_range,
        test_repeated_spins_accumulate,
        test_rotation_monotonic,
        test_early_stop_continuity,
        test_early_stop_without_prior_tick,
        test_early_stop_after_duration_settles,
        test_zero_stop_duration_settles_immediately,
        test_abort,
        test_invalid_transitions_keep_phase,
        test_settle_over_gap_reports_no_outcome,
        test_result_emitted_once,
        test_state_snapshot,
        test_round_trip_monte_carlo,
        test_round_trip_extreme_weights,
    ]

    print(f"\n{'='*60}")
    print(f"Spin Engine Tests — {len(tests)} tests")
    print(f"{'='*60}\n")

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"❌ {test.__name__}: {e}")
            failed += 1
        print()

    print(f"{'='*60}")
    print(f"Results: {passed} passed, {failed} failed, {passed + failed} total")
    print(f"{'='*60}")

    sys.exit(0 if failed == 0 else 1)
