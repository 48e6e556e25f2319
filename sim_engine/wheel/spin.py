"""
FORTUNEWHEEL — Spin Engine

Frame-driven state machine for one wheel:

    IDLE ──start_spin──▶ SPINNING ──tick (progress=1)──▶ SETTLED
                            │                              │
                        stop_early                     start_spin
                            ▼                              │
                        SETTLING ──tick (progress=1)──▶ SETTLED ◀┘

The outcome is fixed by the selector when the spin starts; the engine then
animates toward a rotation that puts that segment's midpoint under the
12 o'clock pointer, and on settle re-derives the landed segment from the final
rotation as a cross-check. There are no timers: the host calls ``tick(now)``
once per frame with a monotonic timestamp in milliseconds.

Usage:
    engine = SpinEngine(random_source=random.Random(7).random, clock=fake_clock)
    engine.start_spin(segments)
    while (result := engine.tick()) is None:
        ...
    print(result.segment.name)
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from config.settings import WheelConfig
from sim_engine.wheel.errors import EmptySegmentSet, InvalidSpinRequest
from sim_engine.wheel.resolver import normalize_angle, pointer_angle, resolve
from sim_engine.wheel.segments import Segment, FULL_CIRCLE
from sim_engine.wheel.selector import RandomSource, select

logger = logging.getLogger("fortunewheel.engine")

Clock = Callable[[], float]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def ease_out_cubic(progress: float) -> float:
    """Fast start, slow settle. Maps [0, 1] onto [0, 1], non-decreasing."""
    return 1 - (1 - progress) ** 3


def angular_distance(a: float, b: float) -> float:
    """Shortest distance between two angles in degrees."""
    d = abs(normalize_angle(a) - normalize_angle(b))
    return min(d, FULL_CIRCLE - d)


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

class SpinPhase(str, Enum):
    IDLE = "idle"
    SPINNING = "spinning"
    SETTLING = "settling"
    SETTLED = "settled"


@dataclass(frozen=True)
class SpinState:
    """Read-only snapshot of the engine for renderers and APIs."""
    phase: SpinPhase
    current_rotation: float
    target_rotation: float
    start_rotation: float
    start_time: float
    duration: float
    selected_outcome: Optional[Segment]

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "current_rotation": self.current_rotation,
            "target_rotation": self.target_rotation,
            "start_rotation": self.start_rotation,
            "start_time": self.start_time,
            "duration_ms": self.duration,
            "pointer_angle": round(pointer_angle(self.current_rotation), 6),
            "selected_outcome": self.selected_outcome.name if self.selected_outcome else None,
        }


@dataclass
class SpinResult:
    """Emitted exactly once when a spin settles."""
    segment: Optional[Segment]     # None when the pointer sits in a gap
    selected: Segment              # fixed at start_spin
    pointer_angle: float
    rotation: float
    drift: float                   # pointer vs. selected midpoint, degrees
    stopped_early: bool = False

    @property
    def resolved(self) -> bool:
        return self.segment is not None

    @property
    def matches_selection(self) -> bool:
        return self.segment is self.selected

    def to_dict(self) -> dict:
        return {
            "outcome": self.segment.to_dict() if self.segment else None,
            "selected": self.selected.name,
            "pointer_angle": round(self.pointer_angle, 6),
            "rotation": self.rotation,
            "drift": self.drift,
            "stopped_early": self.stopped_early,
            "matches_selection": self.matches_selection,
        }


# ═══════════════════════════════════════════════════════════════
# Engine
# ═══════════════════════════════════════════════════════════════

class SpinEngine:
    """Drives rotation over time for a single wheel. Not thread-safe by itself."""

    def __init__(self,
                 random_source: RandomSource = random.random,
                 clock: Clock = _monotonic_ms,
                 spin_duration_ms: float = None,
                 stop_duration_ms: float = None,
                 min_turns: int = None,
                 max_turns: int = None):
        self.random_source = random_source
        self.clock = clock
        self.spin_duration_ms = float(spin_duration_ms if spin_duration_ms is not None
                                      else WheelConfig.SPIN_DURATION_MS)
        self.stop_duration_ms = float(stop_duration_ms if stop_duration_ms is not None
                                      else WheelConfig.STOP_ANIMATION_MS)
        self.min_turns = int(min_turns if min_turns is not None else WheelConfig.MIN_TURNS)
        self.max_turns = int(max_turns if max_turns is not None else WheelConfig.MAX_TURNS)
        if self.min_turns < 1 or self.max_turns < self.min_turns:
            raise ValueError(f"Invalid turn range [{self.min_turns}, {self.max_turns})")

        self._phase = SpinPhase.IDLE
        self._current = 0.0
        self._target = 0.0
        self._start_rotation = 0.0
        self._start_time = 0.0
        self._duration = self.spin_duration_ms
        self._segments: list[Segment] = []
        self._selected: Optional[Segment] = None
        self._stopped_early = False
        self._listeners: list[Callable[[SpinResult], None]] = []

    # ── Read-only views ───────────────────────────────────────

    @property
    def phase(self) -> SpinPhase:
        return self._phase

    @property
    def current_rotation(self) -> float:
        return self._current

    @property
    def target_rotation(self) -> float:
        return self._target

    @property
    def selected_outcome(self) -> Optional[Segment]:
        return self._selected

    @property
    def is_active(self) -> bool:
        return self._phase in (SpinPhase.SPINNING, SpinPhase.SETTLING)

    @property
    def state(self) -> SpinState:
        return SpinState(
            phase=self._phase,
            current_rotation=self._current,
            target_rotation=self._target,
            start_rotation=self._start_rotation,
            start_time=self._start_time,
            duration=self._duration,
            selected_outcome=self._selected,
        )

    def on_settle(self, callback: Callable[[SpinResult], None]):
        """Register a listener called with each SpinResult."""
        self._listeners.append(callback)

    # ── Transitions ───────────────────────────────────────────

    def start_spin(self, segments: list[Segment], now: float = None) -> Segment:
        """Fix the outcome and begin animating toward it. Returns the selected segment."""
        if self.is_active:
            raise InvalidSpinRequest(f"Cannot start a spin while {self._phase.value}")
        if not segments:
            raise EmptySegmentSet("Cannot spin a wheel with no items")

        selected = select(segments, self.random_source)
        turns = self._draw_turns()
        m = selected.midpoint
        delta = ((FULL_CIRCLE - m) - (self._current % FULL_CIRCLE)) % FULL_CIRCLE
        target = self._current + turns * FULL_CIRCLE + delta

        self._segments = list(segments)
        self._selected = selected
        self._start_rotation = self._current
        self._target = target
        self._start_time = self.clock() if now is None else now
        self._duration = self.spin_duration_ms
        self._stopped_early = False
        self._phase = SpinPhase.SPINNING

        logger.info(f"Spin started: outcome={selected.name!r} turns={turns} "
                    f"rotation {self._start_rotation:.3f} → {target:.3f}")
        return selected

    def tick(self, now: float = None) -> Optional[SpinResult]:
        """Advance the animation to ``now``. Returns the result on the settling frame."""
        if not self.is_active:
            return None
        now = self.clock() if now is None else now
        rotation, progress = self._rotation_at(now)
        self._current = rotation
        logger.debug(f"tick phase={self._phase.value} progress={progress:.4f} rotation={rotation:.4f}")
        if progress >= 1:
            return self._settle()
        return None

    def stop_early(self, now: float = None):
        """Ease over the remaining rotation in the shorter stop duration."""
        if self._phase is not SpinPhase.SPINNING:
            raise InvalidSpinRequest(f"Cannot stop early while {self._phase.value}")
        now = self.clock() if now is None else now
        rotation, progress = self._rotation_at(now)
        self._current = rotation
        if progress >= 1:
            return self._settle()

        self._start_rotation = rotation
        self._start_time = now
        self._duration = self.stop_duration_ms
        self._stopped_early = True
        self._phase = SpinPhase.SETTLING
        logger.info(f"Early stop at rotation {rotation:.3f}, "
                    f"{self._target - rotation:.3f}° left over {self._duration:.0f}ms")
        if self._duration <= 0:
            return self._settle()
        return None

    def abort(self):
        """Stop animating without emitting a result. The wheel freezes where it is."""
        if not self.is_active:
            return
        logger.info(f"Spin aborted at rotation {self._current:.3f}")
        self._phase = SpinPhase.IDLE
        self._target = self._current
        self._start_rotation = self._current
        self._selected = None
        self._segments = []
        self._stopped_early = False

    # ── Internals ─────────────────────────────────────────────

    def _draw_turns(self) -> int:
        span = self.max_turns - self.min_turns
        if span == 0:
            return self.min_turns
        return min(self.min_turns + int(self.random_source() * span), self.max_turns - 1)

    def _rotation_at(self, now: float) -> tuple[float, float]:
        if self._duration <= 0:
            progress = 1.0
        else:
            progress = min(max((now - self._start_time) / self._duration, 0.0), 1.0)
        if progress >= 1:
            return self._target, 1.0
        eased = ease_out_cubic(progress)
        return self._start_rotation + (self._target - self._start_rotation) * eased, progress

    def _settle(self) -> SpinResult:
        self._current = self._target
        self._phase = SpinPhase.SETTLED

        pointer = pointer_angle(self._current)
        landed = resolve(pointer, self._segments)
        result = SpinResult(
            segment=landed,
            selected=self._selected,
            pointer_angle=pointer,
            rotation=self._current,
            drift=angular_distance(pointer, self._selected.midpoint),
            stopped_early=self._stopped_early,
        )

        if landed is None:
            logger.warning(f"Spin settled on uncovered angle {pointer:.6f}°: no outcome")
        elif not result.matches_selection or result.drift > WheelConfig.ANGLE_TOLERANCE:
            logger.error(f"Landing cross-check failed: selected={self._selected.name!r} "
                         f"landed={landed.name!r} drift={result.drift:.3e}°")
        else:
            logger.info(f"Spin settled: {landed.name!r} at pointer {pointer:.3f}°")

        for cb in list(self._listeners):
            cb(result)
        return result
