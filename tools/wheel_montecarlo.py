"""
FORTUNEWHEEL — Monte Carlo Validator

Statistical checks on the wheel core:
  • Selection distribution: observed outcome frequencies vs. configured
    probabilities (Pearson chi-square at α = 0.001)
  • Spin round-trip: the segment fixed at spin start is the one the pointer
    lands on after the animation, and rotation never runs backwards

Uses a seeded PRNG so every run is reproducible.

Usage:
    from tools.wheel_montecarlo import WheelValidator
    mc = WheelValidator(seed=42)
    print(mc.validate_selection(segments, n_draws=100_000).summary())
    print(mc.validate_round_trip(n_trials=1_000).summary())
"""

from __future__ import annotations

import json
import math
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from statistics import NormalDist

from sim_engine.wheel import SpinEngine, SpinPhase, allocate, select

SIGNIFICANCE = 0.001


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

@dataclass
class DistributionResult:
    """Observed vs. expected outcome counts for one segment layout."""
    n_draws: int
    names: list[str]
    observed: list[int]
    expected: list[float]
    chi_squared: float
    degrees_of_freedom: int
    critical_value: float
    passed: bool
    duration_seconds: float = 0.0
    seed: int = 0

    def summary(self) -> str:
        status = "✅ PASS" if self.passed else "❌ FAIL"
        lines = [
            "═══ Monte Carlo: SELECTION ═══",
            f"  Draws:       {self.n_draws:,}",
            f"  Chi-square:  {self.chi_squared:.3f}  (df={self.degrees_of_freedom}, "
            f"critical={self.critical_value:.3f} @ α={SIGNIFICANCE})",
            f"  Check:       {status}",
        ]
        for name, obs, exp in zip(self.names, self.observed, self.expected):
            lines.append(f"    {name:20s} observed={obs / self.n_draws * 100:7.3f}%  "
                         f"expected={exp / self.n_draws * 100:7.3f}%")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "n_draws": self.n_draws,
            "segments": [
                {"name": n, "observed": o, "expected": round(e, 3)}
                for n, o, e in zip(self.names, self.observed, self.expected)
            ],
            "chi_squared": round(self.chi_squared, 4),
            "degrees_of_freedom": self.degrees_of_freedom,
            "critical_value": round(self.critical_value, 4),
            "pass": self.passed,
            "duration_s": round(self.duration_seconds, 3),
            "seed": self.seed,
        }


@dataclass
class RoundTripResult:
    """Outcome of many full spins driven with a synthetic clock."""
    n_trials: int
    mismatches: int = 0
    unresolved: int = 0
    non_monotonic: int = 0
    max_drift: float = 0.0
    failures: list = field(default_factory=list)
    duration_seconds: float = 0.0
    seed: int = 0

    @property
    def passed(self) -> bool:
        return self.mismatches == 0 and self.unresolved == 0 and self.non_monotonic == 0

    def summary(self) -> str:
        status = "✅ PASS" if self.passed else "❌ FAIL"
        return "\n".join([
            "═══ Monte Carlo: SPIN ROUND-TRIP ═══",
            f"  Trials:        {self.n_trials:,}",
            f"  Mismatches:    {self.mismatches}",
            f"  Unresolved:    {self.unresolved}",
            f"  Non-monotonic: {self.non_monotonic}",
            f"  Max drift:     {self.max_drift:.3e}°",
            f"  Check:         {status}",
        ])

    def to_dict(self) -> dict:
        return {
            "n_trials": self.n_trials,
            "mismatches": self.mismatches,
            "unresolved": self.unresolved,
            "non_monotonic": self.non_monotonic,
            "max_drift": self.max_drift,
            "pass": self.passed,
            "failures": self.failures[:20],
            "duration_s": round(self.duration_seconds, 3),
            "seed": self.seed,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


# ═══════════════════════════════════════════════════════════════
# Statistics
# ═══════════════════════════════════════════════════════════════

def chi_squared_critical(dof: int, alpha: float = SIGNIFICANCE) -> float:
    """Upper critical value of χ²(dof), Wilson–Hilferty approximation."""
    if dof <= 0:
        return 0.0
    z = NormalDist().inv_cdf(1 - alpha)
    k = float(dof)
    return k * (1 - 2 / (9 * k) + z * math.sqrt(2 / (9 * k))) ** 3


def chi_squared(observed: list[int], expected: list[float]) -> float:
    return sum((o - e) ** 2 / e for o, e in zip(observed, expected) if e > 0)


class _FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


# ═══════════════════════════════════════════════════════════════
# Validator
# ═══════════════════════════════════════════════════════════════

class WheelValidator:
    """Reproducible statistical validation of the wheel core."""

    def __init__(self, seed: int = 42):
        self.seed = seed

    def validate_selection(self, segments, n_draws: int = 100_000) -> DistributionResult:
        rng = random.Random(self.seed)
        index = {id(s): i for i, s in enumerate(segments)}
        counts = [0] * len(segments)

        t0 = time.time()
        for _ in range(n_draws):
            counts[index[id(select(segments, rng.random))]] += 1
        duration = time.time() - t0

        total_p = sum(s.probability for s in segments)
        expected = [n_draws * s.probability / total_p for s in segments]
        chi2 = chi_squared(counts, expected)
        dof = len(segments) - 1
        critical = chi_squared_critical(dof)
        return DistributionResult(
            n_draws=n_draws,
            names=[s.name for s in segments],
            observed=counts,
            expected=expected,
            chi_squared=chi2,
            degrees_of_freedom=dof,
            critical_value=critical,
            passed=chi2 <= critical,
            duration_seconds=duration,
            seed=self.seed,
        )

    def validate_round_trip(self, n_trials: int = 1_000, max_items: int = 12,
                            frame_ms: float = 16.0, stop_probability: float = 0.25) -> RoundTripResult:
        """Random weights, random turn counts, some early stops; every landing must match."""
        rng = random.Random(self.seed)
        clock = _FakeClock()
        engine = SpinEngine(random_source=rng.random, clock=clock)
        result = RoundTripResult(n_trials=n_trials, seed=self.seed)

        t0 = time.time()
        for trial in range(n_trials):
            n = rng.randint(1, max_items)
            items = [{"name": f"item{i}", "weight": rng.uniform(0.01, 100.0), "color": "#000"}
                     for i in range(n)]
            segments = allocate(items)
            selected = engine.start_spin(segments)
            stop_at = (rng.uniform(0, engine.spin_duration_ms)
                       if rng.random() < stop_probability else None)

            previous = engine.current_rotation
            monotonic = True
            outcome = None
            while outcome is None:
                clock.now += frame_ms
                if stop_at is not None and engine.phase is SpinPhase.SPINNING \
                        and clock.now - engine.state.start_time >= stop_at:
                    outcome = engine.stop_early()
                    if outcome is not None:
                        break
                outcome = engine.tick()
                if engine.current_rotation < previous:
                    monotonic = False
                previous = engine.current_rotation

            result.max_drift = max(result.max_drift, outcome.drift)
            if not monotonic:
                result.non_monotonic += 1
            if outcome.segment is None:
                result.unresolved += 1
            elif not outcome.matches_selection:
                result.mismatches += 1
                result.failures.append({
                    "trial": trial,
                    "selected": selected.name,
                    "landed": outcome.segment.name,
                    "pointer_angle": outcome.pointer_angle,
                })

        result.duration_seconds = time.time() - t0
        return result


# ═══════════════════════════════════════════════════════════════
# CLI
# ═══════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import sys
    from config.settings import WheelConfig

    n = int(sys.argv[1]) if len(sys.argv) > 1 else 100_000
    mc = WheelValidator()
    print(mc.validate_selection(allocate(WheelConfig.default_items()), n_draws=n).summary())
    print(mc.validate_round_trip(n_trials=max(n // 100, 100)).summary())
    print(f"\nGenerated {datetime.now(timezone.utc).isoformat()}")
