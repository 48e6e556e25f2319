"""
FORTUNEWHEEL — Segment Allocator

Converts an ordered list of weighted items into angular segments that
partition [0°, 360°), plus the probability (in percent) each one represents.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, asdict

from sim_engine.wheel.errors import InvalidWeight

FULL_CIRCLE = 360.0


@dataclass
class Segment:
    """One slice of the wheel. Angles in degrees, 0° at 12 o'clock, clockwise."""
    name: str
    weight: float
    color: str
    start_angle: float
    end_angle: float
    probability: float  # percent, 0-100

    @property
    def wraps(self) -> bool:
        return self.start_angle > self.end_angle

    @property
    def span(self) -> float:
        if self.wraps:
            return FULL_CIRCLE - self.start_angle + self.end_angle
        return self.end_angle - self.start_angle

    @property
    def midpoint(self) -> float:
        """Angle halfway through the slice, wrap-aware, in [0, 360)."""
        return (self.start_angle + self.span / 2) % FULL_CIRCLE

    def contains(self, angle: float) -> bool:
        """Half-open membership test; `angle` must already be normalized."""
        if self.wraps:
            return angle >= self.start_angle or angle < self.end_angle
        return self.start_angle <= angle < self.end_angle

    def to_dict(self) -> dict:
        d = asdict(self)
        d["span"] = round(self.span, 6)
        return d


def _field(item, key: str, default=None):
    if isinstance(item, dict):
        return item.get(key, default)
    return getattr(item, key, default)


def _check_weight(name: str, weight) -> float:
    try:
        w = float(weight)
    except (TypeError, ValueError):
        raise InvalidWeight(f"Item {name!r}: weight {weight!r} is not a number")
    if not math.isfinite(w) or w <= 0:
        raise InvalidWeight(f"Item {name!r}: weight must be > 0 (got {weight!r})")
    return w


def allocate(items) -> list[Segment]:
    """Build contiguous segments from items in order.

    Items are dicts or objects carrying ``name``, ``weight`` and ``color``.
    Raises InvalidWeight if any weight is not > 0. An empty list yields an
    empty list; callers treat that as "no outcomes".
    """
    items = list(items)
    if not items:
        return []

    weights = [_check_weight(_field(it, "name", "?"), _field(it, "weight")) for it in items]
    total = sum(weights)

    segments = []
    cumulative = 0.0
    for item, weight in zip(items, weights):
        sweep = weight / total * FULL_CIRCLE
        segments.append(Segment(
            name=str(_field(item, "name", "")),
            weight=weight,
            color=_field(item, "color", "#FFFFFF"),
            start_angle=cumulative,
            end_angle=cumulative + sweep,
            probability=weight / total * 100,
        ))
        cumulative += sweep

    # Single normalization point: cancel float drift on the closing edge
    segments[-1].end_angle = FULL_CIRCLE
    return segments


def rebalance_from_geometry(segments: list[Segment]) -> list[Segment]:
    """Make probability and weight follow the visible arcs after manual edits.

    Each segment's probability becomes span/360*100 and its weight becomes its
    span in degrees, so re-allocating from the weights reproduces the edited
    layout whenever it has no gaps. Gap mass belongs to no segment.
    """
    for seg in segments:
        span = seg.span
        seg.probability = span / FULL_CIRCLE * 100
        seg.weight = span
    return segments


def probability_total(segments: list[Segment]) -> float:
    return sum(s.probability for s in segments)


def coverage_gaps(segments: list[Segment]) -> list[tuple[float, float]]:
    """Uncovered [start, end) arcs, in ascending order. Empty for a full partition."""
    if not segments:
        return [(0.0, FULL_CIRCLE)]
    wrapping = [s for s in segments if s.wraps]
    # A wrapping slice covers [start, 360) and [0, end)
    cursor = max((s.end_angle for s in wrapping), default=0.0)
    limit = min((s.start_angle for s in wrapping), default=FULL_CIRCLE)
    gaps = []
    for seg in sorted(segments, key=lambda s: s.start_angle):
        if seg.wraps:
            continue
        if seg.start_angle > cursor:
            gaps.append((cursor, min(seg.start_angle, limit)))
        cursor = max(cursor, seg.end_angle)
    if cursor < limit:
        gaps.append((cursor, limit))
    return gaps
