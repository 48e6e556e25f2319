"""
FORTUNEWHEEL — Angle Resolver

Maps an angle (or a wheel rotation) to the segment under it.
The pointer is fixed at 12 o'clock (0°); the wheel turns clockwise.
"""

from __future__ import annotations

import math
from typing import Optional

from sim_engine.wheel.errors import UnresolvedAngle
from sim_engine.wheel.segments import Segment, FULL_CIRCLE


def normalize_angle(angle: float) -> float:
    """Fold any angle, negative included, into [0, 360)."""
    a = ((angle % FULL_CIRCLE) + FULL_CIRCLE) % FULL_CIRCLE
    # -1e-18 % 360 rounds up to exactly 360.0
    return 0.0 if a >= FULL_CIRCLE else a


def resolve(angle: float, segments: list[Segment]) -> Optional[Segment]:
    """Return the segment containing ``angle``, or None if it falls in a gap."""
    a = normalize_angle(angle)
    for seg in segments:
        if seg.contains(a):
            return seg
    return None


def resolve_or_raise(angle: float, segments: list[Segment]) -> Segment:
    seg = resolve(angle, segments)
    if seg is None:
        raise UnresolvedAngle(normalize_angle(angle))
    return seg


def pointer_angle(rotation: float) -> float:
    """Wheel angle sitting under the 12 o'clock pointer after ``rotation`` degrees."""
    return normalize_angle(FULL_CIRCLE - normalize_angle(rotation))


def angle_from_point(x: float, y: float, cx: float, cy: float) -> float:
    """Screen point → wheel angle (0° at 12 o'clock, clockwise, y grows downward)."""
    deg = math.degrees(math.atan2(y - cy, x - cx))
    return normalize_angle(deg + 90)
