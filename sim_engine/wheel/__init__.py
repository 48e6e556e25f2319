"""
FORTUNEWHEEL — Wheel Core

Segment model and spin resolution for a weighted prize wheel.
Angles are degrees, 0° at 12 o'clock, increasing clockwise; the pointer is
fixed at 0° and the wheel rotates underneath it.

Usage:
    from sim_engine.wheel import allocate, SpinEngine
    segments = allocate([{"name": "A", "weight": 5, "color": "#f00"},
                         {"name": "B", "weight": 1, "color": "#0f0"}])
    engine = SpinEngine()
    engine.start_spin(segments)
    result = engine.tick(now)   # call once per frame until it returns a result
"""

from sim_engine.wheel.errors import (
    WheelError, InvalidWeight, EmptySegmentSet, UnresolvedAngle,
    InvalidSpinRequest, InvalidDragTarget, InvalidItemIndex,
)
from sim_engine.wheel.segments import (
    FULL_CIRCLE, Segment, allocate, rebalance_from_geometry, coverage_gaps, probability_total,
)
from sim_engine.wheel.resolver import (
    normalize_angle, resolve, resolve_or_raise, pointer_angle, angle_from_point,
)
from sim_engine.wheel.selector import select
from sim_engine.wheel.spin import (
    SpinEngine, SpinPhase, SpinState, SpinResult, ease_out_cubic, angular_distance,
)
from sim_engine.wheel.boundary import BoundaryEditor, BoundaryKind, DragState

__all__ = [
    "WheelError", "InvalidWeight", "EmptySegmentSet", "UnresolvedAngle",
    "InvalidSpinRequest", "InvalidDragTarget", "InvalidItemIndex",
    "FULL_CIRCLE", "Segment", "allocate", "rebalance_from_geometry",
    "coverage_gaps", "probability_total",
    "normalize_angle", "resolve", "resolve_or_raise", "pointer_angle", "angle_from_point",
    "select",
    "SpinEngine", "SpinPhase", "SpinState", "SpinResult", "ease_out_cubic", "angular_distance",
    "BoundaryEditor", "BoundaryKind", "DragState",
]
