"""
FORTUNEWHEEL — Boundary Editor

Interactive drag of a segment's start or end boundary. Edits that would
overlap a neighbour are silently dropped: a drag is a continuous gesture,
not a form submission, so it never raises mid-gesture.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config.settings import WheelConfig
from sim_engine.wheel.errors import InvalidDragTarget
from sim_engine.wheel.resolver import normalize_angle
from sim_engine.wheel.segments import Segment, FULL_CIRCLE

logger = logging.getLogger("fortunewheel.boundary")


class BoundaryKind(str, Enum):
    START = "start"
    END = "end"


@dataclass
class DragState:
    active: bool = False
    item_index: int = -1
    boundary_kind: Optional[BoundaryKind] = None


def _round_half_up(angle: float) -> int:
    return int(math.floor(angle + 0.5))


class BoundaryEditor:
    """Edits the angles of ``segments`` in place."""

    def __init__(self, segments: list[Segment]):
        self.segments = segments
        self.drag = DragState()
        self._moved = False
        self._dragged: Optional[Segment] = None

    def begin_drag(self, item_index: int, boundary_kind) -> DragState:
        if (isinstance(item_index, bool) or not isinstance(item_index, int)
                or not 0 <= item_index < len(self.segments)):
            raise InvalidDragTarget(
                f"Item index {item_index!r} out of range (0..{len(self.segments) - 1})")
        try:
            kind = BoundaryKind(boundary_kind)
        except ValueError:
            raise InvalidDragTarget(f"Unknown boundary kind {boundary_kind!r}")

        self.drag = DragState(active=True, item_index=item_index, boundary_kind=kind)
        self._dragged = self.segments[item_index]
        self._moved = False
        return self.drag

    def update_drag(self, proposed_angle: float) -> bool:
        """Move the dragged boundary to the nearest whole degree if it stays legal."""
        if not self.drag.active:
            return False
        if not isinstance(proposed_angle, (int, float)) or not math.isfinite(proposed_angle):
            return False

        idx = self._locate_dragged()
        if idx is None:
            # The segment list was rebuilt under the gesture
            logger.warning("Dragged segment no longer on the wheel, drag cancelled")
            self.cancel_drag()
            return False
        item = self.segments[idx]
        new_angle = _round_half_up(proposed_angle)

        if self.drag.boundary_kind is BoundaryKind.START:
            prev_item = self.segments[idx - 1] if idx > 0 else None
            lower = prev_item.end_angle if prev_item else 0
            if not (new_angle < item.end_angle and new_angle >= lower):
                return False
            if item.start_angle == new_angle:
                return True
            item.start_angle = float(new_angle)
        else:
            next_item = self.segments[idx + 1] if idx + 1 < len(self.segments) else None
            upper = next_item.start_angle if next_item else FULL_CIRCLE
            if not (new_angle > item.start_angle and new_angle <= upper):
                return False
            if item.end_angle == new_angle:
                return True
            item.end_angle = float(new_angle)

        self._moved = True
        self.segments.sort(key=lambda s: s.start_angle)
        self.drag.item_index = self._locate_dragged()
        return True

    def end_drag(self) -> bool:
        """Finish the gesture. Returns True if any boundary actually moved."""
        moved = self._moved
        if self.drag.active and moved:
            seg = self._dragged
            logger.info(f"Boundary drag on {seg.name!r} → [{seg.start_angle:g}, {seg.end_angle:g})")
        self.cancel_drag()
        return moved

    def cancel_drag(self):
        """Drop the gesture without reporting a move."""
        self.drag = DragState()
        self._dragged = None
        self._moved = False

    def _locate_dragged(self) -> Optional[int]:
        return next((i for i, s in enumerate(self.segments) if s is self._dragged), None)

    def boundary_at(self, angle: float,
                    tolerance: float = None) -> Optional[tuple[int, BoundaryKind]]:
        """First boundary within ``tolerance`` degrees of ``angle`` (wrap-aware)."""
        tol = WheelConfig.BOUNDARY_TOLERANCE if tolerance is None else tolerance
        a = normalize_angle(angle)
        for i, seg in enumerate(self.segments):
            if _circular_gap(a, seg.start_angle) <= tol:
                return i, BoundaryKind.START
            if _circular_gap(a, seg.end_angle) <= tol:
                return i, BoundaryKind.END
        return None


def _circular_gap(a: float, boundary: float) -> float:
    d = abs(a - normalize_angle(boundary))
    return min(d, FULL_CIRCLE - d)
