"""
FORTUNEWHEEL — Wheel Errors

Every failure the wheel core reports synchronously to its caller.
"""


class WheelError(Exception):
    """Base for all wheel errors."""


class InvalidWeight(WheelError, ValueError):
    """An item was supplied with weight <= 0 (or a non-numeric weight)."""


class EmptySegmentSet(WheelError):
    """A spin or selection was requested with zero segments."""


class UnresolvedAngle(WheelError):
    """No segment covers the angle (only reachable after manual boundary edits)."""

    def __init__(self, angle: float):
        self.angle = angle
        super().__init__(f"No segment covers {angle:.6f}°")


class InvalidSpinRequest(WheelError):
    """Spin/stop requested in a phase that does not allow it."""


class InvalidDragTarget(WheelError, IndexError):
    """Drag referenced an item index or boundary kind that does not exist."""


class InvalidItemIndex(WheelError, IndexError):
    """Item edit referenced an index outside the item list."""
