"""
FORTUNEWHEEL — Wheel API Logic

Backend functions for the wheel JSON API.
Called by web_app.py route handlers; each takes the controller and the parsed
request body and returns a JSON-ready dict.
"""

import logging
import math
from typing import Optional

from flows.wheel_controller import WheelController
from sim_engine.wheel import (
    EmptySegmentSet, InvalidDragTarget, InvalidItemIndex, InvalidSpinRequest,
    InvalidWeight, UnresolvedAngle, WheelError, pointer_angle, resolve_or_raise,
)

logger = logging.getLogger("fortunewheel.api")


# ═══════════════════════════════════════════════
# Request helpers
# ═══════════════════════════════════════════════

def _number(data: dict, key: str, default=None, required: bool = False,
            finite: bool = True) -> Optional[float]:
    val = data.get(key, default)
    if val is None:
        if required:
            raise ValueError(f"'{key}' is required")
        return None
    if isinstance(val, bool):
        raise ValueError(f"'{key}' must be a number")
    try:
        num = float(val)
    except (TypeError, ValueError):
        raise ValueError(f"'{key}' must be a number")
    if finite and not math.isfinite(num):
        raise ValueError(f"'{key}' must be finite")
    return num


def _index(data: dict, key: str = "index") -> int:
    val = data.get(key)
    if isinstance(val, bool) or not isinstance(val, int):
        raise InvalidItemIndex(f"'{key}' must be an integer")
    return val


def error_status(exc: Exception) -> int:
    """HTTP status for an error raised by the wheel."""
    if isinstance(exc, (InvalidSpinRequest, EmptySegmentSet, UnresolvedAngle)):
        return 409
    if isinstance(exc, (InvalidWeight, InvalidItemIndex, InvalidDragTarget, ValueError)):
        return 400
    if isinstance(exc, WheelError):
        return 400
    return 500


# ═══════════════════════════════════════════════
# Items
# ═══════════════════════════════════════════════

def wheel_state(controller: WheelController) -> dict:
    return controller.snapshot()


def add_item(controller: WheelController, data: dict) -> dict:
    # Non-finite weights are left to the schema so they surface as InvalidWeight
    item = controller.add_item(
        name=str(data.get("name", "")),
        weight=_number(data, "weight", default=1.0, finite=False),
        color=data.get("color"),
    )
    return {"item": item, "wheel": controller.snapshot()}


def update_item(controller: WheelController, index: int, data: dict) -> dict:
    item = controller.update_item(
        index,
        name=data.get("name"),
        weight=_number(data, "weight", finite=False),
        color=data.get("color"),
    )
    return {"item": item, "wheel": controller.snapshot()}


def delete_item(controller: WheelController, index: int) -> dict:
    item = controller.remove_item(index)
    return {"removed": item, "wheel": controller.snapshot()}


def reset_items(controller: WheelController) -> dict:
    controller.reset_to_default()
    return controller.snapshot()


def update_settings(controller: WheelController, data: dict) -> dict:
    ms = _number(data, "stop_animation_time", required=True)
    controller.set_stop_animation_time(ms)
    return {"settings": controller.settings.model_dump()}


# ═══════════════════════════════════════════════
# Spin
# ═══════════════════════════════════════════════

def start_spin(controller: WheelController, data: dict) -> dict:
    """Decide the outcome and hand back everything a client needs to animate it."""
    selected = controller.spin(now=_number(data, "now"))
    state = controller.spin_state
    logger.info(f"API spin → {selected.name!r}")
    return {
        "selected": selected.to_dict(),
        "start_rotation": state.start_rotation,
        "target_rotation": state.target_rotation,
        "start_time": state.start_time,
        "duration_ms": state.duration,
        "easing": "ease-out-cubic",
    }


def tick(controller: WheelController, data: dict) -> dict:
    result = controller.tick(now=_number(data, "now"))
    return {
        "spin": controller.spin_state.to_dict(),
        "result": result.to_dict() if result else None,
    }


def stop_spin(controller: WheelController, data: dict) -> dict:
    result = controller.stop(now=_number(data, "now"))
    return {
        "spin": controller.spin_state.to_dict(),
        "result": result.to_dict() if result else None,
    }


def abort_spin(controller: WheelController) -> dict:
    controller.abort()
    return {"spin": controller.spin_state.to_dict()}


def pointer(controller: WheelController) -> dict:
    """Segment under the pointer; UnresolvedAngle if the pointer is over a gap."""
    angle = pointer_angle(controller.engine.current_rotation)
    seg = resolve_or_raise(angle, controller.segments)
    return {"pointer_angle": angle, "segment": seg.to_dict()}


# ═══════════════════════════════════════════════
# Boundary drag (one request = one complete gesture)
# ═══════════════════════════════════════════════

def drag_boundary(controller: WheelController, data: dict) -> dict:
    index = _index(data)
    kind = data.get("kind")
    angle = _number(data, "angle", required=True)

    if not controller.begin_drag(index, kind):
        raise InvalidSpinRequest("Boundaries cannot be dragged while the wheel is spinning")
    try:
        accepted = controller.drag_to(angle)
    finally:
        moved = controller.end_drag()
    return {"accepted": accepted, "moved": moved, "wheel": controller.snapshot()}
