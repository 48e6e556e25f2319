"""
FORTUNEWHEEL — Wheel Controller

Single owner of a wheel's state: the item list, the derived segments, the spin
engine, the boundary editor and persistence. Hosts (CLI, HTTP API, a UI loop)
talk to this object only; nothing reads wheel state from ambient scope.

Manual boundary drags make the edited geometry authoritative: when a drag
ends, every segment's probability and weight are re-derived from its arc, so
the selector follows what the user sees. Any later item edit re-allocates
from weights and discards the manual layout.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from pydantic import ValidationError

from config.settings import WheelConfig
from config.wheel_schema import WheelDocument, WheelItem, WheelSettings
from sim_engine.wheel import (
    BoundaryEditor, BoundaryKind, InvalidItemIndex, InvalidSpinRequest, InvalidWeight,
    Segment, SpinEngine, SpinResult, SpinState,
    allocate, coverage_gaps, pointer_angle, rebalance_from_geometry, resolve,
)
from tools.wheel_store import CorruptStore, WheelStore

logger = logging.getLogger("fortunewheel.controller")


def _item_from(**fields) -> WheelItem:
    """Build a WheelItem, reporting weight problems as InvalidWeight."""
    try:
        return WheelItem(**fields)
    except ValidationError as e:
        if any(err["loc"] and err["loc"][-1] == "weight" for err in e.errors()):
            raise InvalidWeight(f"weight must be > 0 (got {fields.get('weight')!r})") from e
        raise ValueError(e.errors()[0]["msg"]) from e


class WheelController:
    """Explicit state object for one wheel."""

    def __init__(self, store: Optional[WheelStore] = None,
                 engine: Optional[SpinEngine] = None,
                 autoload: bool = True):
        self.store = store
        self.engine = engine or SpinEngine()
        self.settings = WheelSettings()
        self.last_result: Optional[SpinResult] = None
        self.geometry_edited = False
        self._items: list[WheelItem] = []
        self._segments: list[Segment] = []
        self.editor = BoundaryEditor(self._segments)
        self.engine.on_settle(self._record_result)

        if autoload and store is not None:
            self.load()
        else:
            self._apply(WheelDocument.default())

    # ── Views ─────────────────────────────────────────────────

    @property
    def items(self) -> list[dict]:
        return [it.model_dump() for it in self._items]

    @property
    def segments(self) -> list[Segment]:
        """Copies; mutating them does not touch the wheel."""
        return [replace(s) for s in self._segments]

    @property
    def spin_state(self) -> SpinState:
        return self.engine.state

    def document(self) -> WheelDocument:
        return WheelDocument(items=list(self._items), settings=self.settings)

    def current_outcome(self) -> Optional[Segment]:
        """Segment under the pointer right now; None if the pointer is over a gap."""
        seg = resolve(pointer_angle(self.engine.current_rotation), self._segments)
        return replace(seg) if seg else None

    def snapshot(self) -> dict:
        current = self.current_outcome()
        return {
            "items": self.items,
            "segments": [s.to_dict() for s in self._segments],
            "gaps": [list(g) for g in coverage_gaps(self._segments)] if self._segments else [],
            "geometry_edited": self.geometry_edited,
            "spin": self.engine.state.to_dict(),
            "current_outcome": current.name if current else None,
            "last_result": self.last_result.to_dict() if self.last_result else None,
            "settings": self.settings.model_dump(),
        }

    # ── Persistence ───────────────────────────────────────────

    def load(self):
        """Load from the store. Absent or unreadable data falls back to defaults.

        Invalid weights are not silently repaired: InvalidWeight propagates.
        """
        try:
            doc = self.store.load() if self.store else None
        except CorruptStore as e:
            logger.error(f"Stored wheel unreadable, using defaults: {e}")
            doc = None
        if doc is None:
            logger.info("No stored wheel, initialising default items")
            doc = WheelDocument.default()
        self._apply(doc)

    def save(self):
        if self.store is not None:
            self.store.save(self.document())

    def _apply(self, doc: WheelDocument):
        self._items = list(doc.items)
        self.settings = doc.settings
        self.engine.stop_duration_ms = float(self.settings.stop_animation_time)
        self._reallocate()

    def _reallocate(self):
        if self.editor.drag.active:
            logger.info("Item list changed mid-drag, drag cancelled")
            self.editor.cancel_drag()
        # Slice-assign so the editor keeps pointing at the live list
        self._segments[:] = allocate(self._items)
        self.geometry_edited = False

    # ── Item edits ────────────────────────────────────────────

    def _ensure_idle(self, action: str):
        if self.engine.is_active:
            raise InvalidSpinRequest(f"Cannot {action} while the wheel is spinning")

    def _check_index(self, index: int):
        if (isinstance(index, bool) or not isinstance(index, int)
                or not 0 <= index < len(self._items)):
            raise InvalidItemIndex(f"No item at index {index!r} ({len(self._items)} items)")

    def _commit(self, message: str):
        self._reallocate()
        self.save()
        logger.info(message)

    def add_item(self, name: str, weight: float = 1.0, color: str = None) -> dict:
        self._ensure_idle("add an item")
        if color is None:
            palette = WheelConfig.DEFAULT_ITEMS
            color = palette[len(self._items) % len(palette)]["color"]
        item = _item_from(name=name, weight=weight, color=color)
        self._items.append(item)
        self._commit(f"Added item {item.name!r} (weight={item.weight:g})")
        return item.model_dump()

    def update_item(self, index: int, name: str = None,
                    weight: float = None, color: str = None) -> dict:
        self._ensure_idle("edit an item")
        self._check_index(index)
        current = self._items[index].model_dump()
        changes = {k: v for k, v in (("name", name), ("weight", weight), ("color", color))
                   if v is not None}
        item = _item_from(**{**current, **changes})
        self._items[index] = item
        self._commit(f"Updated item {index}: {item.name!r}")
        return item.model_dump()

    def remove_item(self, index: int) -> dict:
        self._ensure_idle("remove an item")
        self._check_index(index)
        removed = self._items.pop(index)
        self._commit(f"Removed item {removed.name!r}")
        return removed.model_dump()

    def reset_to_default(self):
        self._ensure_idle("reset the wheel")
        if self.store is not None:
            self.store.clear()
        self._apply(WheelDocument.default())
        self.save()
        logger.info("Wheel reset to default items")

    def set_stop_animation_time(self, ms: float):
        try:
            settings = WheelSettings(stop_animation_time=ms)
        except ValidationError as e:
            raise ValueError(e.errors()[0]["msg"]) from e
        self.settings = settings
        self.engine.stop_duration_ms = float(ms)
        self.save()

    # ── Spinning ──────────────────────────────────────────────

    def spin(self, now: float = None) -> Segment:
        """Start a spin; returns the (already decided) outcome."""
        if self.editor.drag.active:
            self.end_drag()
        self.last_result = None
        return self.engine.start_spin(self._segments, now=now)

    def tick(self, now: float = None) -> Optional[SpinResult]:
        return self.engine.tick(now)

    def stop(self, now: float = None) -> Optional[SpinResult]:
        return self.engine.stop_early(now)

    def abort(self):
        self.engine.abort()

    def _record_result(self, result: SpinResult):
        self.last_result = result

    # ── Boundary drags (ignored while spinning) ───────────────

    def hit_test(self, angle: float) -> Optional[tuple[int, BoundaryKind]]:
        if self.engine.is_active:
            return None
        return self.editor.boundary_at(angle)

    def begin_drag(self, index: int, kind) -> bool:
        if self.engine.is_active:
            return False
        self.editor.begin_drag(index, kind)
        return True

    def drag_to(self, angle: float) -> bool:
        if self.engine.is_active:
            return False
        return self.editor.update_drag(angle)

    def end_drag(self) -> bool:
        moved = self.editor.end_drag()
        if moved:
            rebalance_from_geometry(self._segments)
            self._items = [WheelItem(name=s.name, weight=s.weight, color=s.color)
                           for s in self._segments]
            self.geometry_edited = True
            self.save()
        return moved
