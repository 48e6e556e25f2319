"""
FORTUNEWHEEL — Persisted Wheel Schema

The blob the store writes to disk: the ordered item list plus wheel settings.
Angles are never stored; they are re-derived from weights on load.

Usage:
    from config.wheel_schema import WheelDocument, WheelItem
    doc = WheelDocument(items=[WheelItem(name="A", weight=2, color="#f00")])
    json_str = doc.model_dump_json(indent=2)
"""

from __future__ import annotations

import math

from pydantic import BaseModel, Field, field_validator

from config.settings import WheelConfig


class WheelItem(BaseModel):
    """One prize on the wheel."""
    name: str = Field(min_length=1, max_length=80)
    weight: float = 1.0
    color: str = "#FFFFFF"         # opaque to the core; renderer decides

    @field_validator("weight")
    @classmethod
    def _weight_positive(cls, v: float) -> float:
        if not math.isfinite(v) or v <= 0:
            raise ValueError("weight must be > 0")
        return v

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class WheelSettings(BaseModel):
    """User-tunable wheel behaviour."""
    stop_animation_time: float = Field(default=WheelConfig.STOP_ANIMATION_MS, ge=0, le=60_000)


class WheelDocument(BaseModel):
    """Everything persisted for one wheel."""
    version: int = 1
    items: list[WheelItem] = Field(default_factory=list)
    settings: WheelSettings = Field(default_factory=WheelSettings)

    @classmethod
    def default(cls) -> "WheelDocument":
        return cls(items=[WheelItem(**it) for it in WheelConfig.default_items()])
