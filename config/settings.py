"""
FORTUNEWHEEL - Configuration

Environment-backed constants. Values come from the process environment,
with a local .env file loaded first when present.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent.parent
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", "./output"))


# ============================================================
# Wheel Configuration
# ============================================================

class WheelConfig:

    # --- Animation ---
    SPIN_DURATION_MS = float(os.getenv("WHEEL_SPIN_DURATION_MS", "5000"))   # full spin
    STOP_ANIMATION_MS = float(os.getenv("WHEEL_STOP_ANIMATION_MS", "1000"))  # early stop
    MIN_TURNS = int(os.getenv("WHEEL_MIN_TURNS", "5"))
    MAX_TURNS = int(os.getenv("WHEEL_MAX_TURNS", "10"))                      # exclusive

    # --- Geometry ---
    ANGLE_TOLERANCE = 1e-6           # degrees; landing cross-check
    BOUNDARY_TOLERANCE = float(os.getenv("WHEEL_BOUNDARY_TOLERANCE", "5"))  # hit-test, degrees

    # --- Persistence ---
    STORE_PATH = Path(os.getenv("WHEEL_STORE_PATH", str(OUTPUT_DIR / "wheel_state.json")))

    # --- Logging ---
    LOG_LEVEL = os.getenv("WHEEL_LOG_LEVEL", "INFO").upper()

    # --- Defaults shown on first launch ---
    DEFAULT_ITEMS = [
        {"name": "iPhone 15",        "weight": 1, "color": "#FF6B6B"},
        {"name": "AirPods Pro",      "weight": 1, "color": "#4ECDC4"},
        {"name": "Coffee Gift Card", "weight": 1, "color": "#45B7D1"},
        {"name": "10% Coupon",       "weight": 1, "color": "#96CEB4"},
        {"name": "20% Coupon",       "weight": 1, "color": "#FFEAA7"},
        {"name": "No Prize",         "weight": 1, "color": "#DDA0DD"},
    ]

    @classmethod
    def default_items(cls) -> list[dict]:
        """Fresh copies, safe to mutate."""
        return [dict(item) for item in cls.DEFAULT_ITEMS]

    @classmethod
    def summary(cls) -> dict:
        return {
            "spin_duration_ms": cls.SPIN_DURATION_MS,
            "stop_animation_ms": cls.STOP_ANIMATION_MS,
            "turns": [cls.MIN_TURNS, cls.MAX_TURNS],
            "boundary_tolerance": cls.BOUNDARY_TOLERANCE,
            "store_path": str(cls.STORE_PATH),
            "log_level": cls.LOG_LEVEL,
        }
