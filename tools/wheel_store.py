"""
FORTUNEWHEEL — Wheel Store

Local JSON persistence for the item list and wheel settings.
A missing file is not an error: the caller falls back to default items.

Usage:
    from tools.wheel_store import WheelStore
    store = WheelStore("./output/wheel_state.json")
    doc = store.load() or WheelDocument.default()
    store.save(doc)
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from config.settings import WheelConfig
from config.wheel_schema import WheelDocument
from sim_engine.wheel.errors import InvalidWeight, WheelError

logger = logging.getLogger("fortunewheel.store")


class CorruptStore(WheelError):
    """The stored blob is not valid JSON or does not match the schema."""


class WheelStore:
    """Reads and writes a single WheelDocument as JSON."""

    def __init__(self, path=None):
        self.path = Path(path) if path else WheelConfig.STORE_PATH

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[WheelDocument]:
        """Return the stored document, or None if nothing has been saved yet.

        Raises InvalidWeight if any stored weight is not > 0, and
        CorruptStore for any other malformed content.
        """
        if not self.path.exists():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptStore(f"{self.path}: not valid JSON ({e})") from e

        # Older blobs were a bare item list
        if isinstance(raw, list):
            raw = {"items": raw}
        try:
            return WheelDocument.model_validate(raw)
        except ValidationError as e:
            weight_errors = [err for err in e.errors() if err["loc"] and err["loc"][-1] == "weight"]
            if weight_errors:
                locs = ", ".join(".".join(str(p) for p in err["loc"]) for err in weight_errors)
                raise InvalidWeight(f"{self.path}: invalid weight at {locs}") from e
            raise CorruptStore(f"{self.path}: {e.error_count()} schema error(s)") from e

    def save(self, doc: WheelDocument) -> Path:
        """Write atomically: temp file in the same directory, then replace."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".wheel_", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(doc.model_dump_json(indent=2))
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        logger.debug(f"Saved {len(doc.items)} items to {self.path}")
        return self.path

    def clear(self):
        if self.path.exists():
            self.path.unlink()
            logger.info(f"Cleared wheel store {self.path}")
