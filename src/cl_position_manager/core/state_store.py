"""
Durable manager state.

Only the active position identifier and the range policy survive a
restart; everything else is re-read from the venue and oracle.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class PersistedState:
    """Snapshot of the manager's durable fields."""

    position_id: Optional[int]
    range_percent: Decimal
    tick_spacing: int

    def to_dict(self) -> dict:
        return {
            "position_id": self.position_id,
            "range_percent": str(self.range_percent),
            "tick_spacing": self.tick_spacing
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PersistedState":
        return cls(
            position_id=data.get("position_id"),
            range_percent=Decimal(data["range_percent"]),
            tick_spacing=int(data["tick_spacing"])
        )


class JsonStateStore:
    """Keeps ``PersistedState`` in a JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[PersistedState]:
        """
        Read the saved state.

        Returns:
            The saved state, or None if nothing was saved yet
        """
        if not self.path.exists():
            return None

        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)

        state = PersistedState.from_dict(data)
        logger.info(f"Loaded manager state from {self.path}: position={state.position_id}")
        return state

    def save(self, state: PersistedState) -> None:
        """Write the state atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")

        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)

        tmp_path.replace(self.path)
        logger.debug(f"Saved manager state to {self.path}")
