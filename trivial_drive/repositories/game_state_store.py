"""Game state store - the persisted gas tank level.

Holds a single counter clamped to [gas_tank_min, gas_tank_max] and publishes
it as an observable. Optionally persists the level to a small JSON file.
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

from trivial_drive.logging_config import get_logger
from trivial_drive.models import GameConfig
from trivial_drive.state_logger import log_gas_level_change
from trivial_drive.utils.observable import Observable, ObservableValue

logger = get_logger(__name__)

_STATE_KEY = "gas_tank_level"


class GameStateStore:
    """Persisted gas tank level.

    Writes are serialized by an asyncio lock; every change is published to
    the ``gas_tank_level()`` observable and, if a state path is configured,
    written to disk.
    """

    def __init__(self, settings: Optional[GameConfig] = None, state_path: Optional[str] = None):
        """Initialize game state store.

        Args:
            settings: Gas tank bounds and initial level (defaults if not provided)
            state_path: JSON file to persist to (overrides settings.state_path)
        """
        self._settings = settings or GameConfig()
        path = state_path or self._settings.state_path
        self._state_path: Optional[Path] = Path(path) if path else None
        self._lock = asyncio.Lock()
        self._gas_tank_level = ObservableValue(self._load_level())

    @property
    def min_level(self) -> int:
        return self._settings.gas_tank_min

    @property
    def max_level(self) -> int:
        return self._settings.gas_tank_max

    @property
    def state_path(self) -> Optional[Path]:
        return self._state_path

    def gas_tank_level(self) -> Observable[int]:
        """Observable persisted gas level."""
        return self._gas_tank_level

    def _clamp(self, level: int) -> int:
        return max(self.min_level, min(self.max_level, level))

    def _load_level(self) -> int:
        initial = self._settings.initial_gas_level
        if self._state_path is None:
            return initial

        try:
            payload = json.loads(self._state_path.read_text(encoding="utf-8"))
            level = payload[_STATE_KEY]
            if not isinstance(level, int):
                raise ValueError(f"{_STATE_KEY} is not an integer")
        except FileNotFoundError:
            logger.info("game_state_not_found", path=str(self._state_path), initial_level=initial)
            return initial
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(
                "game_state_load_failed",
                path=str(self._state_path),
                error=str(e),
                error_type=type(e).__name__,
            )
            return initial

        clamped = self._clamp(level)
        logger.info("game_state_loaded", path=str(self._state_path), gas_tank_level=clamped)
        return clamped

    def _persist(self, level: int) -> None:
        if self._state_path is None:
            return
        try:
            self._state_path.parent.mkdir(parents=True, exist_ok=True)
            self._state_path.write_text(json.dumps({_STATE_KEY: level}), encoding="utf-8")
        except OSError as e:
            # The in-memory level stays authoritative.
            logger.error(
                "game_state_persist_failed",
                path=str(self._state_path),
                error=str(e),
                error_type=type(e).__name__,
            )

    async def _apply(self, delta: int, reason: str) -> int:
        async with self._lock:
            old_level = self._gas_tank_level.value
            new_level = self._clamp(old_level + delta)
            if new_level != old_level:
                self._gas_tank_level.set(new_level)
                self._persist(new_level)
                log_gas_level_change(old_level=old_level, new_level=new_level, reason=reason)
            return abs(new_level - old_level)

    async def increment_gas(self, amount: int) -> int:
        """Add gas, clamped at the full tank.

        Returns:
            Amount actually added
        """
        if amount < 0:
            raise ValueError("amount must not be negative")
        return await self._apply(amount, reason="refill")

    async def decrement_gas(self, amount: int) -> int:
        """Use gas, clamped at the empty tank.

        Returns:
            Amount actually used
        """
        if amount < 0:
            raise ValueError("amount must not be negative")
        return await self._apply(-amount, reason="drive")

    async def reset(self) -> None:
        """Restore the initial gas level."""
        async with self._lock:
            old_level = self._gas_tank_level.value
            new_level = self._settings.initial_gas_level
            self._gas_tank_level.set(new_level)
            self._persist(new_level)
            if old_level != new_level:
                log_gas_level_change(old_level=old_level, new_level=new_level, reason="reset")
