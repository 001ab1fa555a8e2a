"""Tests for the gas tank store."""

import json

import pytest

from trivial_drive.models import GameConfig
from trivial_drive.repositories.game_state_store import GameStateStore


class TestGasLevel:
    """Test increments and decrements."""

    def test_initial_level(self):
        """Test that a new store starts at the configured level."""
        store = GameStateStore(GameConfig(initial_gas_level=2))
        assert store.gas_tank_level().value == 2

    def test_default_is_full_tank(self):
        """Test the default initial level."""
        assert GameStateStore().gas_tank_level().value == 4

    @pytest.mark.asyncio
    async def test_decrement(self):
        """Test using gas."""
        store = GameStateStore()
        assert await store.decrement_gas(1) == 1
        assert store.gas_tank_level().value == 3

    @pytest.mark.asyncio
    async def test_decrement_clamped_at_empty(self):
        """Test that the level never goes below the minimum."""
        store = GameStateStore(GameConfig(initial_gas_level=1))
        assert await store.decrement_gas(3) == 1
        assert store.gas_tank_level().value == 0
        assert await store.decrement_gas(1) == 0

    @pytest.mark.asyncio
    async def test_increment_clamped_at_full(self):
        """Test that the level never goes above the maximum."""
        store = GameStateStore(GameConfig(initial_gas_level=1))
        assert await store.increment_gas(4) == 3
        assert store.gas_tank_level().value == 4
        assert await store.increment_gas(1) == 0

    @pytest.mark.asyncio
    async def test_negative_amount_rejected(self):
        """Test that negative amounts are refused."""
        store = GameStateStore()
        with pytest.raises(ValueError):
            await store.increment_gas(-1)
        with pytest.raises(ValueError):
            await store.decrement_gas(-1)

    @pytest.mark.asyncio
    async def test_reset(self):
        """Test that reset restores the initial level."""
        store = GameStateStore(GameConfig(initial_gas_level=3))
        await store.decrement_gas(3)
        await store.reset()
        assert store.gas_tank_level().value == 3


class TestPersistence:
    """Test the JSON state file."""

    @pytest.mark.asyncio
    async def test_level_written_on_change(self, tmp_path):
        """Test that changes are persisted."""
        path = tmp_path / "state.json"
        store = GameStateStore(state_path=str(path))

        await store.decrement_gas(2)

        assert json.loads(path.read_text()) == {"gas_tank_level": 2}

    @pytest.mark.asyncio
    async def test_level_restored(self, tmp_path):
        """Test that a new store picks up the persisted level."""
        path = tmp_path / "state.json"
        await GameStateStore(state_path=str(path)).decrement_gas(3)

        assert GameStateStore(state_path=str(path)).gas_tank_level().value == 1

    def test_state_path_from_settings(self, tmp_path):
        """Test that the settings can carry the state path."""
        path = tmp_path / "nested" / "state.json"
        store = GameStateStore(GameConfig(state_path=str(path)))
        assert store.state_path == path

    def test_missing_file_uses_initial_level(self, tmp_path):
        """Test a first run without a state file."""
        store = GameStateStore(GameConfig(initial_gas_level=2), state_path=str(tmp_path / "none.json"))
        assert store.gas_tank_level().value == 2

    @pytest.mark.parametrize(
        "content",
        ["not json", "{}", '{"gas_tank_level": "full"}', "[1, 2]"],
    )
    def test_corrupt_file_uses_initial_level(self, tmp_path, content):
        """Test that unreadable state falls back to the initial level."""
        path = tmp_path / "state.json"
        path.write_text(content)
        assert GameStateStore(state_path=str(path)).gas_tank_level().value == 4

    def test_out_of_range_level_clamped(self, tmp_path):
        """Test that persisted values outside the tank bounds are clamped."""
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"gas_tank_level": 42}))
        assert GameStateStore(state_path=str(path)).gas_tank_level().value == 4
