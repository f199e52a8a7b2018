"""
Unit tests for persisted manager state.
"""

import json
from decimal import Decimal

from cl_position_manager.core.state_store import JsonStateStore, PersistedState


class TestJsonStateStore:
    """Test cases for JsonStateStore."""

    def test_load_missing_returns_none(self, tmp_path):
        store = JsonStateStore(tmp_path / "state.json")
        assert store.load() is None

    def test_save_and_load(self, tmp_path):
        store = JsonStateStore(tmp_path / "nested" / "state.json")
        store.save(PersistedState(position_id=42, range_percent=Decimal('12.5'), tick_spacing=60))

        loaded = store.load()
        assert loaded.position_id == 42
        assert loaded.range_percent == Decimal('12.5')
        assert loaded.tick_spacing == 60

    def test_empty_position_is_null(self, tmp_path):
        path = tmp_path / "state.json"
        JsonStateStore(path).save(PersistedState(position_id=None, range_percent=Decimal('15'), tick_spacing=10))

        data = json.loads(path.read_text())
        assert data["position_id"] is None
        assert data["range_percent"] == "15"

    def test_save_leaves_no_temp_file(self, tmp_path):
        store = JsonStateStore(tmp_path / "state.json")
        store.save(PersistedState(position_id=1, range_percent=Decimal('15'), tick_spacing=60))

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]
