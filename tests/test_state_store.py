"""Tests de los repositorios de estado.

Ejecutar:
    pytest tests/test_state_store.py -v
"""

import pytest

from common.db import get_engine
from twin_api.classification import (
    GasSensorMessage,
    GasSensorState,
    GridNodeMessage,
    GridNodeState,
    reduce_gas_sensor,
    reduce_grid_node,
)
from twin_api.persistence import InMemoryStateStore, SqlStateStore


def _grid_state() -> GridNodeState:
    msgs = [
        GridNodeMessage(
            type="init", node_id="5", condition="normal", node_type="infrastructure",
            region="SE", latitude=30.1, longitude=97.7,
        ),
        GridNodeMessage(type="status", node_id="5", condition="severe"),
        GridNodeMessage(type="status", node_id="5", condition="normal"),
        GridNodeMessage(type="status", node_id="5", condition="moderate"),
    ]
    return reduce_grid_node(GridNodeState(), msgs, now_ms=1_000)


def _gas_state() -> GasSensorState:
    return reduce_gas_sensor(GasSensorState(), [GasSensorMessage(reading=75, timestamp=10)], now_ms=1).state


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return InMemoryStateStore()
    sql_store = SqlStateStore(get_engine("sqlite://"))
    sql_store.create_schema()
    return sql_store


class TestStateStore:

    def test_load_missing_returns_none(self, store):
        assert store.load("GasSensor", "nope") is None

    def test_gas_state_roundtrip(self, store):
        state = _gas_state()

        store.save("GasSensor", "23", state)

        assert store.load("GasSensor", "23") == state

    def test_grid_state_roundtrip(self, store):
        state = _grid_state()

        store.save("GridNode", "5", state)
        loaded = store.load("GridNode", "5")

        assert loaded == state
        assert loaded.alert_level == 5
        assert len(loaded.incident_history) == 2

    def test_save_replaces_previous_version(self, store):
        store.save("GasSensor", "23", GasSensorState(last_reading=1))
        store.save("GasSensor", "23", GasSensorState(last_reading=2))

        assert store.load("GasSensor", "23").last_reading == 2
        assert store.ids("GasSensor") == ["23"]

    def test_ids_are_scoped_by_model(self, store):
        store.save("GasSensor", "b", GasSensorState())
        store.save("GasSensor", "a", GasSensorState())
        store.save("GridNode", "a", GridNodeState())

        assert store.ids("GasSensor") == ["a", "b"]
        assert store.ids("GridNode") == ["a"]

    def test_delete(self, store):
        store.save("GasSensor", "23", GasSensorState())

        assert store.delete("GasSensor", "23") is True
        assert store.delete("GasSensor", "23") is False
        assert store.load("GasSensor", "23") is None


class TestSqlStateStore:

    def test_unknown_model_rejected(self):
        sql_store = SqlStateStore(get_engine("sqlite://"))
        sql_store.create_schema()

        with pytest.raises(KeyError):
            sql_store.save("Thermostat", "1", GasSensorState())

    def test_create_schema_is_idempotent(self):
        sql_store = SqlStateStore(get_engine("sqlite://"))
        sql_store.create_schema()
        sql_store.create_schema()

        assert sql_store.ids("GasSensor") == []
