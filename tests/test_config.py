"""Tests de configuración por entorno.

Ejecutar:
    pytest tests/test_config.py -v
"""

import ast
import os

import pytest

import common.config
from common.config import get_settings
from twin_api.classification import DEFAULT_GAS_LIMITS
from twin_api.dispatch.factory import build_dispatcher, gas_limits_from
from twin_api.persistence import InMemoryStateStore, SqlStateStore

ENV_VARS = (
    "DATABASE_URL",
    "REDIS_URL",
    "ALERT_STREAM",
    "STATE_BACKEND",
    "ALERT_SINK",
    "LOG_LEVEL",
    "DISPATCH_WORKERS",
    "GAS_MAX_ALLOWED_PPM",
    "GAS_MAX_LIMIT_MINUTES",
    "GAS_SPIKE_PPM",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # load_dotenv escribe en os.environ: se aísla con una copia
    monkeypatch.setattr(os, "environ", os.environ.copy())
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TWIN_ENV_FILE", str(tmp_path / "missing.env"))


class TestSettings:

    def test_defaults(self):
        settings = get_settings()

        assert settings.state_backend == "memory"
        assert settings.alert_sink == "memory"
        assert settings.alert_stream == "twins:alerts"
        assert settings.dispatch_workers == 4
        assert gas_limits_from(settings) == DEFAULT_GAS_LIMITS

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("GAS_MAX_ALLOWED_PPM", "40")
        monkeypatch.setenv("GAS_SPIKE_PPM", "150")
        monkeypatch.setenv("STATE_BACKEND", " SQL ")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = get_settings()

        assert gas_limits_from(settings).max_allowed_ppm == 40
        assert gas_limits_from(settings).spike_ppm == 150
        assert settings.state_backend == "sql"
        assert settings.log_level == "DEBUG"

    def test_env_file_loaded(self, monkeypatch, tmp_path):
        env_file = tmp_path / "twin.env"
        env_file.write_text("GAS_MAX_LIMIT_MINUTES=5\nALERT_STREAM=custom:alerts\n", encoding="utf-8")
        monkeypatch.setenv("TWIN_ENV_FILE", str(env_file))

        settings = get_settings()

        assert settings.gas_max_limit_minutes == 5
        assert settings.alert_stream == "custom:alerts"

    def test_real_environment_wins_over_env_file(self, monkeypatch, tmp_path):
        env_file = tmp_path / "twin.env"
        env_file.write_text("ALERT_STREAM=from:file\n", encoding="utf-8")
        monkeypatch.setenv("TWIN_ENV_FILE", str(env_file))
        monkeypatch.setenv("ALERT_STREAM", "from:env")

        assert get_settings().alert_stream == "from:env"

    @pytest.mark.parametrize("name, value", [("STATE_BACKEND", "mongo"), ("ALERT_SINK", "kafka")])
    def test_invalid_backend_rejected(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValueError, match=name):
            get_settings()

    def test_invalid_gas_limits_rejected(self, monkeypatch):
        monkeypatch.setenv("GAS_SPIKE_PPM", "10")

        with pytest.raises(ValueError):
            gas_limits_from(get_settings())


class TestBuildDispatcher:

    def test_memory_backend(self):
        dispatcher = build_dispatcher()

        assert isinstance(dispatcher.store, InMemoryStateStore)
        assert sorted(dispatcher.models) == ["GasSensor", "GridNode"]

    def test_sql_backend(self, monkeypatch):
        monkeypatch.setenv("STATE_BACKEND", "sql")
        monkeypatch.setenv("DATABASE_URL", "sqlite://")

        dispatcher = build_dispatcher()

        assert isinstance(dispatcher.store, SqlStateStore)
        assert dispatcher.store.ids("GasSensor") == []

    def test_gas_limits_flow_into_model(self, monkeypatch):
        monkeypatch.setenv("GAS_MAX_ALLOWED_PPM", "100")
        dispatcher = build_dispatcher(clock=lambda: 1)

        result = dispatcher.dispatch(
            "GasSensor", "1", dispatcher.parse_messages("GasSensor", "1", [{"ppmReading": 80, "timestamp": 1}])
        )

        assert result.state.limit_exceeded is False


class TestLayering:

    def test_common_does_not_import_twin_api(self):
        with open(common.config.__file__, encoding="utf-8") as fh:
            tree = ast.parse(fh.read())

        imported = [
            node.module for node in ast.walk(tree) if isinstance(node, ast.ImportFrom) and node.module
        ] + [
            alias.name for node in ast.walk(tree) if isinstance(node, ast.Import) for alias in node.names
        ]
        assert not any(name.startswith("twin_api") for name in imported)

    def test_settings_hold_plain_gas_thresholds(self):
        settings = get_settings()

        assert (settings.gas_max_allowed_ppm, settings.gas_max_limit_minutes, settings.gas_spike_ppm) == (50, 15, 200)
