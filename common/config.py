from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _default_env_file() -> str:
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


@dataclass(frozen=True)
class Settings:
    database_url: str
    redis_url: str
    alert_stream: str

    state_backend: str  # memory | sql
    alert_sink: str     # memory | redis

    log_level: str
    dispatch_workers: int

    gas_max_allowed_ppm: int
    gas_max_limit_minutes: int
    gas_spike_ppm: int


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("TWIN_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    state_backend = os.getenv("STATE_BACKEND", "memory").strip().lower()
    if state_backend not in ("memory", "sql"):
        raise ValueError(f"STATE_BACKEND must be 'memory' or 'sql', got {state_backend!r}")

    alert_sink = os.getenv("ALERT_SINK", "memory").strip().lower()
    if alert_sink not in ("memory", "redis"):
        raise ValueError(f"ALERT_SINK must be 'memory' or 'redis', got {alert_sink!r}")

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./twins.db"),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        alert_stream=os.getenv("ALERT_STREAM", "twins:alerts"),
        state_backend=state_backend,
        alert_sink=alert_sink,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        dispatch_workers=int(os.getenv("DISPATCH_WORKERS", "4")),
        gas_max_allowed_ppm=int(os.getenv("GAS_MAX_ALLOWED_PPM", "50")),
        gas_max_limit_minutes=int(os.getenv("GAS_MAX_LIMIT_MINUTES", "15")),
        gas_spike_ppm=int(os.getenv("GAS_SPIKE_PPM", "200")),
    )
