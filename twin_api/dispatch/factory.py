"""Factory para crear el dispatcher a partir de la configuración.

Centraliza la selección de backend de estado (memory | sql) y de sink
de alertas (memory | redis).
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from common.config import Settings, get_settings

from ..alerts import InMemoryAlertSink, RedisAlertPublisher, connect_redis
from ..classification import GasSensorLimits
from ..persistence import InMemoryStateStore, SqlStateStore
from .dispatcher import TwinDispatcher
from .models import default_models

logger = logging.getLogger(__name__)


def gas_limits_from(settings: Settings) -> GasSensorLimits:
    """Umbrales de gas configurados. ValueError si son incoherentes."""
    return GasSensorLimits(
        max_allowed_ppm=settings.gas_max_allowed_ppm,
        max_limit_minutes=settings.gas_max_limit_minutes,
        spike_ppm=settings.gas_spike_ppm,
    )


def build_dispatcher(
    settings: Optional[Settings] = None,
    clock: Optional[Callable[[], int]] = None,
) -> TwinDispatcher:
    """Crea un TwinDispatcher con los modelos GasSensor y GridNode."""
    settings = settings or get_settings()
    gas_limits = gas_limits_from(settings)

    if settings.state_backend == "sql":
        from common.db import get_engine

        store = SqlStateStore(get_engine(settings.database_url))
        store.create_schema()
    else:
        store = InMemoryStateStore()

    if settings.alert_sink == "redis":
        sink = RedisAlertPublisher(connect_redis(settings.redis_url), stream_name=settings.alert_stream)
    else:
        sink = InMemoryAlertSink()

    logger.info(
        "[DISPATCH_FACTORY] store=%s sink=%s gas_limits=%s",
        settings.state_backend,
        settings.alert_sink,
        gas_limits,
    )
    return TwinDispatcher(default_models(gas_limits), store, sink, clock=clock)
