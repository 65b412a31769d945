from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from .config import get_settings


logger = logging.getLogger(__name__)


def _is_sqlite_memory(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def get_engine(url: Optional[str] = None) -> Engine:
    url = url or get_settings().database_url

    # Log básico de la URL (sin credenciales)
    logger.info("[DB] Crear engine url=%s", url.split("@")[-1])

    if _is_sqlite_memory(url):
        # Una sola conexión compartida: cada conexión nueva vería otra BD vacía
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    else:
        engine = create_engine(url, pool_pre_ping=True, future=True)

    # Test de conexión: ayuda a ver en logs si el servicio realmente llega a la BD
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Test de conexión OK")
    except Exception:
        logger.exception("[DB] Test de conexión FALLÓ")
        raise

    return engine
