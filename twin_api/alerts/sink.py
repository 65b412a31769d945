"""Sinks de alertas.

El reductor solo devuelve GasAlert tipados; aquí se serializan al
payload plano `{"alertMessage": ..., "timestamp": ...}` y se entregan.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Protocol, Sequence, Tuple

import redis

from ..classification import GasAlert
from ..schemas import GasAlertOut

logger = logging.getLogger(__name__)

DEFAULT_STREAM = "twins:alerts"
DEFAULT_MAX_LEN = 10000


class AlertDeliveryError(RuntimeError):
    """La entrega de una alerta falló; el host no debe confirmar el lote."""


class AlertSink(Protocol):
    def deliver(self, model: str, entity_id: str, alerts: Sequence[GasAlert]) -> None: ...


class InMemoryAlertSink:
    """Buzón por entidad con los payloads JSON entregados.

    `receive` vacía el buzón, igual que un endpoint de pruebas.
    """

    def __init__(self) -> None:
        self._outbox: Dict[Tuple[str, str], List[str]] = {}
        self._lock = threading.Lock()

    def deliver(self, model: str, entity_id: str, alerts: Sequence[GasAlert]) -> None:
        payloads = [GasAlertOut.from_alert(a).to_json() for a in alerts]
        with self._lock:
            self._outbox.setdefault((model, entity_id), []).extend(payloads)

    def receive(self, model: str, entity_id: str) -> List[str]:
        with self._lock:
            return self._outbox.pop((model, entity_id), [])

    def pending(self, model: str, entity_id: str) -> int:
        with self._lock:
            return len(self._outbox.get((model, entity_id), []))


def connect_redis(url: str) -> redis.Redis:
    """Crea un cliente Redis y verifica la conexión."""
    client = redis.Redis.from_url(
        url,
        decode_responses=False,
        socket_timeout=5.0,
        socket_connect_timeout=5.0,
    )
    client.ping()
    logger.info("[REDIS] Connected: %s", url.split("@")[-1])
    return client


class RedisAlertPublisher:
    """Publica alertas a un Redis Stream.

    Responsabilidades:
    - Una entrada XADD por alerta (model, entity_id, payload)
    - Todas las alertas de un lote en un único pipeline MULTI/EXEC:
      se publican todas o ninguna
    - Backpressure vía maxlen aproximado
    """

    def __init__(
        self,
        client: redis.Redis,
        stream_name: str = DEFAULT_STREAM,
        max_len: int = DEFAULT_MAX_LEN,
    ):
        self._client = client
        self._stream = stream_name
        self._max_len = max_len

    def deliver(self, model: str, entity_id: str, alerts: Sequence[GasAlert]) -> None:
        if not alerts:
            return

        pipe = self._client.pipeline(transaction=True)
        for alert in alerts:
            data = {
                "model": model,
                "entity_id": entity_id,
                "payload": GasAlertOut.from_alert(alert).to_json(),
            }
            pipe.xadd(
                self._stream,
                data,
                maxlen=self._max_len,
                approximate=True,
            )

        try:
            pipe.execute()
        except redis.RedisError as e:
            logger.warning("[REDIS] Publish failed: model=%s entity=%s err=%s", model, entity_id, e)
            raise AlertDeliveryError(f"redis publish failed: {e}") from e
        finally:
            pipe.reset()

        logger.debug("[REDIS] Published: model=%s entity=%s alerts=%d", model, entity_id, len(alerts))

    @property
    def stream_name(self) -> str:
        return self._stream
