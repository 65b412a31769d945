"""Entrega de alertas emitidas por los reductores."""

from .sink import AlertDeliveryError, AlertSink, InMemoryAlertSink, RedisAlertPublisher, connect_redis

__all__ = [
    "AlertDeliveryError",
    "AlertSink",
    "InMemoryAlertSink",
    "RedisAlertPublisher",
    "connect_redis",
]
