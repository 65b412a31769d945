"""Tests de los sinks de alertas.

Ejecutar:
    pytest tests/test_alert_sink.py -v
"""

import json
from unittest.mock import MagicMock

import pytest
import redis

from twin_api.alerts import AlertDeliveryError, InMemoryAlertSink, RedisAlertPublisher
from twin_api.classification import GAS_WARNING_TEXT, GasAlert, GasSensorMessage
from twin_api.dispatch import DispatchError, TwinDispatcher, default_models
from twin_api.persistence import InMemoryStateStore

ALERT = GasAlert(message=GAS_WARNING_TEXT, raised_at=1706688000123)


class TestInMemoryAlertSink:

    def test_deliver_and_receive(self):
        sink = InMemoryAlertSink()

        sink.deliver("GasSensor", "23", [ALERT, ALERT])

        assert sink.pending("GasSensor", "23") == 2
        payloads = sink.receive("GasSensor", "23")
        assert json.loads(payloads[0]) == {"alertMessage": GAS_WARNING_TEXT, "timestamp": 1706688000123}
        assert sink.pending("GasSensor", "23") == 0

    def test_outboxes_are_per_entity(self):
        sink = InMemoryAlertSink()

        sink.deliver("GasSensor", "a", [ALERT])

        assert sink.receive("GasSensor", "b") == []
        assert len(sink.receive("GasSensor", "a")) == 1


class TestRedisAlertPublisher:

    def test_batch_queued_on_one_transaction(self):
        client = MagicMock()
        pipe = client.pipeline.return_value
        publisher = RedisAlertPublisher(client, stream_name="test:alerts", max_len=100)

        publisher.deliver("GasSensor", "23", [ALERT, ALERT])

        client.pipeline.assert_called_once_with(transaction=True)
        assert pipe.xadd.call_count == 2
        pipe.execute.assert_called_once()
        client.xadd.assert_not_called()
        args, kwargs = pipe.xadd.call_args
        assert args[0] == "test:alerts"
        assert args[1]["model"] == "GasSensor"
        assert args[1]["entity_id"] == "23"
        assert json.loads(args[1]["payload"])["alertMessage"] == GAS_WARNING_TEXT
        assert kwargs == {"maxlen": 100, "approximate": True}

    def test_failed_execute_publishes_nothing(self):
        client = MagicMock()
        pipe = client.pipeline.return_value
        pipe.execute.side_effect = redis.ConnectionError("refused")
        publisher = RedisAlertPublisher(client)

        with pytest.raises(AlertDeliveryError):
            publisher.deliver("GasSensor", "23", [ALERT, ALERT])

        client.xadd.assert_not_called()
        pipe.reset.assert_called_once()

    def test_empty_batch_skips_redis(self):
        client = MagicMock()

        RedisAlertPublisher(client).deliver("GasSensor", "23", [])

        client.pipeline.assert_not_called()

    def test_default_stream_name(self):
        assert RedisAlertPublisher(MagicMock()).stream_name == "twins:alerts"


class TestRedisDeliveryWithDispatcher:

    def test_failed_publish_rolls_back_state_and_alerts(self):
        client = MagicMock()
        client.pipeline.return_value.execute.side_effect = redis.ResponseError("EXECABORT")
        store = InMemoryStateStore()
        dispatcher = TwinDispatcher(default_models(), store, RedisAlertPublisher(client), clock=lambda: 1)
        spikes = [GasSensorMessage(reading=300, timestamp=1), GasSensorMessage(reading=310, timestamp=2)]

        with pytest.raises(DispatchError):
            dispatcher.dispatch("GasSensor", "23", spikes)

        assert store.load("GasSensor", "23") is None
        client.xadd.assert_not_called()
