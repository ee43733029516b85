"""Tests for the Redis event publisher."""

import json
from unittest.mock import MagicMock

import redis

from VibeTracker.services.event_publisher import ACTIVITY_COMPLETED, RedisEventPublisher

from conftest import TUESDAY_7AM


class TestRedisEventPublisher:
    """Publishing behaviour with a mocked Redis client."""

    def test_publishes_json_envelope(self):
        client = MagicMock()
        publisher = RedisEventPublisher(channel='events-test', client=client)

        assert publisher.publish(ACTIVITY_COMPLETED, {'session_id': 's1', 'completed_at': TUESDAY_7AM}) is True

        channel, raw = client.publish.call_args[0]
        message = json.loads(raw)
        assert channel == 'events-test'
        assert message['type'] == 'activity.completed'
        assert message['payload'] == {'session_id': 's1', 'completed_at': '2024-03-05T07:00:00+00:00'}
        assert 'occurred_at' in message

    def test_redis_error_returns_false(self):
        client = MagicMock()
        client.publish.side_effect = redis.ConnectionError("connection refused")
        publisher = RedisEventPublisher(client=client)
        assert publisher.publish(ACTIVITY_COMPLETED, {'session_id': 's1'}) is False

    def test_unserializable_payload_returns_false(self):
        publisher = RedisEventPublisher(client=MagicMock())
        assert publisher.publish(ACTIVITY_COMPLETED, {'blob': object()}) is False

    def test_without_url_events_are_dropped(self):
        publisher = RedisEventPublisher(redis_url=None)
        assert publisher.is_connected() is False
        assert publisher.publish(ACTIVITY_COMPLETED, {'session_id': 's1'}) is False

    def test_is_connected_uses_ping(self):
        client = MagicMock()
        assert RedisEventPublisher(client=client).is_connected() is True
        client.ping.side_effect = redis.ConnectionError("gone")
        assert RedisEventPublisher(client=client).is_connected() is False

    def test_failed_connection_disables_publisher(self, monkeypatch):
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("refused")
        monkeypatch.setattr(redis, 'from_url', lambda *args, **kwargs: client)
        publisher = RedisEventPublisher(redis_url='redis://localhost:6379/0')
        assert publisher.redis_client is None
