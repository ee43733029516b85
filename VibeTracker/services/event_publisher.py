"""
Outbound domain events over Redis pub/sub.
Notification and social feed workers subscribe to the channel; publishing
is fire-and-forget and never fails the command that triggered it.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import redis

logger = logging.getLogger(__name__)

ACTIVITY_STARTED = 'activity.started'
ACTIVITY_PAUSED = 'activity.paused'
ACTIVITY_RESUMED = 'activity.resumed'
ACTIVITY_COMPLETED = 'activity.completed'
ACTIVITY_CANCELLED = 'activity.cancelled'
USER_LEVELED_UP = 'user.leveled_up'
BADGE_EARNED = 'badge.earned'


def _json_default(obj):
    if isinstance(obj, datetime):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class RedisEventPublisher:
    """Publishes JSON events to a Redis channel"""

    def __init__(self, redis_url: Optional[str] = None, channel: str = 'vibetracker:events', client=None):
        self.channel = channel
        self.redis_client = client
        if self.redis_client is None:
            self._initialize_redis(redis_url)

    def _initialize_redis(self, redis_url: Optional[str]):
        """Connect to Redis; without a URL events are logged and dropped"""
        if not redis_url:
            logger.warning('REDIS_URL not configured; domain events will not be published.')
            return
        try:
            if redis_url.startswith('rediss://'):
                self.redis_client = redis.from_url(redis_url, ssl_cert_reqs=None, decode_responses=True)
            else:
                self.redis_client = redis.from_url(redis_url, decode_responses=True)
            self.redis_client.ping()
            logger.info(f"Event publisher connected to Redis: {redis_url[:20]}...")
        except redis.RedisError as e:
            logger.error(f"Failed to initialize Redis event publisher: {e}")
            self.redis_client = None

    def is_connected(self) -> bool:
        """Check if Redis is connected and available"""
        if not self.redis_client:
            return False
        try:
            self.redis_client.ping()
            return True
        except redis.RedisError:
            return False

    def publish(self, event_type: str, payload: Dict[str, Any]) -> bool:
        """
        Publish an event.

        Args:
            event_type: Event name such as 'activity.completed'
            payload: JSON-serializable event data (datetimes allowed)

        Returns:
            True if the event was handed to Redis, False otherwise
        """
        message = {
            'type': event_type,
            'occurred_at': datetime.now(timezone.utc).isoformat(),
            'payload': payload,
        }
        if not self.redis_client:
            logger.debug(f"Dropping event {event_type}: Redis not configured")
            return False
        try:
            self.redis_client.publish(self.channel, json.dumps(message, default=_json_default))
            logger.debug(f"Published event {event_type} to {self.channel}")
            return True
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.error(f"Error publishing event {event_type}: {e}")
            return False
