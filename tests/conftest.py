"""Pytest configuration and fixtures for VibeTracker tests."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from VibeTracker.app import create_app
from VibeTracker.config import TestingConfig
from VibeTracker.models.activity_session import GpsPoint
from VibeTracker.services.activity_session_service import ActivitySessionService
from VibeTracker.services.xp_reward_engine import XpRewardEngine
from VibeTracker.utils.calculations import EARTH_RADIUS_M

# Tuesday
TUESDAY_7AM = datetime(2024, 3, 5, 7, 0, tzinfo=timezone.utc)
METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180.0


class FixedClock:
    """Controllable clock for the session service."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingPublisher:
    """Collects published events instead of sending them to Redis."""

    def __init__(self):
        self.events = []

    def publish(self, event_type, payload):
        self.events.append((event_type, payload))
        return True

    def is_connected(self):
        return True

    def types(self):
        return [event_type for event_type, _ in self.events]


def straight_route(start: datetime, distance_m: float, minutes: float, count: int = 11,
                   lat: float = 40.0, lon: float = -105.0, elevations=None):
    """Points heading due north, evenly spaced in distance and time."""
    step_deg = distance_m / METERS_PER_DEGREE / (count - 1)
    step_time = timedelta(minutes=minutes) / (count - 1)
    points = []
    for i in range(count):
        points.append(GpsPoint(
            latitude=lat + i * step_deg,
            longitude=lon,
            timestamp=start + i * step_time,
            elevation=elevations[i] if elevations else None,
        ))
    return points


def record_route(service, clock, session_id, user_id, points):
    """Feed points through the service with the clock following the device."""
    accepted = []
    for point in points:
        clock.now = max(clock.now, point.timestamp)
        accepted.append(service.add_route_point(
            session_id, user_id,
            latitude=point.latitude,
            longitude=point.longitude,
            timestamp=point.timestamp,
            elevation=point.elevation,
            speed=point.speed,
            accuracy=point.accuracy,
        ))
    return accepted


@pytest.fixture
def clock():
    return FixedClock(TUESDAY_7AM)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def service(clock, publisher):
    return ActivitySessionService(
        reward_engine=XpRewardEngine(reward_clock='user', reward_timezone='UTC'),
        publisher=publisher,
        clock=clock,
        default_body_weight_kg=70.0,
    )


@pytest.fixture
def user_id(service, clock):
    """An established account (older than the new-user window)."""
    service.upsert_profile('user-1', display_name='Alex', created_at=clock.now - timedelta(days=365))
    return 'user-1'


@pytest.fixture
def app(service):
    return create_app(TestingConfig, service=service)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(user_id):
    return {'X-User-Id': user_id}
