"""Tests for distance, calorie, pace and speed calculations."""

from datetime import timedelta

import pytest

from VibeTracker.models.activity_session import GpsPoint
from VibeTracker.utils.calculations import (
    calculate_average_speed,
    calculate_calories,
    calculate_pace,
    elevation_gain_delta,
    haversine_distance_m,
    route_distance_m,
    route_elevation_gain_m,
    summarize_route,
    window_speed_kmh,
)

from conftest import TUESDAY_7AM, straight_route


class TestHaversine:
    """Great-circle distance."""

    def test_one_degree_of_latitude(self):
        assert haversine_distance_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111194.93, abs=0.01)

    def test_same_point_is_zero(self):
        assert haversine_distance_m(51.5, -0.12, 51.5, -0.12) == 0.0

    def test_symmetric(self):
        a_to_b = haversine_distance_m(40.7128, -74.0060, 34.0522, -118.2437)
        b_to_a = haversine_distance_m(34.0522, -118.2437, 40.7128, -74.0060)
        assert a_to_b == pytest.approx(b_to_a)
        assert a_to_b == pytest.approx(3935746, rel=0.001)

    def test_short_spacing_is_stable(self):
        # Roughly one meter apart
        assert haversine_distance_m(45.0, 7.0, 45.000009, 7.0) == pytest.approx(1.0, abs=0.01)


class TestRouteMetrics:
    """Whole-route aggregates."""

    def test_empty_and_single_point_routes(self):
        point = GpsPoint(latitude=10.0, longitude=10.0, timestamp=TUESDAY_7AM, elevation=100.0)
        assert route_distance_m([]) == 0.0
        assert route_distance_m([point]) == 0.0
        assert route_elevation_gain_m([point]) == 0.0

    def test_distance_invariant_under_reversal(self):
        points = [
            GpsPoint(latitude=lat, longitude=lon, timestamp=TUESDAY_7AM + timedelta(seconds=i))
            for i, (lat, lon) in enumerate([(47.0, 8.0), (47.01, 8.02), (47.03, 8.01), (47.02, 7.99)])
        ]
        forward = route_distance_m(points)
        backward = route_distance_m(list(reversed(points)))
        assert forward > 0
        assert forward == pytest.approx(backward)

    def test_elevation_gain_counts_only_climbs(self):
        points = straight_route(TUESDAY_7AM, 1000, 10, count=5, elevations=[100, 120, 110, 130, None])
        # +20, descent ignored, +20, missing elevation skipped
        assert route_elevation_gain_m(points) == pytest.approx(40.0)

    def test_elevation_gain_delta_requires_both_points(self):
        assert elevation_gain_delta(None, 50.0) == 0.0
        assert elevation_gain_delta(50.0, None) == 0.0
        assert elevation_gain_delta(50.0, 40.0) == 0.0
        assert elevation_gain_delta(40.0, 50.5) == pytest.approx(10.5)

    def test_window_speed(self):
        points = straight_route(TUESDAY_7AM, 1000, 6, count=3)
        assert window_speed_kmh(points) == pytest.approx(10.0, rel=1e-6)
        assert window_speed_kmh(points[:1]) is None

    def test_summarize_route(self):
        points = [
            GpsPoint(latitude=40.0, longitude=-105.0, timestamp=TUESDAY_7AM, elevation=1600.0, speed=2.0),
            GpsPoint(latitude=40.001, longitude=-105.0, timestamp=TUESDAY_7AM + timedelta(seconds=60),
                     elevation=1625.0, speed=3.0),
        ]
        stats = summarize_route(points)
        assert stats['point_count'] == 2
        assert stats['distance_km'] == pytest.approx(0.111, abs=0.001)
        assert stats['elevation_gain_m'] == 25.0
        assert stats['min_elevation_m'] == 1600.0
        assert stats['max_elevation_m'] == 1625.0
        assert stats['average_speed_kmh'] == 9.0
        assert stats['max_speed_kmh'] == 10.8


class TestCaloriesPaceSpeed:
    """MET calories and pace/speed derivation."""

    def test_calories_met_formula(self):
        # Running MET 9.8, 70 kg, 30 minutes
        assert calculate_calories(9.8, 70, 1800) == pytest.approx(343.0)

    def test_calories_zero_for_no_activity(self):
        assert calculate_calories(9.8, 70, 0) == 0.0

    def test_speed_and_pace(self):
        assert calculate_average_speed(5.0, 1800) == pytest.approx(10.0)
        assert calculate_pace(5.0, 1800) == pytest.approx(6.0)

    def test_speed_and_pace_undefined_without_distance(self):
        assert calculate_average_speed(0.0, 1800) is None
        assert calculate_pace(0.0, 1800) is None
        assert calculate_average_speed(5.0, 0) is None
