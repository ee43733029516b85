import logging
import math
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000.0


def haversine_distance_m(lat1, lon1, lat2, lon2):
    """
    Great-circle distance between two coordinates in meters.

    Uses the atan2 form, which stays accurate for spacings from a few meters
    up to tens of kilometers.

    Args:
        lat1 (float): Latitude of the first point in degrees
        lon1 (float): Longitude of the first point in degrees
        lat2 (float): Latitude of the second point in degrees
        lon2 (float): Longitude of the second point in degrees

    Returns:
        float: Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # Clamp rounding noise so sqrt(1 - a) never goes negative
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def point_distance_m(p1, p2):
    """Distance in meters between two objects exposing latitude/longitude."""
    return haversine_distance_m(p1.latitude, p1.longitude, p2.latitude, p2.longitude)


def route_distance_m(points: Sequence) -> float:
    """
    Total distance of a route in meters.

    Args:
        points: Ordered points exposing latitude and longitude

    Returns:
        float: Sum of consecutive haversine distances (0 for fewer than 2 points)
    """
    if len(points) < 2:
        return 0.0
    return sum(point_distance_m(a, b) for a, b in zip(points, points[1:]))


def elevation_gain_delta(previous_elevation: Optional[float], new_elevation: Optional[float]) -> float:
    """Positive elevation change between two points; 0 for descents or missing elevation."""
    if previous_elevation is None or new_elevation is None:
        return 0.0
    return max(0.0, new_elevation - previous_elevation)


def route_elevation_gain_m(points: Sequence) -> float:
    if len(points) < 2:
        return 0.0
    return sum(elevation_gain_delta(a.elevation, b.elevation) for a, b in zip(points, points[1:]))


def calculate_calories(met, body_weight_kg, active_seconds):
    """
    Estimate calories burned with the MET formula.

    calories = MET x body weight (kg) x active hours. This is an approximation,
    not a physiological model.

    Args:
        met (float): Metabolic equivalent of the activity
        body_weight_kg (float): Body weight in kilograms
        active_seconds (float): Active duration in seconds (pauses excluded)

    Returns:
        float: Estimated calories burned
    """
    if met <= 0 or body_weight_kg <= 0 or active_seconds <= 0:
        return 0.0
    return met * body_weight_kg * (active_seconds / 3600.0)


def calculate_pace(distance_km, duration_seconds):
    """
    Calculate pace in minutes per kilometer.

    Args:
        distance_km (float): Distance covered in kilometers
        duration_seconds (float): Active duration in seconds

    Returns:
        float or None: Pace in minutes per kilometer, None when distance is zero
    """
    if distance_km <= 0 or duration_seconds <= 0:
        return None
    return (duration_seconds / 60.0) / distance_km


def calculate_average_speed(distance_km, duration_seconds):
    """
    Calculate average speed in kilometers per hour.

    Args:
        distance_km (float): Distance covered in kilometers
        duration_seconds (float): Active duration in seconds

    Returns:
        float or None: Average speed in km/h, None when distance or duration is zero
    """
    if distance_km <= 0 or duration_seconds <= 0:
        return None
    return distance_km / (duration_seconds / 3600.0)


def mps_to_kmh(speed_mps):
    return speed_mps * 3.6


def window_speed_kmh(points: Sequence) -> Optional[float]:
    """
    Speed over a window of recent points in km/h, from distance covered over elapsed time.
    None when the window spans no time or no distance.
    """
    if len(points) < 2:
        return None
    elapsed = (points[-1].timestamp - points[0].timestamp).total_seconds()
    distance_km = route_distance_m(points) / 1000.0
    return calculate_average_speed(distance_km, elapsed)


def summarize_route(points: Sequence) -> dict:
    """
    Statistics for a whole route.

    Args:
        points: Ordered GPS points

    Returns:
        dict: point count, distance, elevation gain, min/max elevation and
              device-reported average/max speed (km/h)
    """
    elevations: List[float] = [p.elevation for p in points if p.elevation is not None]
    speeds: List[float] = [mps_to_kmh(p.speed) for p in points if p.speed is not None]

    stats = {
        'point_count': len(points),
        'distance_km': round(route_distance_m(points) / 1000.0, 3),
        'elevation_gain_m': round(route_elevation_gain_m(points), 1),
        'min_elevation_m': min(elevations) if elevations else None,
        'max_elevation_m': max(elevations) if elevations else None,
        'average_speed_kmh': round(sum(speeds) / len(speeds), 2) if speeds else None,
        'max_speed_kmh': round(max(speeds), 2) if speeds else None,
    }
    logger.debug(f"Route summary: {stats}")
    return stats
