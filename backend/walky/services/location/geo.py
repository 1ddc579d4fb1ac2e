"""
Great-circle distance helpers.
"""
import math

from walky.config.constants import (
    EARTH_RADIUS_KM,
    LATITUDE_RANGE,
    LATITUDE_WINDOW_SLACK_DEG,
    LONGITUDE_RANGE,
)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine distance in kilometres between two points given in degrees.

        a = sin²(Δlat/2) + cos(lat1)·cos(lat2)·sin²(Δlon/2)
        d = 2R·atan2(√a, √(1−a))
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def coordinates_valid(latitude: float, longitude: float) -> bool:
    lat_min, lat_max = LATITUDE_RANGE
    lon_min, lon_max = LONGITUDE_RANGE
    return lat_min <= latitude <= lat_max and lon_min <= longitude <= lon_max


def latitude_window(latitude: float, radius_km: float) -> tuple[float, float]:
    """Latitude band that contains every point within radius_km (prefilter only)."""
    delta = math.degrees(radius_km / EARTH_RADIUS_KM) + LATITUDE_WINDOW_SLACK_DEG
    return latitude - delta, latitude + delta
