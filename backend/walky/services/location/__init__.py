"""
Location Module

- geo: haversine distance and coordinate checks
- channel_manager: geofence-driven channel membership (import it directly;
  the repository layer depends on geo and must not pull the manager in)
"""
from .geo import haversine_km, coordinates_valid

__all__ = [
    "haversine_km",
    "coordinates_valid",
]
