"""
Application-wide constants for geofencing, audio relay and presence.

Environment-dependent settings (database URL, Redis, ports) belong in settings.py.
This file is for operational parameters that rarely change between environments.
"""

# ==============================================================================
# GEOFENCE
# ==============================================================================

# Mean Earth radius used by the haversine distance (km)
EARTH_RADIUS_KM: float = 6371.0

# Search radius for auto-joining channels on a location update (km)
DEFAULT_NEARBY_RADIUS_KM: float = 1.0

# Largest radius a location channel may be created with (km)
MAX_CHANNEL_RADIUS_KM: float = 10.0

LATITUDE_RANGE: tuple[float, float] = (-90.0, 90.0)
LONGITUDE_RANGE: tuple[float, float] = (-180.0, 180.0)

# Padding on the nearby latitude prefilter (degrees, ~0.1 m) so a point at
# exactly the search radius is never lost to float rounding before the
# haversine check decides
LATITUDE_WINDOW_SLACK_DEG: float = 1e-6

# ==============================================================================
# AUDIO RELAY
# ==============================================================================

# float -> int16 scale. Both directions use 32767 so that +/-1.0 round-trips.
PCM_ENCODE_SCALE: float = 32767.0
PCM_DECODE_SCALE: float = 32767.0

# Offer/answer marker for calls whose media is relayed by this server
SERVER_MEDIATED_DESCRIPTOR_TYPE: str = "server-mediated"

# ==============================================================================
# PRESENCE
# ==============================================================================

# Redis presence key TTL; clients heartbeat well within it, the key expires if they stop
PRESENCE_HEARTBEAT_TTL_SEC: int = 60

# How often the DB is_online flag is reconciled against Redis
PRESENCE_CLEANUP_INTERVAL_SEC: int = 120

PRESENCE_KEY_PREFIX: str = "online:"

# ==============================================================================
# USERS
# ==============================================================================

USERNAME_MIN_LENGTH: int = 1
USERNAME_MAX_LENGTH: int = 64
USER_SEARCH_LIMIT: int = 10
