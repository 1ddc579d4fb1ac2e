"""Prometheus metrics for the live relay.

Metrics exported:
- walky_live_connections: Gauge of registered WebSocket connections
- walky_online_users: Gauge of users with at least one live connection
- walky_events_emitted_total: Counter of server->client events by event name
- walky_audio_frames_relayed_total: Counter of relayed audio frames by format
- walky_audio_frames_dropped_total: Counter of dropped audio frames by reason

Usage:
    from walky.services.metrics import start_metrics_server, audio_frames_relayed

    start_metrics_server(port=8001)
    audio_frames_relayed.labels(frame_format='pcm').inc()
"""

from prometheus_client import Counter, Gauge, start_http_server
import logging

logger = logging.getLogger(__name__)

live_connections_gauge = Gauge(
    'walky_live_connections',
    'Number of registered live WebSocket connections'
)

online_users_gauge = Gauge(
    'walky_online_users',
    'Number of users with at least one live connection'
)

events_emitted = Counter(
    'walky_events_emitted_total',
    'Server to client events written to live connections',
    labelnames=['event']
)

audio_frames_relayed = Counter(
    'walky_audio_frames_relayed_total',
    'Audio frames forwarded to at least one recipient lookup',
    labelnames=['frame_format']  # frame_format: legacy, pcm
)

audio_frames_dropped = Counter(
    'walky_audio_frames_dropped_total',
    'Audio frames dropped before relay',
    labelnames=['reason']  # reason: call_missing, not_participant, malformed, store_error
)


def start_metrics_server(port: int = 8001):
    """Start Prometheus metrics HTTP server."""
    try:
        start_http_server(port)
        logger.info(f"✅ Metrics server started on port {port}")
    except Exception as e:
        logger.error(f"❌ Failed to start metrics server: {e}")
