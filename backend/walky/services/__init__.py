"""Business Logic Services.

This package contains the service modules that implement the relay core of
the walkie-talkie backend.

Service Categories:
- Connection: presence registry and notification fan-out
- Location: haversine helpers and geofence channel membership
- Call: 1:1 and group call lifecycle
- Audio: frame union, PCM conversion and relay
- Session: WebSocket session orchestration
- Core: repositories over the relational store
"""
