"""
Connection Management Module

Presence registry, live connection wrapper and notification fan-out.
"""
from .models import LiveConnection
from .manager import PresenceRegistry

__all__ = [
    "LiveConnection",
    "PresenceRegistry",
]
