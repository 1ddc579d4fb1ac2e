"""
Session management module.

Provides the SessionOrchestrator for managing live WebSocket sessions.
"""
from .orchestrator import SessionOrchestrator

__all__ = ["SessionOrchestrator"]
