"""
Sync Engine Constants.
"""

from enum import StrEnum


class EngineState(StrEnum):
    """Sync engine lifecycle state."""

    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"
    STOPPING = "stopping"
    MANUAL_SYNC = "manual_sync"
