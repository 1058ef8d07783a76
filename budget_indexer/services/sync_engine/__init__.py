"""
Sync Engine.

Polls the chain for factory, wallet and token logs and keeps the store
and checkpoint up to date.
"""

from .batch_mixin import BatchMixin
from .constants import EngineState
from .core import SyncEngine
from .polling_mixin import PollingMixin

__all__ = [
    "BatchMixin",
    "EngineState",
    "PollingMixin",
    "SyncEngine",
]
