"""
Blockchain access.

Chain client and log decoding for the factory, wallet and token contracts.
"""

from .chain_client import ChainClient
from .event_decoder import EventDecoder, IndexedEvent

__all__ = ["ChainClient", "EventDecoder", "IndexedEvent"]
