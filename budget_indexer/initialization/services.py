"""
Indexer Initialization - Services Module.

Wires chain client, store and sync engine together.
"""

from loguru import logger

from budget_indexer.config.database import async_session_maker
from budget_indexer.config.settings import settings
from budget_indexer.services.blockchain import ChainClient, EventDecoder
from budget_indexer.services.event_store import EventStore
from budget_indexer.services.sync_engine import SyncEngine
from budget_indexer.utils.security import mask_address


def initialize_services() -> tuple[ChainClient, EventStore, SyncEngine]:
    """
    Build the indexer's service graph.

    Returns:
        Tuple of (ChainClient, EventStore, SyncEngine)
    """
    chain = ChainClient()
    store = EventStore(async_session_maker)
    engine = SyncEngine(chain, store, decoder=EventDecoder())

    logger.info(
        f"Indexer configured: chain={settings.chain_id}, "
        f"factory={mask_address(settings.factory_contract_address)}, "
        f"token={mask_address(settings.token_contract_address)}, "
        f"batch_size={settings.batch_size}"
    )
    return chain, store, engine
