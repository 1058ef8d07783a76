"""
Sync Engine Core Service.

Main service class that combines batch processing and the polling loop.
"""

import asyncio
from datetime import UTC, datetime

from loguru import logger

from budget_indexer.config.settings import Settings, settings
from budget_indexer.models.enums import ContractRole, EventName
from budget_indexer.services.blockchain.chain_client import ChainClient
from budget_indexer.services.blockchain.event_decoder import EventDecoder
from budget_indexer.services.event_processor import EventProcessor
from budget_indexer.services.event_store import EventStore
from budget_indexer.services.wallet_registry import KnownWalletRegistry
from budget_indexer.utils.exceptions import SyncEngineBusyError

from .batch_mixin import BatchMixin
from .constants import EngineState
from .polling_mixin import PollingMixin


class SyncEngine(BatchMixin, PollingMixin):
    """
    Keeps the store in sync with the chain.

    Lifecycle: idle -> initializing -> running -> stopping -> idle, with
    manual_sync as a one-shot state that excludes running.

    Key features:
    - Resumes from the durable checkpoint after a restart
    - Bounded batches, each committed atomically with its checkpoint
    - Idempotent replay of any range
    - Manual backfill of explicit ranges
    """

    def __init__(
        self,
        chain: ChainClient,
        store: EventStore,
        decoder: EventDecoder | None = None,
        registry: KnownWalletRegistry | None = None,
        config: Settings = settings,
    ) -> None:
        """
        Initialize sync engine.

        Args:
            chain: Chain client
            store: Event store
            decoder: Event decoder (a new one if omitted)
            registry: Known-wallet registry (a new one if omitted)
            config: Settings
        """
        self.chain = chain
        self.store = store
        self.decoder = decoder or EventDecoder()
        self.registry = registry if registry is not None else KnownWalletRegistry()
        self.config = config

        self.factory_address = config.factory_contract_address.lower()
        self.token_address = config.token_contract_address.lower()
        self.tracked_contracts = [self.factory_address, self.token_address]

        # topic0 filters for eth_getLogs; only Transfer matters on the token
        self.factory_topics = [self.decoder.known_topics(ContractRole.FACTORY)]
        self.wallet_topics = [self.decoder.known_topics(ContractRole.BUDGET_WALLET)]
        self.token_topics = [
            [self.decoder.topic_for(ContractRole.TOKEN, EventName.TRANSFER)]
        ]

        self.processor = EventProcessor(
            self.registry,
            token_address=self.token_address,
            template_address=config.budget_wallet_template_address,
        )

        # Runtime state
        self.state = EngineState.IDLE
        self.checkpoint: int | None = None
        self.chain_head: int | None = None
        self.consecutive_failures = 0
        self.failing_range: tuple[int, int] | None = None
        self.last_error: str | None = None
        self.started_at: datetime | None = None

        self._stop_event = asyncio.Event()
        self._lock = asyncio.Lock()

    async def initialize(self) -> int:
        """
        Load checkpoint and known wallets from the store.

        The checkpoint is the lowest last_processed_block across tracked
        contracts, or start_block - 1 when nothing was indexed yet.

        Returns:
            Checkpoint (last fully processed block)
        """
        blocks = []
        for contract in self.tracked_contracts:
            status = await self.store.get_indexer_status(contract)
            if status is not None:
                blocks.append(status.last_processed_block)

        self.checkpoint = min(blocks) if blocks else self.config.start_block - 1
        self.registry.load(await self.store.get_all_wallet_addresses())
        self.started_at = datetime.now(UTC)

        logger.info(
            f"[Sync] Initialized: checkpoint={self.checkpoint}, "
            f"known wallets={len(self.registry)}"
        )
        return self.checkpoint

    async def manual_sync(self, from_block: int, to_block: int) -> dict:
        """
        Sync an explicit block range once.

        Ranges at or below the checkpoint are replayed idempotently and
        leave it unchanged. The checkpoint only advances for batches that
        extend it contiguously.

        Args:
            from_block: First block (inclusive)
            to_block: Last block (inclusive)

        Returns:
            Dict with totals for the range

        Raises:
            SyncEngineBusyError: If the polling loop is running
            ValueError: If the range is empty
        """
        if from_block > to_block or from_block < 0:
            raise ValueError(f"Invalid block range {from_block}-{to_block}")
        if self.state != EngineState.IDLE or self._lock.locked():
            raise SyncEngineBusyError(
                f"Cannot run manual sync while engine is {self.state}"
            )

        totals = {
            "from_block": from_block,
            "to_block": to_block,
            "batches": 0,
            "events": 0,
            "inserted": 0,
            "processed": 0,
            "failed": 0,
        }

        async with self._lock:
            self.state = EngineState.MANUAL_SYNC
            try:
                if self.checkpoint is None:
                    await self.initialize()

                logger.info(f"[Sync] Manual sync {from_block}-{to_block}")
                for start, end in self._batches(from_block, to_block):
                    contiguous = start <= self.checkpoint + 1
                    stats = await self.process_range(
                        start, end, advance_checkpoint=contiguous
                    )
                    totals["batches"] += 1
                    for key in ("events", "inserted", "processed", "failed"):
                        totals[key] += stats[key]
            finally:
                self.state = EngineState.IDLE

        logger.success(
            f"[Sync] Manual sync {from_block}-{to_block} complete: "
            f"{totals['inserted']} new events"
        )
        return totals

    def stop(self) -> None:
        """Ask the polling loop to stop at the next suspension point."""
        if self.state in (EngineState.RUNNING, EngineState.INITIALIZING):
            self.state = EngineState.STOPPING
        self._stop_event.set()
        logger.info("[Sync] Stop requested")

    def status(self) -> dict:
        """
        Current engine status.

        Returns:
            Dict with state, checkpoint, chain head, wallet count and
            failure information
        """
        lag = None
        if self.chain_head is not None and self.checkpoint is not None:
            lag = max(0, self.chain_head - self.checkpoint)

        return {
            "state": str(self.state),
            "last_processed_block": self.checkpoint,
            "chain_head": self.chain_head,
            "blocks_behind": lag,
            "known_wallets": len(self.registry),
            "consecutive_failures": self.consecutive_failures,
            "failing_range": list(self.failing_range) if self.failing_range else None,
            "last_error": self.last_error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }
