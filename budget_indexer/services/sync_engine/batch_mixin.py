"""
Sync Engine Batch Mixin.

Fetches, decodes and persists one block range at a time.
"""

import asyncio

from loguru import logger

from budget_indexer.models.enums import ContractRole
from budget_indexer.services.blockchain.event_decoder import IndexedEvent
from budget_indexer.services.event_processor import order_for_processing


class BatchMixin:
    """Mixin providing block range processing."""

    def _batches(self, from_block: int, to_block: int):
        """Split [from_block, to_block] into batch_size ranges."""
        start = from_block
        while start <= to_block:
            end = min(start + self.config.batch_size - 1, to_block)
            yield start, end
            start = end + 1

    async def _fetch_events(
        self, from_block: int, to_block: int
    ) -> list[IndexedEvent]:
        """
        Fetch and decode every relevant log in a range.

        Logs are filtered by the topics the decoder understands; token
        logs are limited to Transfer. Factory and token logs are fetched
        together. Wallet logs are fetched afterwards for the known
        wallets plus the wallets this range's factory logs register, so
        their first events are not missed.
        """
        factory_logs, token_logs = await asyncio.gather(
            self.chain.logs_for(
                [self.factory_address], from_block, to_block, self.factory_topics
            ),
            self.chain.logs_for(
                [self.token_address], from_block, to_block, self.token_topics
            ),
        )

        factory_events = self.decoder.decode_many(factory_logs, ContractRole.FACTORY)
        discovered = {
            event.payload.wallet
            for event in factory_events
            if event.is_registration
        }

        wallet_events: list[IndexedEvent] = []
        scope = self.registry.all() | discovered
        if scope:
            wallet_logs = await self.chain.logs_for(
                scope, from_block, to_block, self.wallet_topics
            )
            wallet_events = self.decoder.decode_many(
                wallet_logs, ContractRole.BUDGET_WALLET
            )

        token_events = self.decoder.decode_many(token_logs, ContractRole.TOKEN)
        return factory_events + wallet_events + token_events

    async def _resolve_timestamps(self, events: list[IndexedEvent]) -> None:
        """Fill in event timestamps, one RPC call per distinct block."""
        blocks = sorted({event.block_number for event in events})
        if not blocks:
            return

        timestamps = await asyncio.gather(
            *(self.chain.block_timestamp(block) for block in blocks)
        )
        by_block = dict(zip(blocks, timestamps))
        for event in events:
            event.timestamp = by_block[event.block_number]

    async def process_range(
        self,
        from_block: int,
        to_block: int,
        advance_checkpoint: bool = True,
    ) -> dict:
        """
        Process one batch atomically.

        Events, derived rows and the checkpoint are written in a single
        transaction. On failure nothing is written and the wallet
        registry is reloaded from the store.

        Args:
            from_block: First block (inclusive)
            to_block: Last block (inclusive)
            advance_checkpoint: Move the checkpoint to to_block on commit

        Returns:
            Dict with batch stats including:
            - events: Number of decoded events
            - inserted: Events not stored before
            - processed: Events whose side effect succeeded
            - failed: Events whose side effect failed
        """
        events = order_for_processing(await self._fetch_events(from_block, to_block))
        await self._resolve_timestamps(events)

        try:
            async with self.store.unit_of_work() as uow:
                inserted = await uow.insert_events(events)
                stats = await self.processor.process_batch(events, uow)
                if advance_checkpoint:
                    await uow.advance_checkpoints(self.tracked_contracts, to_block)
        except Exception:
            await self._reload_registry()
            raise

        if advance_checkpoint:
            self.checkpoint = max(self.checkpoint, to_block)

        stats.update(events=len(events), inserted=inserted)
        if events:
            logger.info(
                f"[Sync] Blocks {from_block}-{to_block}: {len(events)} events "
                f"({inserted} new, {stats['failed']} failed)"
            )
        else:
            logger.debug(f"[Sync] Blocks {from_block}-{to_block}: no events")
        return stats

    async def _reload_registry(self) -> None:
        """Rebuild the registry from durable state after a failed batch."""
        try:
            addresses = await self.store.get_all_wallet_addresses()
        except Exception as e:
            logger.error(f"[Sync] Could not reload wallet registry: {e}")
            return
        self.registry.load(addresses)
        logger.debug(f"[Sync] Wallet registry reloaded: {len(self.registry)} wallets")
