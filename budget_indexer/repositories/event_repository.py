"""
Event repository.

Data access layer for the generic event log.
"""

from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from budget_indexer.config.constants import DEFAULT_PAGE_LIMIT
from budget_indexer.models.indexed_event import IndexedEventRecord
from budget_indexer.repositories.base import BaseRepository

EVENT_KEY = ["transaction_hash", "log_index"]


class EventRepository(BaseRepository[IndexedEventRecord]):
    """Repository for decoded events."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(IndexedEventRecord, session)

    async def insert(self, values: dict[str, Any]) -> bool:
        """Insert one event; False if it was already stored."""
        return await self.insert_ignore(values, EVENT_KEY)

    async def insert_many(self, rows: list[dict[str, Any]]) -> int:
        """Insert events, skipping ones already stored. Returns new row count."""
        return await self.insert_ignore_many(rows, EVENT_KEY)

    async def mark_processed(self, transaction_hash: str, log_index: int) -> None:
        """Set the processed flag on one event."""
        stmt = (
            update(IndexedEventRecord)
            .where(
                IndexedEventRecord.transaction_hash == transaction_hash,
                IndexedEventRecord.log_index == log_index,
            )
            .values(processed=True)
        )
        await self.session.execute(stmt)

    async def get_events(
        self,
        contract_address: str | None = None,
        event_name: str | None = None,
        block_number: int | None = None,
        transaction_hash: str | None = None,
        from_block: int | None = None,
        to_block: int | None = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> list[IndexedEventRecord]:
        """
        Get events matching optional filters, newest first.

        Args:
            contract_address: Emitting contract
            event_name: Event name, e.g. "Transfer"
            block_number: Exact block
            transaction_hash: Exact transaction
            from_block: Lower block bound (inclusive)
            to_block: Upper block bound (inclusive)
            limit: Page size
            offset: Rows to skip

        Returns:
            List of events
        """
        conditions = []
        if contract_address:
            conditions.append(
                IndexedEventRecord.contract_address == contract_address.lower()
            )
        if event_name:
            conditions.append(IndexedEventRecord.event_name == event_name)
        if block_number is not None:
            conditions.append(IndexedEventRecord.block_number == block_number)
        if transaction_hash:
            conditions.append(
                IndexedEventRecord.transaction_hash == transaction_hash.lower()
            )
        if from_block is not None:
            conditions.append(IndexedEventRecord.block_number >= from_block)
        if to_block is not None:
            conditions.append(IndexedEventRecord.block_number <= to_block)

        return await self.find_page(
            *conditions,
            order_by=(
                IndexedEventRecord.block_number.desc(),
                IndexedEventRecord.log_index.desc(),
            ),
            limit=limit,
            offset=offset,
        )
