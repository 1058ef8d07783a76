"""
Spending record repository.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from budget_indexer.config.constants import DEFAULT_PAGE_LIMIT
from budget_indexer.models.spending_record import SpendingRecord
from budget_indexer.repositories.base import BaseRepository


class SpendingRepository(BaseRepository[SpendingRecord]):
    """Repository for bucket spending."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(SpendingRecord, session)

    async def insert(self, values: dict[str, Any]) -> bool:
        """Append a spending record; replays of the same log are ignored."""
        return await self.insert_ignore(values, ["transaction_hash", "log_index"])

    async def get_by_wallet(
        self,
        wallet_address: str,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> list[SpendingRecord]:
        """Get spending of a wallet, newest first."""
        return await self.find_page(
            SpendingRecord.wallet_address == wallet_address.lower(),
            order_by=(
                SpendingRecord.block_number.desc(),
                SpendingRecord.log_index.desc(),
            ),
            limit=limit,
            offset=offset,
        )
