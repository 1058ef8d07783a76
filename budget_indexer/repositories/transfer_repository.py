"""
Transfer repository.

Data access layer for classified token transfers.
"""

from typing import Any

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from budget_indexer.config.constants import DEFAULT_PAGE_LIMIT
from budget_indexer.models.transfer import Transfer
from budget_indexer.repositories.base import BaseRepository

NEWEST_FIRST = (Transfer.block_number.desc(), Transfer.log_index.desc())


class TransferRepository(BaseRepository[Transfer]):
    """Repository for token transfers."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Transfer, session)

    async def insert(self, values: dict[str, Any]) -> bool:
        """Insert a transfer; replays of the same log are ignored."""
        return await self.insert_ignore(values, ["transaction_hash", "log_index"])

    async def get_by_wallet(
        self,
        wallet_address: str,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> list[Transfer]:
        """
        Get transfers touching a wallet on either side.

        Args:
            wallet_address: Wallet address
            limit: Page size
            offset: Rows to skip

        Returns:
            Transfers, newest first
        """
        addr = wallet_address.lower()
        return await self.find_page(
            or_(
                Transfer.wallet_address == addr,
                Transfer.from_address == addr,
                Transfer.to_address == addr,
            ),
            order_by=NEWEST_FIRST,
            limit=limit,
            offset=offset,
        )

    async def get_by_type(
        self,
        transfer_type: str,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> list[Transfer]:
        """Get transfers of one classification, newest first."""
        return await self.find_page(
            Transfer.transfer_type == transfer_type,
            order_by=NEWEST_FIRST,
            limit=limit,
            offset=offset,
        )

    async def get_by_token(
        self,
        token_address: str,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> list[Transfer]:
        """Get transfers of one token, newest first."""
        return await self.find_page(
            Transfer.token_address == token_address.lower(),
            order_by=NEWEST_FIRST,
            limit=limit,
            offset=offset,
        )
