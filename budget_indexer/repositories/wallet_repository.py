"""
Wallet registry repository.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budget_indexer.config.constants import DEFAULT_PAGE_LIMIT
from budget_indexer.models.wallet_registry import WalletRegistryEntry
from budget_indexer.repositories.base import BaseRepository


class WalletRepository(BaseRepository[WalletRegistryEntry]):
    """Repository for known budget wallets."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(WalletRegistryEntry, session)

    async def insert(self, values: dict[str, Any]) -> bool:
        """
        Register a wallet.

        A wallet already present is left untouched, so the first
        registration's provenance wins.

        Returns:
            True if the wallet was new
        """
        return await self.insert_ignore(values, ["wallet_address"])

    async def get_all_addresses(self) -> list[str]:
        """Get every registered wallet address."""
        result = await self.session.execute(
            select(WalletRegistryEntry.wallet_address)
        )
        return list(result.scalars().all())

    async def get_by_user(
        self,
        user_address: str,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> list[WalletRegistryEntry]:
        """Get wallets owned by a user, most recently deployed first."""
        return await self.find_page(
            WalletRegistryEntry.user_address == user_address.lower(),
            order_by=(
                WalletRegistryEntry.deployment_block.desc(),
                WalletRegistryEntry.id.desc(),
            ),
            limit=limit,
            offset=offset,
        )
