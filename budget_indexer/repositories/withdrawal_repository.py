"""
Withdrawal repository.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from budget_indexer.config.constants import DEFAULT_PAGE_LIMIT
from budget_indexer.models.withdrawal import Withdrawal
from budget_indexer.repositories.base import BaseRepository

NEWEST_FIRST = (Withdrawal.block_number.desc(), Withdrawal.log_index.desc())


class WithdrawalRepository(BaseRepository[Withdrawal]):
    """Repository for wallet withdrawals."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Withdrawal, session)

    async def insert(self, values: dict[str, Any]) -> bool:
        """Append a withdrawal; replays of the same log are ignored."""
        return await self.insert_ignore(values, ["transaction_hash", "log_index"])

    async def get_by_wallet(
        self, wallet_address: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> list[Withdrawal]:
        return await self.find_page(
            Withdrawal.wallet_address == wallet_address.lower(),
            order_by=NEWEST_FIRST,
            limit=limit,
            offset=offset,
        )

    async def get_by_user(
        self, user_address: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> list[Withdrawal]:
        return await self.find_page(
            Withdrawal.user_address == user_address.lower(),
            order_by=NEWEST_FIRST,
            limit=limit,
            offset=offset,
        )

    async def get_by_type(
        self, withdrawal_type: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> list[Withdrawal]:
        return await self.find_page(
            Withdrawal.withdrawal_type == withdrawal_type,
            order_by=NEWEST_FIRST,
            limit=limit,
            offset=offset,
        )
