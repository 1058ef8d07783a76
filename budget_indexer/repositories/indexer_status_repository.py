"""
Indexer status repository.

Reads and advances the per-contract checkpoint.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budget_indexer.models.indexer_status import IndexerStatus
from budget_indexer.repositories.base import BaseRepository


class IndexerStatusRepository(BaseRepository[IndexerStatus]):
    """Repository for indexer checkpoints."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(IndexerStatus, session)

    async def get_status(self, contract_address: str) -> IndexerStatus | None:
        """Get checkpoint row for a contract."""
        return await self.get_by(contract_address=contract_address.lower())

    async def _get_for_update(self, contract_address: str) -> IndexerStatus | None:
        stmt = (
            select(IndexerStatus)
            .where(IndexerStatus.contract_address == contract_address.lower())
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_monotonic(
        self,
        contract_address: str,
        last_processed_block: int,
        is_active: bool = True,
    ) -> IndexerStatus:
        """
        Advance the checkpoint of a contract.

        The stored block never decreases: a lower value (e.g. from a
        backfill over an old range) leaves it unchanged.

        Args:
            contract_address: Tracked contract
            last_processed_block: Last block fully persisted
            is_active: Whether the contract is still tracked

        Returns:
            Updated status row
        """
        status = await self._get_for_update(contract_address)
        if status is None:
            status = IndexerStatus(
                contract_address=contract_address.lower(),
                last_processed_block=last_processed_block,
                is_active=is_active,
            )
            self.session.add(status)
        else:
            status.last_processed_block = max(
                status.last_processed_block, last_processed_block
            )
            status.is_active = is_active
            status.last_error = None

        await self.session.flush()
        return status

    async def record_error(
        self,
        contract_address: str,
        error: str,
        last_processed_block: int,
    ) -> IndexerStatus:
        """
        Record an error against a contract.

        Args:
            contract_address: Tracked contract
            error: Error description
            last_processed_block: Current checkpoint, used only when the
                row does not exist yet

        Returns:
            Updated status row
        """
        status = await self._get_for_update(contract_address)
        if status is None:
            status = IndexerStatus(
                contract_address=contract_address.lower(),
                last_processed_block=last_processed_block,
                is_active=True,
                error_count=0,
            )
            self.session.add(status)

        status.last_error = error[:2000]
        status.error_count = (status.error_count or 0) + 1
        await self.session.flush()
        return status
