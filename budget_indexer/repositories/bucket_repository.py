"""
Bucket repository.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from budget_indexer.config.constants import DEFAULT_PAGE_LIMIT
from budget_indexer.models.bucket import Bucket
from budget_indexer.repositories.base import BaseRepository

# Columns an update event may change; provenance columns are insert-only
MUTABLE_COLUMNS = ("name", "monthly_limit", "token_address", "active")


class BucketRepository(BaseRepository[Bucket]):
    """Repository for budget buckets."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Bucket, session)

    async def upsert(self, values: dict[str, Any]) -> bool:
        """
        Insert a bucket or update its mutable fields.

        The update only applies when the incoming event is at or after the
        position of the event that last wrote the row, so replaying an
        older range never rolls a bucket back.

        Args:
            values: Full bucket row, including last_updated_block and
                last_updated_log_index of the source event

        Returns:
            True if a row was inserted or updated
        """
        stmt = self._insert().values(**values)
        excluded = stmt.excluded
        set_ = {column: excluded[column] for column in MUTABLE_COLUMNS}
        set_["last_updated_block"] = excluded.last_updated_block
        set_["last_updated_log_index"] = excluded.last_updated_log_index
        set_["updated_at"] = datetime.now(UTC)

        stmt = stmt.on_conflict_do_update(
            index_elements=["wallet_address", "bucket_id"],
            set_=set_,
            where=or_(
                Bucket.last_updated_block < excluded.last_updated_block,
                and_(
                    Bucket.last_updated_block == excluded.last_updated_block,
                    Bucket.last_updated_log_index
                    <= excluded.last_updated_log_index,
                ),
            ),
        ).returning(Bucket.id)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_by_wallet(
        self,
        wallet_address: str,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> list[Bucket]:
        """Get buckets of a wallet, most recently created first."""
        return await self.find_page(
            Bucket.wallet_address == wallet_address.lower(),
            order_by=(Bucket.created_block.desc(), Bucket.id.desc()),
            limit=limit,
            offset=offset,
        )
