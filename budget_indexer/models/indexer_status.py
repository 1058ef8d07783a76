"""
Indexer status model.

Per-contract checkpoint used to resume syncing after a restart.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from budget_indexer.models.base import Base


class IndexerStatus(Base):
    """
    Tracks indexing progress per contract.

    Used to:
    - Resume sync after restart
    - Report progress on the health server
    - Record ranges that keep failing
    """

    __tablename__ = "indexer_status"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    contract_address: Mapped[str] = mapped_column(
        String(42), nullable=False, unique=True, index=True
    )
    last_processed_block: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    # Error tracking
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<IndexerStatus(contract={self.contract_address}, "
            f"block={self.last_processed_block}, active={self.is_active})>"
        )
