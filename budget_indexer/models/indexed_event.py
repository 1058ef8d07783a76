"""
Indexed event model.

Generic append-only log of every decoded contract event.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from budget_indexer.models.base import Base
from budget_indexer.models.types import PayloadType


class IndexedEventRecord(Base):
    """
    One decoded log.

    Rows are immutable once written except for the processed flag,
    which is set after the business side effect succeeded.
    (transaction_hash, log_index) identifies a log on chain, so replaying
    a block range never adds rows.
    """

    __tablename__ = "events"
    __table_args__ = (
        UniqueConstraint(
            "transaction_hash", "log_index", name="uq_events_tx_log"
        ),
        Index("ix_events_block_log", "block_number", "log_index"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    contract_address: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )
    event_name: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )

    # Chain position
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    block_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    transaction_hash: Mapped[str] = mapped_column(
        String(66), nullable=False, index=True
    )
    transaction_index: Mapped[int] = mapped_column(Integer, nullable=False)
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)

    # Decoded arguments (integers stored as decimal strings)
    args: Mapped[dict[str, Any]] = mapped_column(PayloadType, nullable=False)

    timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    processed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<IndexedEventRecord({self.event_name} "
            f"block={self.block_number} log={self.log_index})>"
        )
