"""
Spending record model.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from budget_indexer.models.base import Base
from budget_indexer.models.types import UintType


class SpendingRecord(Base):
    """One spend from a bucket. Append-only."""

    __tablename__ = "spending_records"
    __table_args__ = (
        UniqueConstraint(
            "transaction_hash", "log_index", name="uq_spending_tx_log"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    wallet_address: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )
    bucket_id: Mapped[int] = mapped_column(UintType, nullable=False)
    bucket_name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[int] = mapped_column(UintType, nullable=False)
    recipient: Mapped[str] = mapped_column(String(42), nullable=False)
    token_address: Mapped[str] = mapped_column(String(42), nullable=False)

    block_number: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True
    )
    transaction_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
