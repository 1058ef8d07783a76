"""
Withdrawal model.
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


class Withdrawal(Base):
    """Unallocated or emergency withdrawal from a wallet. Append-only."""

    __tablename__ = "withdrawals"
    __table_args__ = (
        UniqueConstraint(
            "transaction_hash", "log_index", name="uq_withdrawals_tx_log"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    wallet_address: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )
    user_address: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )
    recipient: Mapped[str] = mapped_column(String(42), nullable=False)
    token_address: Mapped[str] = mapped_column(String(42), nullable=False)
    amount: Mapped[int] = mapped_column(UintType, nullable=False)
    withdrawal_type: Mapped[str] = mapped_column(
        String(20), nullable=False, index=True
    )  # unallocated, emergency

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
