"""
Token transfer model.

Token Transfer logs that touch at least one known wallet.
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


class Transfer(Base):
    """
    Classified token transfer.

    transfer_type is one of deposit, withdrawal, bucket_transfer, external.
    wallet_address is the known wallet on the receiving side for deposits
    and on the sending side otherwise. Bucket ids stay null because token
    logs do not carry bucket information.
    """

    __tablename__ = "transfers"
    __table_args__ = (
        UniqueConstraint(
            "transaction_hash", "log_index", name="uq_transfers_tx_log"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    token_address: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )
    from_address: Mapped[str] = mapped_column(String(42), nullable=False)
    to_address: Mapped[str] = mapped_column(String(42), nullable=False)
    amount: Mapped[int] = mapped_column(UintType, nullable=False)
    transfer_type: Mapped[str] = mapped_column(
        String(20), nullable=False, index=True
    )

    wallet_address: Mapped[str | None] = mapped_column(
        String(42), nullable=True, index=True
    )
    from_bucket_id: Mapped[int | None] = mapped_column(UintType, nullable=True)
    to_bucket_id: Mapped[int | None] = mapped_column(UintType, nullable=True)

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

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Transfer({self.transfer_type} amount={self.amount} "
            f"block={self.block_number})>"
        )
