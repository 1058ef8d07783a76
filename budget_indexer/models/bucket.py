"""
Bucket model.

Budget buckets keyed by (wallet, bucket id).
"""

from datetime import UTC, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from budget_indexer.models.base import Base
from budget_indexer.models.types import UintType


class Bucket(Base):
    """
    Budget bucket inside a wallet.

    Name, limit, token and active flag follow the latest event.
    created_block and created_tx_hash keep the first event's provenance.
    last_updated_block and last_updated_log_index guard against replayed
    older events.

    Attributes:
        wallet_address: Owning budget wallet
        bucket_id: Id derived from the bucket name
        name: Bucket name as emitted on chain
        monthly_limit: Limit in token base units
        token_address: Token the bucket is denominated in
        active: Whether the bucket accepts spending
    """

    __tablename__ = "buckets"
    __table_args__ = (
        UniqueConstraint(
            "wallet_address", "bucket_id", name="uq_buckets_wallet_bucket"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    wallet_address: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )
    bucket_id: Mapped[int] = mapped_column(UintType, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    monthly_limit: Mapped[int] = mapped_column(UintType, nullable=False)
    token_address: Mapped[str] = mapped_column(String(42), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Provenance
    created_block: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_tx_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    last_updated_block: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_updated_log_index: Mapped[int] = mapped_column(
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
            f"<Bucket(wallet={self.wallet_address}, name={self.name!r}, "
            f"limit={self.monthly_limit}, active={self.active})>"
        )
