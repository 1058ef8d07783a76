"""
Wallet registry model.

One row per budget wallet deployed or registered through the factory.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from budget_indexer.models.base import Base


class WalletRegistryEntry(Base):
    """Known budget wallet. Insert-only."""

    __tablename__ = "wallet_registry"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    wallet_address: Mapped[str] = mapped_column(
        String(42), nullable=False, unique=True, index=True
    )
    user_address: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )
    template_address: Mapped[str] = mapped_column(String(42), nullable=False)
    factory_address: Mapped[str] = mapped_column(String(42), nullable=False)

    deployment_block: Mapped[int] = mapped_column(BigInteger, nullable=False)
    deployment_tx_hash: Mapped[str] = mapped_column(String(66), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<WalletRegistryEntry(wallet={self.wallet_address}, "
            f"user={self.user_address})>"
        )
