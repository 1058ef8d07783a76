"""
Transfer classification.

Labels a token transfer by which of its sides are known budget wallets.
"""

from collections.abc import Container
from dataclasses import dataclass

from budget_indexer.models.enums import TransferType


@dataclass(frozen=True)
class TransferClassification:
    """Result of classifying one transfer."""

    transfer_type: TransferType
    wallet_address: str | None
    from_bucket_id: int | None = None
    to_bucket_id: int | None = None


def classify_transfer(
    from_address: str, to_address: str, known_wallets: Container[str]
) -> TransferClassification:
    """
    Classify a token transfer.

    Rules, first match wins:
    1. both sides known -> bucket_transfer
    2. only receiver known -> deposit
    3. only sender known -> withdrawal
    4. neither known -> external

    Token logs carry no bucket information, so bucket ids stay None.

    Args:
        from_address: Sender (lowercase)
        to_address: Receiver (lowercase)
        known_wallets: Membership test over known wallets

    Returns:
        Transfer type and the known wallet it belongs to
    """
    from_known = from_address in known_wallets
    to_known = to_address in known_wallets

    if from_known and to_known:
        return TransferClassification(TransferType.BUCKET_TRANSFER, from_address)
    if to_known:
        return TransferClassification(TransferType.DEPOSIT, to_address)
    if from_known:
        return TransferClassification(TransferType.WITHDRAWAL, from_address)
    return TransferClassification(TransferType.EXTERNAL, None)
