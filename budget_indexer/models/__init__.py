"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from budget_indexer.models.base import Base
from budget_indexer.models.bucket import Bucket
from budget_indexer.models.enums import (
    ContractRole,
    EventName,
    TransferType,
    WithdrawalType,
)
from budget_indexer.models.indexed_event import IndexedEventRecord
from budget_indexer.models.indexer_status import IndexerStatus
from budget_indexer.models.spending_record import SpendingRecord
from budget_indexer.models.transfer import Transfer
from budget_indexer.models.wallet_registry import WalletRegistryEntry
from budget_indexer.models.withdrawal import Withdrawal

__all__ = [
    "Base",
    "Bucket",
    "ContractRole",
    "EventName",
    "IndexedEventRecord",
    "IndexerStatus",
    "SpendingRecord",
    "Transfer",
    "TransferType",
    "WalletRegistryEntry",
    "Withdrawal",
    "WithdrawalType",
]
