"""
Repositories.

Data access classes, one per table.
"""

from budget_indexer.repositories.base import BaseRepository
from budget_indexer.repositories.bucket_repository import BucketRepository
from budget_indexer.repositories.event_repository import EventRepository
from budget_indexer.repositories.indexer_status_repository import (
    IndexerStatusRepository,
)
from budget_indexer.repositories.spending_repository import SpendingRepository
from budget_indexer.repositories.transfer_repository import TransferRepository
from budget_indexer.repositories.wallet_repository import WalletRepository
from budget_indexer.repositories.withdrawal_repository import (
    WithdrawalRepository,
)

__all__ = [
    "BaseRepository",
    "BucketRepository",
    "EventRepository",
    "IndexerStatusRepository",
    "SpendingRepository",
    "TransferRepository",
    "WalletRepository",
    "WithdrawalRepository",
]
