"""
Event store.

Facade over the repositories. Writes happen inside a unit of work that
maps to one database transaction; the sync engine opens one per batch
so events, domain rows and the checkpoint commit together or not at all.
"""

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from budget_indexer.config.constants import DEFAULT_PAGE_LIMIT
from budget_indexer.config.settings import settings
from budget_indexer.models import (
    Bucket,
    IndexedEventRecord,
    IndexerStatus,
    SpendingRecord,
    Transfer,
    WalletRegistryEntry,
    Withdrawal,
)
from budget_indexer.repositories import (
    BucketRepository,
    EventRepository,
    IndexerStatusRepository,
    SpendingRepository,
    TransferRepository,
    WalletRepository,
    WithdrawalRepository,
)
from budget_indexer.services.blockchain.event_decoder import IndexedEvent
from budget_indexer.utils.exceptions import PersistenceError
from budget_indexer.utils.security import mask_address


class UnitOfWork:
    """Repositories sharing one session and transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.events = EventRepository(session)
        self.wallets = WalletRepository(session)
        self.buckets = BucketRepository(session)
        self.spending = SpendingRepository(session)
        self.transfers = TransferRepository(session)
        self.withdrawals = WithdrawalRepository(session)
        self.status = IndexerStatusRepository(session)

    async def insert_events(self, events: Iterable[IndexedEvent]) -> int:
        """Insert decoded events, skipping ones already stored."""
        return await self.events.insert_many([e.to_row() for e in events])

    async def advance_checkpoints(
        self, contract_addresses: Iterable[str], block_number: int
    ) -> None:
        """Advance the checkpoint of every tracked contract."""
        for address in contract_addresses:
            await self.status.upsert_monotonic(address, block_number, is_active=True)


class EventStore:
    """
    Durable store for indexed events and derived tables.

    Example:
        store = EventStore(async_session_maker)
        async with store.unit_of_work() as uow:
            await uow.insert_events(events)
            await uow.advance_checkpoints(contracts, to_block)
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        """
        Initialize event store.

        Args:
            session_maker: Session factory bound to the indexer database
        """
        self._session_maker = session_maker

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[UnitOfWork]:
        """
        Open a transaction.

        Commits when the block exits cleanly and rolls back otherwise.

        Raises:
            PersistenceError: If the database rejects the work
        """
        async with self._session_maker() as session:
            try:
                async with session.begin():
                    yield UnitOfWork(session)
            except SQLAlchemyError as e:
                logger.error(f"[Store] Transaction rolled back: {e}")
                raise PersistenceError(str(e)) from e

    @asynccontextmanager
    async def _reader(self) -> AsyncIterator[UnitOfWork]:
        async with self._session_maker() as session:
            try:
                yield UnitOfWork(session)
            except SQLAlchemyError as e:
                raise PersistenceError(str(e)) from e

    # ====================================================================
    # WRITES
    # ====================================================================

    async def insert_event(self, event: IndexedEvent) -> bool:
        """Insert one event. Returns False if it was already stored."""
        async with self.unit_of_work() as uow:
            return await uow.events.insert(event.to_row())

    async def insert_events_batch(self, events: list[IndexedEvent]) -> int:
        """
        Insert events in a single transaction.

        Either every new event is stored or none is.

        Returns:
            Number of events that were not stored before
        """
        if not events:
            return 0
        async with self.unit_of_work() as uow:
            inserted = await uow.insert_events(events)
        logger.debug(f"[Store] Inserted {inserted}/{len(events)} events")
        return inserted

    async def insert_wallet(self, values: dict[str, Any]) -> bool:
        """Register a wallet; an existing wallet is left untouched."""
        async with self.unit_of_work() as uow:
            inserted = await uow.wallets.insert(values)
        if inserted:
            logger.info(
                f"[Store] Wallet registered: "
                f"{mask_address(values['wallet_address'])}"
            )
        return inserted

    async def insert_bucket(self, values: dict[str, Any]) -> bool:
        """Insert or update a bucket."""
        async with self.unit_of_work() as uow:
            return await uow.buckets.upsert(values)

    async def insert_spending(self, values: dict[str, Any]) -> bool:
        async with self.unit_of_work() as uow:
            return await uow.spending.insert(values)

    async def insert_transfer(self, values: dict[str, Any]) -> bool:
        async with self.unit_of_work() as uow:
            return await uow.transfers.insert(values)

    async def insert_withdrawal(self, values: dict[str, Any]) -> bool:
        async with self.unit_of_work() as uow:
            return await uow.withdrawals.insert(values)

    async def update_indexer_status(
        self,
        contract_address: str,
        last_processed_block: int,
        is_active: bool = True,
    ) -> int:
        """
        Advance a contract's checkpoint.

        Returns:
            Stored checkpoint, which never decreases
        """
        async with self.unit_of_work() as uow:
            status = await uow.status.upsert_monotonic(
                contract_address, last_processed_block, is_active
            )
            return status.last_processed_block

    async def record_indexer_error(
        self,
        contract_address: str,
        error: str,
        last_processed_block: int | None = None,
    ) -> None:
        """
        Record an error against a contract's status row.

        last_processed_block seeds the row when the contract has no status
        yet; it defaults to the block before the configured start block.
        """
        if last_processed_block is None:
            last_processed_block = settings.start_block - 1
        async with self.unit_of_work() as uow:
            await uow.status.record_error(
                contract_address, error, last_processed_block
            )

    # ====================================================================
    # READS
    # ====================================================================

    async def get_indexer_status(
        self, contract_address: str
    ) -> IndexerStatus | None:
        async with self._reader() as uow:
            return await uow.status.get_status(contract_address)

    async def get_all_wallet_addresses(self) -> list[str]:
        async with self._reader() as uow:
            return await uow.wallets.get_all_addresses()

    async def get_wallets_by_user(
        self, user_address: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> list[WalletRegistryEntry]:
        async with self._reader() as uow:
            return await uow.wallets.get_by_user(user_address, limit, offset)

    async def get_buckets_by_wallet(
        self, wallet_address: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> list[Bucket]:
        async with self._reader() as uow:
            return await uow.buckets.get_by_wallet(wallet_address, limit, offset)

    async def get_spending_by_wallet(
        self, wallet_address: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> list[SpendingRecord]:
        async with self._reader() as uow:
            return await uow.spending.get_by_wallet(wallet_address, limit, offset)

    async def get_transfers_by_wallet(
        self, wallet_address: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> list[Transfer]:
        async with self._reader() as uow:
            return await uow.transfers.get_by_wallet(wallet_address, limit, offset)

    async def get_transfers_by_type(
        self, transfer_type: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> list[Transfer]:
        async with self._reader() as uow:
            return await uow.transfers.get_by_type(transfer_type, limit, offset)

    async def get_transfers_by_token(
        self, token_address: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> list[Transfer]:
        async with self._reader() as uow:
            return await uow.transfers.get_by_token(token_address, limit, offset)

    async def get_withdrawals_by_wallet(
        self, wallet_address: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> list[Withdrawal]:
        async with self._reader() as uow:
            return await uow.withdrawals.get_by_wallet(wallet_address, limit, offset)

    async def get_withdrawals_by_user(
        self, user_address: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> list[Withdrawal]:
        async with self._reader() as uow:
            return await uow.withdrawals.get_by_user(user_address, limit, offset)

    async def get_withdrawals_by_type(
        self, withdrawal_type: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> list[Withdrawal]:
        async with self._reader() as uow:
            return await uow.withdrawals.get_by_type(withdrawal_type, limit, offset)

    async def get_events(self, **filters: Any) -> list[IndexedEventRecord]:
        """
        Get stored events, newest first.

        Accepts the filters of EventRepository.get_events (contract_address,
        event_name, block_number, transaction_hash, from_block, to_block,
        limit, offset).
        """
        async with self._reader() as uow:
            return await uow.events.get_events(**filters)

    async def count_events(self, **filters: Any) -> int:
        async with self._reader() as uow:
            return await uow.events.count(**filters)
