"""
Business-event processor.

Applies the domain side effect of each decoded event inside the batch's
unit of work. Every event runs in its own savepoint: a failing side
effect is rolled back and logged without touching the rest of the batch.
"""

from collections.abc import Awaitable, Callable

from loguru import logger

from budget_indexer.models.enums import EventName, TransferType, WithdrawalType
from budget_indexer.services.blockchain.event_decoder import (
    BucketCreated,
    BucketUpdated,
    EmergencyWithdraw,
    IndexedEvent,
    SpentFromBucket,
    TokenTransfer,
    UnallocatedWithdraw,
)
from budget_indexer.services.event_store import UnitOfWork
from budget_indexer.services.transfer_classifier import classify_transfer
from budget_indexer.services.wallet_registry import KnownWalletRegistry
from budget_indexer.utils.bucket_id import derive_bucket_id
from budget_indexer.utils.exceptions import EventProcessingError
from budget_indexer.utils.security import mask_address, mask_tx_hash

Handler = Callable[[IndexedEvent, UnitOfWork], Awaitable[None]]

# Decoded and kept in the events table, no derived rows
STORE_ONLY_EVENTS = frozenset(
    {
        EventName.OWNERSHIP_TRANSFERRED,
        EventName.BUCKET_FUNDED,
        EventName.BUCKET_TRANSFER,
        EventName.FUNDS_DEPOSITED,
        EventName.MONTHLY_LIMIT_RESET,
        EventName.DELEGATE_ADDED,
        EventName.DELEGATE_REMOVED,
        EventName.ROLE_GRANTED,
        EventName.ROLE_REVOKED,
        EventName.APPROVAL,
    }
)


def order_for_processing(events: list[IndexedEvent]) -> list[IndexedEvent]:
    """
    Order a batch for processing.

    Wallet registrations go first so that transfers and wallet events of
    the same batch see the wallet as known; everything else follows
    chain order (block, transaction index, log index).
    """
    return sorted(events, key=lambda e: (not e.is_registration, e.position))


class EventProcessor:
    """
    Routes events to their side effects.

    Handles:
    - Wallet registration (registry and wallet_registry row)
    - Bucket creation and updates
    - Spending records
    - Token transfer classification
    - Unallocated and emergency withdrawals
    """

    def __init__(
        self,
        registry: KnownWalletRegistry,
        token_address: str,
        template_address: str,
    ) -> None:
        """
        Initialize processor.

        Args:
            registry: Known wallets, grown as registrations are processed
            token_address: Tracked token, used for buckets created without one
            template_address: Budget wallet implementation the factory clones
        """
        self.registry = registry
        self.token_address = token_address.lower()
        self.template_address = template_address.lower()
        self._handlers: dict[EventName, Handler] = {
            EventName.WALLET_CREATED: self._handle_wallet_registration,
            EventName.WALLET_REGISTERED: self._handle_wallet_registration,
            EventName.BUCKET_CREATED: self._handle_bucket_created,
            EventName.BUCKET_UPDATED: self._handle_bucket_updated,
            EventName.SPENT_FROM_BUCKET: self._handle_spending,
            EventName.TRANSFER: self._handle_transfer,
            EventName.UNALLOCATED_WITHDRAW: self._handle_unallocated_withdraw,
            EventName.EMERGENCY_WITHDRAW: self._handle_emergency_withdraw,
        }

    @property
    def handled_events(self) -> frozenset[EventName]:
        return frozenset(self._handlers)

    async def process(self, event: IndexedEvent, uow: UnitOfWork) -> bool:
        """
        Apply one event's side effect and mark it processed.

        Args:
            event: Decoded event, already inserted into the events table
            uow: Batch unit of work

        Returns:
            True on success, False if the side effect failed
        """
        handler = self._handlers.get(event.event_name)
        try:
            async with uow.session.begin_nested():
                if handler is not None:
                    await handler(event, uow)
                await uow.events.mark_processed(
                    event.transaction_hash, event.log_index
                )
        except Exception as e:
            logger.error(
                f"[Processor] {event.event_name} at block {event.block_number} "
                f"({mask_tx_hash(event.transaction_hash)}#{event.log_index}) "
                f"failed: {e}"
            )
            return False

        event.processed = True
        if event.is_registration:
            self.registry.add(event.payload.wallet)
        return True

    async def process_batch(
        self, events: list[IndexedEvent], uow: UnitOfWork
    ) -> dict[str, int]:
        """
        Process a batch in registration-first, then chain order.

        Returns:
            Dict with processed and failed counts
        """
        stats = {"processed": 0, "failed": 0}
        for event in order_for_processing(events):
            if await self.process(event, uow):
                stats["processed"] += 1
            else:
                stats["failed"] += 1
        return stats

    # ====================================================================
    # HANDLERS
    # ====================================================================

    async def _handle_wallet_registration(
        self, event: IndexedEvent, uow: UnitOfWork
    ) -> None:
        payload = event.payload
        inserted = await uow.wallets.insert(
            {
                "wallet_address": payload.wallet,
                "user_address": payload.user,
                "template_address": self.template_address,
                "factory_address": event.contract_address,
                "deployment_block": event.block_number,
                "deployment_tx_hash": event.transaction_hash,
            }
        )
        if inserted:
            logger.info(
                f"[Processor] New wallet {mask_address(payload.wallet)} "
                f"for user {mask_address(payload.user)} "
                f"at block {event.block_number}"
            )

    def _bucket_row(
        self, event: IndexedEvent, name: str, limit: int, active: bool
    ) -> dict:
        return {
            "wallet_address": event.contract_address,
            "bucket_id": derive_bucket_id(name),
            "name": name,
            "monthly_limit": limit,
            "token_address": self.token_address,
            "active": active,
            "created_block": event.block_number,
            "created_tx_hash": event.transaction_hash,
            "last_updated_block": event.block_number,
            "last_updated_log_index": event.log_index,
        }

    async def _handle_bucket_created(
        self, event: IndexedEvent, uow: UnitOfWork
    ) -> None:
        payload: BucketCreated = event.payload
        await uow.buckets.upsert(
            self._bucket_row(event, payload.bucket_name, payload.monthly_limit, True)
        )

    async def _handle_bucket_updated(
        self, event: IndexedEvent, uow: UnitOfWork
    ) -> None:
        payload: BucketUpdated = event.payload
        await uow.buckets.upsert(
            self._bucket_row(
                event, payload.bucket_name, payload.new_limit, payload.active
            )
        )

    async def _handle_spending(self, event: IndexedEvent, uow: UnitOfWork) -> None:
        payload: SpentFromBucket = event.payload
        await uow.spending.insert(
            {
                "wallet_address": event.contract_address,
                "bucket_id": derive_bucket_id(payload.bucket_name),
                "bucket_name": payload.bucket_name,
                "amount": payload.amount,
                "recipient": payload.recipient,
                "token_address": payload.token,
                "block_number": event.block_number,
                "transaction_hash": event.transaction_hash,
                "log_index": event.log_index,
                "timestamp": event.timestamp,
            }
        )

    async def _handle_transfer(self, event: IndexedEvent, uow: UnitOfWork) -> None:
        payload: TokenTransfer = event.payload
        classification = classify_transfer(
            payload.from_address, payload.to_address, self.registry
        )
        if classification.transfer_type == TransferType.EXTERNAL:
            return

        await uow.transfers.insert(
            {
                "token_address": event.contract_address,
                "from_address": payload.from_address,
                "to_address": payload.to_address,
                "amount": payload.value,
                "transfer_type": str(classification.transfer_type),
                "wallet_address": classification.wallet_address,
                "from_bucket_id": classification.from_bucket_id,
                "to_bucket_id": classification.to_bucket_id,
                "block_number": event.block_number,
                "transaction_hash": event.transaction_hash,
                "log_index": event.log_index,
                "timestamp": event.timestamp,
            }
        )
        logger.debug(
            f"[Processor] {classification.transfer_type} of {payload.value} "
            f"for {mask_address(classification.wallet_address)}"
        )

    async def _insert_withdrawal(
        self,
        event: IndexedEvent,
        uow: UnitOfWork,
        withdrawal_type: WithdrawalType,
        recipient: str,
    ) -> None:
        payload = event.payload
        if not self.registry.contains(event.contract_address):
            raise EventProcessingError(
                f"Withdrawal from unknown wallet {mask_address(event.contract_address)}"
            )
        await uow.withdrawals.insert(
            {
                "wallet_address": event.contract_address,
                "user_address": payload.user,
                "recipient": recipient,
                "token_address": payload.token,
                "amount": payload.amount,
                "withdrawal_type": str(withdrawal_type),
                "block_number": event.block_number,
                "transaction_hash": event.transaction_hash,
                "log_index": event.log_index,
                "timestamp": event.timestamp,
            }
        )

    async def _handle_unallocated_withdraw(
        self, event: IndexedEvent, uow: UnitOfWork
    ) -> None:
        payload: UnallocatedWithdraw = event.payload
        await self._insert_withdrawal(
            event, uow, WithdrawalType.UNALLOCATED, payload.recipient
        )

    async def _handle_emergency_withdraw(
        self, event: IndexedEvent, uow: UnitOfWork
    ) -> None:
        # Emergency withdrawals always pay out to the wallet owner
        payload: EmergencyWithdraw = event.payload
        await self._insert_withdrawal(
            event, uow, WithdrawalType.EMERGENCY, payload.user
        )
