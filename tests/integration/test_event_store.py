"""
Integration tests for the event store.

Runs against an in-memory SQLite database.
"""

from datetime import UTC, datetime

import pytest

from budget_indexer.models.enums import ContractRole
from budget_indexer.services.blockchain.event_decoder import EventDecoder
from budget_indexer.utils.bucket_id import derive_bucket_id
from budget_indexer.utils.exceptions import PersistenceError
from tests.factories import FACTORY, OTHER_WALLET, OUTSIDER, TEMPLATE, TOKEN, USER, WALLET

decoder = EventDecoder()


def _transfers(log_factory, count: int, block: int = 103):
    events = [
        decoder.decode(
            log_factory.transfer(OUTSIDER, WALLET, 100 + i, block=block, log_index=i),
            ContractRole.TOKEN,
        )
        for i in range(count)
    ]
    for event in events:
        event.timestamp = datetime(2026, 1, 1, tzinfo=UTC)
    return events


def _wallet_row(wallet: str = WALLET, block: int = 101, tx_hash: str = "0x" + "aa" * 32):
    return {
        "wallet_address": wallet,
        "user_address": USER,
        "template_address": TEMPLATE,
        "factory_address": FACTORY,
        "deployment_block": block,
        "deployment_tx_hash": tx_hash,
    }


def _bucket_row(name: str, limit: int, active: bool, block: int, log_index: int):
    return {
        "wallet_address": WALLET,
        "bucket_id": derive_bucket_id(name),
        "name": name,
        "monthly_limit": limit,
        "token_address": TOKEN,
        "active": active,
        "created_block": block,
        "created_tx_hash": f"0x{block:064x}",
        "last_updated_block": block,
        "last_updated_log_index": log_index,
    }


class TestEvents:
    """Tests for event insertion."""

    @pytest.mark.asyncio
    async def test_batch_insert_is_idempotent(self, store, log_factory):
        events = _transfers(log_factory, 3)

        assert await store.insert_events_batch(events) == 3
        assert await store.insert_events_batch(events) == 0
        assert await store.count_events() == 3

    @pytest.mark.asyncio
    async def test_single_insert_reports_duplicates(self, store, log_factory):
        (event,) = _transfers(log_factory, 1)

        assert await store.insert_event(event) is True
        assert await store.insert_event(event) is False

    @pytest.mark.asyncio
    async def test_empty_batch(self, store):
        assert await store.insert_events_batch([]) == 0

    @pytest.mark.asyncio
    async def test_stored_args_keep_large_integers(self, store, log_factory):
        event = decoder.decode(
            log_factory.transfer(OUTSIDER, WALLET, 2**255), ContractRole.TOKEN
        )
        await store.insert_event(event)

        (record,) = await store.get_events(event_name="Transfer")

        assert int(record.args["value"]) == 2**255
        assert record.args["to_address"] == WALLET
        assert record.processed is False

    @pytest.mark.asyncio
    async def test_get_events_filters_and_order(self, store, log_factory):
        await store.insert_events_batch(
            _transfers(log_factory, 2, block=103) + _transfers(log_factory, 2, block=107)
        )

        newest_first = await store.get_events()
        in_range = await store.get_events(from_block=104, to_block=110)
        page = await store.get_events(limit=1, offset=1)

        assert [(e.block_number, e.log_index) for e in newest_first] == [
            (107, 1),
            (107, 0),
            (103, 1),
            (103, 0),
        ]
        assert {e.block_number for e in in_range} == {107}
        assert [(e.block_number, e.log_index) for e in page] == [(107, 0)]
        assert await store.get_events(contract_address=FACTORY) == []


class TestUnitOfWork:
    """Tests for transaction boundaries."""

    @pytest.mark.asyncio
    async def test_error_rolls_back_everything(self, store, log_factory):
        events = _transfers(log_factory, 2)

        with pytest.raises(RuntimeError):
            async with store.unit_of_work() as uow:
                await uow.insert_events(events)
                await uow.advance_checkpoints([FACTORY, TOKEN], 103)
                raise RuntimeError("crash before commit")

        assert await store.count_events() == 0
        assert await store.get_indexer_status(TOKEN) is None

    @pytest.mark.asyncio
    async def test_database_error_becomes_persistence_error(self, store):
        incomplete = {"wallet_address": WALLET}

        with pytest.raises(PersistenceError):
            await store.insert_wallet(incomplete)

    @pytest.mark.asyncio
    async def test_commit_is_atomic_with_checkpoint(self, store, log_factory):
        async with store.unit_of_work() as uow:
            await uow.insert_events(_transfers(log_factory, 2))
            await uow.advance_checkpoints([FACTORY, TOKEN], 103)

        assert await store.count_events() == 2
        assert (await store.get_indexer_status(FACTORY)).last_processed_block == 103
        assert (await store.get_indexer_status(TOKEN)).last_processed_block == 103


class TestIndexerStatus:
    """Tests for checkpoints."""

    @pytest.mark.asyncio
    async def test_checkpoint_never_decreases(self, store):
        assert await store.update_indexer_status(TOKEN, 200) == 200
        assert await store.update_indexer_status(TOKEN, 150) == 200
        assert await store.update_indexer_status(TOKEN, 250) == 250

    @pytest.mark.asyncio
    async def test_address_is_case_insensitive(self, store):
        await store.update_indexer_status(TOKEN.upper().replace("0X", "0x"), 10)

        assert (await store.get_indexer_status(TOKEN)).last_processed_block == 10

    @pytest.mark.asyncio
    async def test_record_error(self, store):
        await store.update_indexer_status(TOKEN, 120)

        await store.record_indexer_error(TOKEN, "blocks 121-125 failed", 120)
        await store.record_indexer_error(TOKEN, "blocks 121-125 failed again", 120)

        status = await store.get_indexer_status(TOKEN)
        assert status.error_count == 2
        assert status.last_error == "blocks 121-125 failed again"
        assert status.last_processed_block == 120

    @pytest.mark.asyncio
    async def test_progress_clears_last_error(self, store):
        await store.record_indexer_error(FACTORY, "rpc down", 99)

        await store.update_indexer_status(FACTORY, 130)

        status = await store.get_indexer_status(FACTORY)
        assert status.last_error is None
        assert status.error_count == 1


class TestWallets:
    """Tests for the wallet registry table."""

    @pytest.mark.asyncio
    async def test_first_registration_wins(self, store):
        assert await store.insert_wallet(_wallet_row(block=101)) is True
        assert await store.insert_wallet(_wallet_row(block=500)) is False

        (wallet,) = await store.get_wallets_by_user(USER)
        assert wallet.deployment_block == 101

    @pytest.mark.asyncio
    async def test_get_all_wallet_addresses(self, store):
        await store.insert_wallet(_wallet_row(WALLET))
        await store.insert_wallet(_wallet_row(OTHER_WALLET, tx_hash="0x" + "bb" * 32))

        assert set(await store.get_all_wallet_addresses()) == {WALLET, OTHER_WALLET}


class TestBuckets:
    """Tests for bucket upserts."""

    @pytest.mark.asyncio
    async def test_update_keeps_provenance(self, store):
        await store.insert_bucket(_bucket_row("Rent", 1000, True, block=102, log_index=0))
        await store.insert_bucket(_bucket_row("Rent", 1500, False, block=105, log_index=2))

        (bucket,) = await store.get_buckets_by_wallet(WALLET)
        assert bucket.monthly_limit == 1500
        assert bucket.active is False
        assert bucket.created_block == 102
        assert bucket.created_tx_hash == f"0x{102:064x}"
        assert bucket.last_updated_block == 105

    @pytest.mark.asyncio
    async def test_older_event_does_not_overwrite(self, store):
        await store.insert_bucket(_bucket_row("Rent", 1500, False, block=105, log_index=2))

        applied = await store.insert_bucket(
            _bucket_row("Rent", 1000, True, block=102, log_index=0)
        )

        (bucket,) = await store.get_buckets_by_wallet(WALLET)
        assert applied is False
        assert bucket.monthly_limit == 1500
        assert bucket.active is False

    @pytest.mark.asyncio
    async def test_large_values_round_trip(self, store):
        await store.insert_bucket(_bucket_row("Savings", 2**200, True, block=102, log_index=0))

        (bucket,) = await store.get_buckets_by_wallet(WALLET)
        assert bucket.monthly_limit == 2**200
        assert bucket.bucket_id == derive_bucket_id("Savings")


class TestDerivedRows:
    """Tests for spending, transfer and withdrawal rows."""

    @pytest.mark.asyncio
    async def test_transfer_dedup_and_queries(self, store):
        row = {
            "token_address": TOKEN,
            "from_address": OUTSIDER,
            "to_address": WALLET,
            "amount": 10**18,
            "transfer_type": "deposit",
            "wallet_address": WALLET,
            "from_bucket_id": None,
            "to_bucket_id": None,
            "block_number": 103,
            "transaction_hash": "0x" + "cc" * 32,
            "log_index": 4,
            "timestamp": None,
        }

        assert await store.insert_transfer(row) is True
        assert await store.insert_transfer(row) is False

        assert len(await store.get_transfers_by_wallet(WALLET)) == 1
        assert len(await store.get_transfers_by_type("deposit")) == 1
        assert len(await store.get_transfers_by_token(TOKEN)) == 1
        assert await store.get_transfers_by_type("withdrawal") == []

    @pytest.mark.asyncio
    async def test_spending_and_withdrawals(self, store):
        spending = {
            "wallet_address": WALLET,
            "bucket_id": derive_bucket_id("Rent"),
            "bucket_name": "Rent",
            "amount": 250,
            "recipient": OUTSIDER,
            "token_address": TOKEN,
            "block_number": 104,
            "transaction_hash": "0x" + "dd" * 32,
            "log_index": 0,
            "timestamp": None,
        }
        withdrawal = {
            "wallet_address": WALLET,
            "user_address": USER,
            "recipient": USER,
            "token_address": TOKEN,
            "amount": 42,
            "withdrawal_type": "emergency",
            "block_number": 106,
            "transaction_hash": "0x" + "ee" * 32,
            "log_index": 1,
            "timestamp": None,
        }

        assert await store.insert_spending(spending) is True
        assert await store.insert_withdrawal(withdrawal) is True
        assert await store.insert_withdrawal(withdrawal) is False

        (record,) = await store.get_spending_by_wallet(WALLET)
        assert record.amount == 250
        assert len(await store.get_withdrawals_by_user(USER)) == 1
        assert len(await store.get_withdrawals_by_wallet(WALLET)) == 1
        assert len(await store.get_withdrawals_by_type("emergency")) == 1
