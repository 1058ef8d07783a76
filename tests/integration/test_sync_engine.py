"""
Integration tests for the sync engine.

The chain is an in-memory double; the store is a real SQLite database.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from hexbytes import HexBytes
from sqlalchemy.exc import OperationalError

from loguru import logger

from budget_indexer.models.enums import ContractRole, EventName
from budget_indexer.services.blockchain.abis import ERC20_ABI
from budget_indexer.services.event_store import UnitOfWork
from budget_indexer.services.sync_engine import EngineState, SyncEngine
from budget_indexer.utils.bucket_id import derive_bucket_id
from budget_indexer.utils.exceptions import PersistenceError, SyncEngineBusyError
from tests.factories import (
    FACTORY,
    OTHER_WALLET,
    OUTSIDER,
    TOKEN,
    USER,
    WALLET,
    FakeChainClient,
)


@pytest.fixture
def engine(fake_chain, store, engine_settings):
    return SyncEngine(fake_chain, store, config=engine_settings)


async def wait_until(predicate, timeout: float = 3.0) -> None:
    """Poll predicate until it holds."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


class TestInitialize:
    """Tests for checkpoint and registry loading."""

    @pytest.mark.asyncio
    async def test_fresh_store_starts_before_start_block(self, engine):
        assert await engine.initialize() == 99
        assert len(engine.registry) == 0

    @pytest.mark.asyncio
    async def test_resumes_from_lowest_checkpoint(self, engine, store):
        await store.update_indexer_status(FACTORY, 120)
        await store.update_indexer_status(TOKEN, 115)
        await store.insert_wallet(
            {
                "wallet_address": WALLET,
                "user_address": USER,
                "template_address": TOKEN,
                "factory_address": FACTORY,
                "deployment_block": 101,
                "deployment_tx_hash": "0x" + "aa" * 32,
            }
        )

        assert await engine.initialize() == 115
        assert WALLET in engine.registry


class TestManualSync:
    """End-to-end flows driven by manual_sync."""

    @pytest.mark.asyncio
    async def test_wallet_discovery_then_deposit(self, engine, store, fake_chain, log_factory):
        fake_chain.add(
            log_factory.wallet_created(WALLET, block=101),
            log_factory.transfer(OUTSIDER, WALLET, 500, block=107),
        )

        result = await engine.manual_sync(100, 110)

        assert result["events"] == 2
        assert result["failed"] == 0
        assert await store.get_all_wallet_addresses() == [WALLET]
        (transfer,) = await store.get_transfers_by_wallet(WALLET)
        assert transfer.transfer_type == "deposit"
        assert transfer.amount == 500
        assert transfer.timestamp is not None
        assert engine.checkpoint == 110
        assert (await store.get_indexer_status(TOKEN)).last_processed_block == 110

    @pytest.mark.asyncio
    async def test_deposit_before_creation_in_same_block(
        self, engine, store, fake_chain, log_factory
    ):
        fake_chain.add(
            log_factory.transfer(OUTSIDER, WALLET, 7, block=101, log_index=0),
            log_factory.wallet_created(WALLET, block=101, log_index=5),
        )

        await engine.manual_sync(100, 104)

        (transfer,) = await store.get_transfers_by_type("deposit")
        assert transfer.wallet_address == WALLET

    @pytest.mark.asyncio
    async def test_wallet_events_in_creation_batch(
        self, engine, store, fake_chain, log_factory
    ):
        fake_chain.add(
            log_factory.wallet_created(WALLET, block=101),
            log_factory.bucket_created(WALLET, "Rent", 1000, block=102),
            log_factory.spent(WALLET, "Rent", 250, block=104),
        )

        await engine.manual_sync(100, 104)

        (bucket,) = await store.get_buckets_by_wallet(WALLET)
        assert bucket.bucket_id == derive_bucket_id("Rent")
        assert bucket.token_address == TOKEN
        (spending,) = await store.get_spending_by_wallet(WALLET)
        assert spending.amount == 250
        assert spending.bucket_id == bucket.bucket_id

    @pytest.mark.asyncio
    async def test_unknown_wallet_logs_are_not_fetched(
        self, engine, store, fake_chain, log_factory
    ):
        fake_chain.add(log_factory.bucket_created(OTHER_WALLET, "Food", 1, block=102))

        result = await engine.manual_sync(100, 110)

        assert result["events"] == 0
        assert await store.get_buckets_by_wallet(OTHER_WALLET) == []

    @pytest.mark.asyncio
    async def test_transfer_between_known_wallets(
        self, engine, store, fake_chain, log_factory
    ):
        fake_chain.add(
            log_factory.wallet_created(WALLET, block=101),
            log_factory.wallet_created(OTHER_WALLET, block=101, log_index=1),
            log_factory.transfer(WALLET, OTHER_WALLET, 9, block=103),
            log_factory.transfer(OUTSIDER, USER, 9, block=103, log_index=1),
        )

        await engine.manual_sync(100, 104)

        (transfer,) = await store.get_transfers_by_token(TOKEN)
        assert transfer.transfer_type == "bucket_transfer"
        assert transfer.wallet_address == WALLET
        # External transfers are kept as events only
        assert await store.count_events(event_name="Transfer") == 2

    @pytest.mark.asyncio
    async def test_emergency_withdrawal_pays_owner(
        self, engine, store, fake_chain, log_factory
    ):
        fake_chain.add(
            log_factory.wallet_created(WALLET, block=101),
            log_factory.emergency_withdraw(WALLET, 42, block=106),
        )

        await engine.manual_sync(100, 110)

        (withdrawal,) = await store.get_withdrawals_by_wallet(WALLET)
        assert withdrawal.withdrawal_type == "emergency"
        assert withdrawal.recipient == USER
        assert withdrawal.amount == 42

    @pytest.mark.asyncio
    async def test_resync_is_a_no_op(self, engine, store, fake_chain, log_factory):
        fake_chain.add(
            log_factory.wallet_created(WALLET, block=101),
            log_factory.bucket_created(WALLET, "Rent", 1000, block=102),
            log_factory.transfer(OUTSIDER, WALLET, 500, block=103),
        )
        await engine.manual_sync(100, 110)

        again = await engine.manual_sync(100, 110)

        assert again["inserted"] == 0
        assert await store.count_events() == 3
        assert len(await store.get_transfers_by_wallet(WALLET)) == 1
        assert len(await store.get_buckets_by_wallet(WALLET)) == 1
        assert engine.checkpoint == 110

    @pytest.mark.asyncio
    async def test_replaying_old_range_keeps_bucket_state(
        self, engine, store, fake_chain, log_factory
    ):
        fake_chain.add(
            log_factory.wallet_created(WALLET, block=101),
            log_factory.bucket_created(WALLET, "Rent", 1000, block=102),
            log_factory.bucket_updated(WALLET, "Rent", 2000, False, block=106),
        )
        await engine.manual_sync(100, 110)

        await engine.manual_sync(100, 104)

        (bucket,) = await store.get_buckets_by_wallet(WALLET)
        assert bucket.monthly_limit == 2000
        assert bucket.active is False
        assert bucket.created_block == 102

    @pytest.mark.asyncio
    async def test_backfill_past_a_gap_keeps_checkpoint(
        self, engine, store, fake_chain, log_factory
    ):
        fake_chain.add(log_factory.transfer(OUTSIDER, WALLET, 1, block=107))

        await engine.manual_sync(105, 109)

        assert engine.checkpoint == 99
        assert await store.get_indexer_status(TOKEN) is None
        assert await store.count_events() == 1

    @pytest.mark.asyncio
    async def test_log_fetches_are_filtered_by_topic(
        self, engine, store, fake_chain, log_factory
    ):
        approval = log_factory.build(
            ERC20_ABI,
            "Approval",
            TOKEN,
            {"owner": OUTSIDER, "spender": WALLET, "value": 10},
            block=103,
        )
        fake_chain.add(
            log_factory.wallet_created(WALLET, block=101),
            log_factory.transfer(OUTSIDER, WALLET, 5, block=103, log_index=1),
            approval,
        )

        await engine.manual_sync(100, 104)

        topics_by_scope = {
            wanted: topics for wanted, _start, _end, topics in fake_chain.log_calls
        }
        decoder = engine.decoder
        assert topics_by_scope[frozenset({FACTORY.lower()})] == [
            decoder.known_topics(ContractRole.FACTORY)
        ]
        assert topics_by_scope[frozenset({WALLET.lower()})] == [
            decoder.known_topics(ContractRole.BUDGET_WALLET)
        ]
        assert topics_by_scope[frozenset({TOKEN.lower()})] == [
            [decoder.topic_for(ContractRole.TOKEN, EventName.TRANSFER)]
        ]
        assert await store.count_events(event_name="Approval") == 0
        assert await store.count_events(event_name="Transfer") == 1

    @pytest.mark.asyncio
    async def test_invalid_range(self, engine):
        with pytest.raises(ValueError):
            await engine.manual_sync(110, 100)


class TestFailures:
    """Batch atomicity and error isolation."""

    @pytest.mark.asyncio
    async def test_persistence_failure_leaves_nothing_behind(
        self, engine, store, fake_chain, log_factory, monkeypatch
    ):
        fake_chain.add(
            log_factory.wallet_created(WALLET, block=101),
            log_factory.transfer(OUTSIDER, WALLET, 500, block=103),
        )

        async def broken(self, contract_addresses, block_number):
            raise OperationalError("UPDATE indexer_status", {}, Exception("disk I/O error"))

        monkeypatch.setattr(UnitOfWork, "advance_checkpoints", broken)

        with pytest.raises(PersistenceError):
            await engine.manual_sync(100, 104)

        assert engine.checkpoint == 99
        assert await store.count_events() == 0
        assert await store.get_all_wallet_addresses() == []
        assert WALLET not in engine.registry
        assert engine.state == EngineState.IDLE

    @pytest.mark.asyncio
    async def test_failed_side_effect_does_not_abort_batch(
        self, engine, store, fake_chain, log_factory
    ):
        fake_chain.add(
            log_factory.wallet_created(WALLET, block=101),
            log_factory.transfer(OUTSIDER, WALLET, 500, block=103),
        )
        engine.processor._handlers[EventName.TRANSFER] = AsyncMock(
            side_effect=RuntimeError("classifier exploded")
        )

        result = await engine.manual_sync(100, 104)

        assert result["processed"] == 1
        assert result["failed"] == 1
        assert await store.get_all_wallet_addresses() == [WALLET]
        (event,) = await store.get_events(event_name="Transfer")
        assert event.processed is False
        assert engine.checkpoint == 104

    @pytest.mark.asyncio
    async def test_malformed_log_is_skipped(self, engine, store, fake_chain, log_factory):
        bad = log_factory.transfer(OUTSIDER, WALLET, 1, block=102)
        bad["data"] = HexBytes(b"\x01")
        fake_chain.add(bad, log_factory.wallet_created(WALLET, block=101))

        result = await engine.manual_sync(100, 104)

        assert result["events"] == 1
        assert engine.checkpoint == 104

    @pytest.mark.asyncio
    async def test_rpc_failure_keeps_checkpoint(self, engine, store, fake_chain):
        fake_chain.fail_blocks.add(102)

        with pytest.raises(Exception, match="eth_getLogs"):
            await engine.manual_sync(100, 104)

        assert engine.checkpoint == 99
        assert await store.get_indexer_status(FACTORY) is None


class TestPollingLoop:
    """Tests for run() and stop()."""

    @pytest.mark.asyncio
    async def test_syncs_to_head_and_stops(self, engine, store, fake_chain, log_factory):
        fake_chain.add(
            log_factory.wallet_created(WALLET, block=101),
            log_factory.transfer(OUTSIDER, WALLET, 500, block=108),
        )

        task = asyncio.create_task(engine.run())
        await wait_until(lambda: engine.checkpoint == 110)
        status = engine.status()
        engine.stop()
        await asyncio.wait_for(task, timeout=2)

        assert status["state"] == "running"
        assert status["blocks_behind"] == 0
        assert status["known_wallets"] == 1
        assert engine.state == EngineState.IDLE
        assert len(await store.get_transfers_by_wallet(WALLET)) == 1

    @pytest.mark.asyncio
    async def test_follows_new_blocks(self, engine, store, fake_chain, log_factory):
        task = asyncio.create_task(engine.run())
        await wait_until(lambda: engine.checkpoint == 110)

        fake_chain.add(log_factory.wallet_created(WALLET, block=113))
        fake_chain.head = 115
        await wait_until(lambda: engine.checkpoint == 115)
        engine.stop()
        await asyncio.wait_for(task, timeout=2)

        assert await store.get_all_wallet_addresses() == [WALLET]

    @pytest.mark.asyncio
    async def test_manual_sync_rejected_while_running(self, engine):
        task = asyncio.create_task(engine.run())
        await wait_until(lambda: engine.state == EngineState.RUNNING)

        with pytest.raises(SyncEngineBusyError):
            await engine.manual_sync(100, 104)
        with pytest.raises(SyncEngineBusyError):
            await engine.run()

        engine.stop()
        await asyncio.wait_for(task, timeout=2)

    @pytest.mark.asyncio
    async def test_stalled_range_is_reported(self, engine, store, fake_chain):
        fake_chain.fail_blocks.add(102)

        task = asyncio.create_task(engine.run())
        await wait_until(lambda: engine.consecutive_failures >= 3)
        engine.stop()
        await asyncio.wait_for(task, timeout=2)

        assert engine.checkpoint == 99
        assert engine.failing_range == (100, 104)
        assert "eth_getLogs" in engine.last_error
        status = await store.get_indexer_status(TOKEN)
        assert status.error_count >= 1
        assert status.last_processed_block == 99

    @pytest.mark.asyncio
    async def test_stalled_range_is_skipped_when_enabled(
        self, fake_chain, store, engine_settings, log_factory
    ):
        config = engine_settings.model_copy(update={"skip_failed_batches": True})
        engine = SyncEngine(fake_chain, store, config=config)
        fake_chain.fail_blocks.add(102)
        fake_chain.add(log_factory.transfer(OUTSIDER, WALLET, 1, block=107))

        task = asyncio.create_task(engine.run())
        await wait_until(lambda: engine.checkpoint == 110)
        engine.stop()
        await asyncio.wait_for(task, timeout=2)

        status = await store.get_indexer_status(TOKEN)
        assert status.last_processed_block == 110
        assert status.error_count == 1
        assert status.last_error is None
        assert await store.count_events() == 1
        assert engine.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_stop_before_any_work(self, engine):
        task = asyncio.create_task(engine.run())
        await wait_until(lambda: engine.state == EngineState.RUNNING)

        engine.stop()
        await asyncio.wait_for(task, timeout=2)

        assert engine.state == EngineState.IDLE

    @pytest.mark.asyncio
    async def test_stall_at_moving_head_is_reported(self, store, engine_settings):
        chain = FakeChainClient(head=110, head_step=1)
        chain.fail_blocks.add(101)
        config = engine_settings.model_copy(
            update={"batch_size": 1000, "max_batch_retries": 3}
        )
        engine = SyncEngine(chain, store, config=config)

        task = asyncio.create_task(engine.run())
        await wait_until(lambda: engine.consecutive_failures >= 3)
        engine.stop()
        await asyncio.wait_for(task, timeout=2)

        start, end = engine.failing_range
        assert start == 100
        assert end > 112
        assert engine.checkpoint == 99
        status = await store.get_indexer_status(TOKEN)
        assert status is not None
        assert status.error_count >= 1
        assert "Blocks 100-" in status.last_error

    @pytest.mark.asyncio
    async def test_stall_at_moving_head_is_skipped_when_enabled(
        self, store, engine_settings
    ):
        chain = FakeChainClient(head=110, head_step=1)
        chain.fail_blocks.add(101)
        config = engine_settings.model_copy(
            update={
                "batch_size": 1000,
                "max_batch_retries": 2,
                "skip_failed_batches": True,
            }
        )
        engine = SyncEngine(chain, store, config=config)

        task = asyncio.create_task(engine.run())
        await wait_until(
            lambda: engine.checkpoint is not None and engine.checkpoint > 110
        )
        engine.stop()
        await asyncio.wait_for(task, timeout=2)

        status = await store.get_indexer_status(FACTORY)
        assert status.error_count == 1
        assert status.last_processed_block > 110


class TestSyncToHead:
    """Tests for a single walk to the chain head."""

    @pytest.fixture
    def messages(self):
        captured: list[str] = []
        handler_id = logger.add(lambda message: captured.append(str(message)))
        yield captured
        logger.remove(handler_id)

    @pytest.mark.asyncio
    async def test_reports_success_when_head_reached(self, engine, messages):
        await engine.initialize()

        caught_up = await engine.sync_to_head()

        assert caught_up is False
        assert engine.checkpoint == 110
        assert any("Synced to block 110" in m for m in messages)

    @pytest.mark.asyncio
    async def test_no_success_when_stopped_early(self, engine, messages):
        await engine.initialize()
        engine._stop_event.set()

        await engine.sync_to_head()

        assert engine.checkpoint == 99
        assert not any("Synced to block" in m for m in messages)

    @pytest.mark.asyncio
    async def test_nothing_to_sync(self, engine, store):
        await store.update_indexer_status(FACTORY, 110)
        await store.update_indexer_status(TOKEN, 110)
        await engine.initialize()

        assert await engine.sync_to_head() is True
