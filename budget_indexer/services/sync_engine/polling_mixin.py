"""
Sync Engine Polling Mixin.

Provides the continuous sync loop and failure handling.
"""

import asyncio

from loguru import logger

from budget_indexer.utils.exceptions import SyncEngineBusyError, is_transient

from .constants import EngineState


class PollingMixin:
    """Mixin providing the polling loop."""

    async def run(self) -> None:
        """
        Sync until stop() is called.

        Each iteration walks from the checkpoint to the chain head in
        batches. Any error backs off for polling_interval times
        error_backoff_multiplier and the same range is retried.

        Raises:
            SyncEngineBusyError: If the engine is already running or a
                manual sync is in progress
        """
        if self.state != EngineState.IDLE or self._lock.locked():
            raise SyncEngineBusyError(f"Sync engine is {self.state}")

        async with self._lock:
            self._stop_event.clear()
            self.state = EngineState.INITIALIZING
            try:
                await self.initialize()
                if not self._stop_event.is_set():
                    self.state = EngineState.RUNNING
                logger.info(f"[Sync] Started from block {self.checkpoint + 1}")

                while not self._stop_event.is_set():
                    try:
                        caught_up = await self.sync_to_head()
                    except Exception as e:
                        self.last_error = str(e)
                        delay = (
                            self.config.polling_interval
                            * self.config.error_backoff_multiplier
                        )
                        log = logger.warning if is_transient(e) else logger.error
                        log(f"[Sync] Iteration failed: {e}. Retrying in {delay}s")
                        await self._sleep(delay)
                        continue

                    if caught_up:
                        await self._sleep(self.config.polling_interval)
            finally:
                self.state = EngineState.IDLE
                logger.info(f"[Sync] Stopped at block {self.checkpoint}")

    async def sync_to_head(self) -> bool:
        """
        Walk from the checkpoint to the current chain head.

        Returns:
            True if there was nothing to sync
        """
        target = await self.chain.current_block_height()
        self.chain_head = target
        from_block = self.checkpoint + 1
        if from_block > target:
            return True

        for start, end in self._batches(from_block, target):
            if self._stop_event.is_set():
                break
            try:
                await self.process_range(start, end)
            except Exception as e:
                await self._handle_batch_failure(start, end, e)
                raise
            self._reset_failures()
            if self.config.batch_pause:
                await asyncio.sleep(self.config.batch_pause)
        else:
            logger.success(f"[Sync] Synced to block {self.checkpoint}")
        return False

    async def _handle_batch_failure(
        self, from_block: int, to_block: int, error: Exception
    ) -> None:
        """
        Count consecutive failures starting at the same block.

        The streak is keyed on from_block only: near the chain head the
        end of the range moves with every retry.

        After max_batch_retries failures the range is reported as stalled
        and recorded on indexer_status. With skip_failed_batches the
        checkpoint is then moved past it.
        """
        if self.failing_range is not None and self.failing_range[0] == from_block:
            self.consecutive_failures += 1
        else:
            self.consecutive_failures = 1
        self.failing_range = (from_block, to_block)
        self.last_error = str(error)

        if self.consecutive_failures < self.config.max_batch_retries:
            return

        message = (
            f"Blocks {from_block}-{to_block} failed "
            f"{self.consecutive_failures} times: {error}"
        )
        logger.critical(f"[Sync] {message}")

        try:
            for contract in self.tracked_contracts:
                await self.store.record_indexer_error(
                    contract, message, self.checkpoint
                )
        except Exception as e:
            logger.error(f"[Sync] Could not record stalled range: {e}")

        if not self.config.skip_failed_batches:
            return

        try:
            for contract in self.tracked_contracts:
                await self.store.update_indexer_status(contract, to_block)
        except Exception as e:
            logger.error(f"[Sync] Could not skip blocks {from_block}-{to_block}: {e}")
            return

        logger.warning(f"[Sync] Skipped blocks {from_block}-{to_block}")
        self.checkpoint = max(self.checkpoint, to_block)
        self._reset_failures()

    def _reset_failures(self) -> None:
        self.failing_range = None
        self.consecutive_failures = 0

    async def _sleep(self, delay: float) -> None:
        """Sleep that wakes up early when stop() is called."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except TimeoutError:
            pass
