"""
Chain client.

Async facade over a synchronous web3 HTTP provider. Calls run in a small
thread pool and each one is bounded by the configured RPC timeout.
"""

import asyncio
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from web3 import Web3
from web3.types import LogReceipt

from budget_indexer.config.constants import RPC_MAX_WORKERS
from budget_indexer.config.settings import settings
from budget_indexer.utils.exceptions import BlockchainTimeoutError, ChainClientError
from budget_indexer.utils.validation import checksum_address

from .rpc_wrapper import with_timeout


class ChainClient:
    """
    Read-only JSON-RPC client.

    Handles:
    - Current block height
    - Log queries over an address set and inclusive block range
    - Block timestamps

    Failures raise ChainClientError (BlockchainTimeoutError on timeout).
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        timeout: float | None = None,
        max_workers: int = RPC_MAX_WORKERS,
        w3: Web3 | None = None,
    ) -> None:
        """
        Initialize chain client.

        Args:
            rpc_url: HTTP JSON-RPC endpoint (defaults to settings.rpc_url)
            timeout: Per-call timeout in seconds
            max_workers: Thread pool size for blocking web3 calls
            w3: Pre-built Web3 instance
        """
        self.rpc_url = rpc_url or settings.rpc_url
        self.timeout = timeout or settings.rpc_timeout
        self.w3 = w3 or Web3(
            Web3.HTTPProvider(
                self.rpc_url, request_kwargs={"timeout": self.timeout}
            )
        )
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="web3"
        )

    async def _call(self, func: Callable[[], Any], operation_name: str) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await with_timeout(
                loop.run_in_executor(self._executor, func),
                timeout=self.timeout,
                operation_name=operation_name,
            )
        except BlockchainTimeoutError:
            raise
        except Exception as e:
            raise ChainClientError(f"{operation_name} failed: {e}") from e

    async def current_block_height(self) -> int:
        """Get the latest block number."""
        return await self._call(lambda: self.w3.eth.block_number, "eth_blockNumber")

    async def logs_for(
        self,
        addresses: Iterable[str],
        from_block: int,
        to_block: int,
        topics: Sequence[Any] | None = None,
    ) -> list[LogReceipt]:
        """
        Get logs emitted by any of the addresses in [from_block, to_block].

        Args:
            addresses: Emitting contracts (any case)
            from_block: First block (inclusive)
            to_block: Last block (inclusive)
            topics: Optional topic filter

        Returns:
            Raw logs, possibly empty
        """
        checksummed = sorted({checksum_address(a) for a in addresses})
        if not checksummed or from_block > to_block:
            return []

        params: dict[str, Any] = {
            "address": checksummed,
            "fromBlock": from_block,
            "toBlock": to_block,
        }
        if topics:
            params["topics"] = list(topics)

        logs = await self._call(
            lambda: self.w3.eth.get_logs(params),
            f"eth_getLogs {from_block}-{to_block}",
        )
        return list(logs)

    async def block_timestamp(self, block_number: int) -> datetime:
        """Get a block's timestamp as an aware UTC datetime."""
        block = await self._call(
            lambda: self.w3.eth.get_block(block_number),
            f"eth_getBlockByNumber {block_number}",
        )
        return datetime.fromtimestamp(block["timestamp"], tz=UTC)

    async def test_connection(self) -> bool:
        """
        Check the RPC endpoint answers and serves the expected chain.

        Returns:
            True if connected to the configured chain
        """
        try:
            chain_id = await self._call(lambda: self.w3.eth.chain_id, "eth_chainId")
            height = await self.current_block_height()
        except ChainClientError as e:
            logger.error(f"[Chain] Connection test failed: {e}")
            return False

        if chain_id != settings.chain_id:
            logger.error(
                f"[Chain] Connected to chain {chain_id}, "
                f"expected {settings.chain_id}"
            )
            return False

        logger.success(f"[Chain] Connected to chain {chain_id} at block {height}")
        return True

    def close(self) -> None:
        """Shut down the worker threads."""
        self._executor.shutdown(wait=False, cancel_futures=True)
