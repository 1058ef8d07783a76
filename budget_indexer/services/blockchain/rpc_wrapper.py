"""
RPC Wrapper with Timeout.

Every chain call goes through with_timeout. Retrying is the sync loop's
job, so nothing here retries.
"""

import asyncio
from typing import Any

from loguru import logger

from budget_indexer.config.constants import DEFAULT_RPC_TIMEOUT_SECONDS
from budget_indexer.utils.exceptions import BlockchainTimeoutError


async def with_timeout(
    coro: Any,
    timeout: float = DEFAULT_RPC_TIMEOUT_SECONDS,
    operation_name: str = "RPC call",
) -> Any:
    """
    Execute async coroutine with timeout.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds
        operation_name: Operation name for logging

    Returns:
        Result of the coroutine

    Raises:
        BlockchainTimeoutError: If operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError as e:
        error_msg = f"{operation_name} timed out after {timeout}s"
        logger.error(f"[Chain] {error_msg}")
        raise BlockchainTimeoutError(error_msg) from e
