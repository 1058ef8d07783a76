"""
Exception handling utilities.

Defines categorized exception types for proper error handling.
"""

from web3.exceptions import Web3Exception


class IndexerError(Exception):
    """Base exception for indexer errors."""
    pass


class ChainClientError(IndexerError):
    """Raised when a JSON-RPC call fails."""
    pass


class BlockchainTimeoutError(ChainClientError):
    """Raised when a JSON-RPC call times out."""
    pass


class EventDecodeError(IndexerError):
    """Raised when a log cannot be decoded against its ABI."""
    pass


class EventProcessingError(IndexerError):
    """Raised when a business side effect for an event fails."""
    pass


class PersistenceError(IndexerError):
    """Raised when a batch cannot be written to the store."""
    pass


class SyncEngineBusyError(IndexerError):
    """Raised when a manual sync is requested while the loop is running."""
    pass


# Exception categories based on handling strategy

# Retried by the sync loop backoff without alarm
TRANSIENT = (
    ChainClientError,
    Web3Exception,
    ConnectionError,
    TimeoutError,
)


def is_transient(exc: Exception) -> bool:
    """
    Check if exception is a transient I/O failure.

    Args:
        exc: Exception to check

    Returns:
        True if the failed operation can simply be retried
    """
    return isinstance(exc, TRANSIENT)
