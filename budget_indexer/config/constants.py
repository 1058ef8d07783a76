"""
Application constants.

Centralized constants for the indexer.
"""

# ========================================================================
# BLOCKCHAIN CONSTANTS
# ========================================================================

DEFAULT_RPC_TIMEOUT_SECONDS = 30.0  # Per-call timeout for JSON-RPC requests
RPC_MAX_WORKERS = 4  # Thread pool size for synchronous web3 calls

# ========================================================================
# INDEXER CONSTANTS
# ========================================================================

DEFAULT_BATCH_SIZE = 1000  # Blocks per batch
DEFAULT_POLLING_INTERVAL_SECONDS = 5.0  # Sleep when caught up with the chain head
DEFAULT_ERROR_BACKOFF_MULTIPLIER = 2.0  # Sleep multiplier after a failed iteration
DEFAULT_BATCH_PAUSE_SECONDS = 0.1  # Pause between batches
DEFAULT_MAX_BATCH_RETRIES = 5  # Consecutive failures before a stalled-range alert

# ========================================================================
# QUERY CONSTANTS
# ========================================================================

DEFAULT_PAGE_LIMIT = 100
MAX_PAGE_LIMIT = 1000
