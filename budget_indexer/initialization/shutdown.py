"""
Indexer Initialization - Shutdown Module.

Closes RPC workers and database connections.
"""

from loguru import logger

from budget_indexer.services.blockchain import ChainClient


async def shutdown_handler(chain: ChainClient | None = None) -> None:
    """Handle graceful shutdown."""
    logger.info("Graceful shutdown initiated...")

    if chain is not None:
        chain.close()

    try:
        from budget_indexer.config.database import async_engine
        await async_engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning(f"Error closing database: {e}")

    logger.info("Graceful shutdown complete")
