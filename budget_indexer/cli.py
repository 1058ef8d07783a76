"""
Command line interface.

Usage:
    budget-indexer [run]          Start health server and sync loop
    budget-indexer migrate        Apply database migrations
    budget-indexer sync FROM [TO] Sync an explicit block range once
    budget-indexer test           Check RPC and database connectivity
    budget-indexer status         Print stored checkpoints
"""

import argparse
import asyncio
import signal
import sys
import warnings
from pathlib import Path

# eth_utils warns about unknown chain ids at import time
warnings.filterwarnings(
    "ignore",
    message=".*does not have a valid ChainId.*",
    category=UserWarning,
)

from loguru import logger  # noqa: E402

from budget_indexer.config.settings import settings  # noqa: E402
from budget_indexer.initialization import setup_logging  # noqa: E402

PROJECT_ROOT = Path(__file__).resolve().parent.parent


async def run_indexer() -> int:
    """Run the sync loop until SIGINT or SIGTERM."""
    from budget_indexer.config.database import check_database_connection
    from budget_indexer.initialization.services import initialize_services
    from budget_indexer.initialization.shutdown import shutdown_handler
    from budget_indexer.services.health import start_health_server, stop_health_server

    chain, _store, engine = initialize_services()
    if not await check_database_connection():
        await shutdown_handler(chain)
        return 1

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, engine.stop)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    runner = None
    if settings.health_check_port:
        runner = await start_health_server(engine, port=settings.health_check_port)

    try:
        await engine.run()
    finally:
        if runner is not None:
            await stop_health_server(runner)
        await shutdown_handler(chain)
    return 0


async def sync_range(from_block: int, to_block: int | None) -> int:
    """Run one manual sync over [from_block, to_block]."""
    from budget_indexer.initialization.services import initialize_services
    from budget_indexer.initialization.shutdown import shutdown_handler

    chain, _store, engine = initialize_services()
    try:
        if to_block is None:
            to_block = await chain.current_block_height()
        result = await engine.manual_sync(from_block, to_block)
        logger.info(
            f"Synced {result['from_block']}-{result['to_block']}: "
            f"{result['events']} events, {result['inserted']} new, "
            f"{result['failed']} failed"
        )
    finally:
        await shutdown_handler(chain)
    return 0


async def check_connections() -> int:
    """Check the RPC endpoint and the database."""
    from budget_indexer.config.database import check_database_connection
    from budget_indexer.initialization.shutdown import shutdown_handler
    from budget_indexer.services.blockchain import ChainClient

    chain = ChainClient()
    try:
        chain_ok = await chain.test_connection()
        db_ok = await check_database_connection()
    finally:
        await shutdown_handler(chain)
    return 0 if chain_ok and db_ok else 1


async def show_status() -> int:
    """Print stored checkpoints and wallet count."""
    from budget_indexer.config.database import async_session_maker
    from budget_indexer.initialization.shutdown import shutdown_handler
    from budget_indexer.services.event_store import EventStore

    store = EventStore(async_session_maker)
    try:
        for contract in settings.tracked_contracts:
            status = await store.get_indexer_status(contract)
            if status is None:
                logger.info(f"{contract}: not indexed yet")
                continue
            logger.info(
                f"{contract}: block {status.last_processed_block}, "
                f"active={status.is_active}, errors={status.error_count}"
                + (f", last error: {status.last_error}" if status.last_error else "")
            )
        wallets = await store.get_all_wallet_addresses()
        logger.info(f"Known wallets: {len(wallets)}")
    finally:
        await shutdown_handler()
    return 0


def run_migrations() -> int:
    """Apply alembic migrations up to head."""
    from alembic import command
    from alembic.config import Config

    config = Config(str(PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(config, "head")
    logger.success("Database migrated to head")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="budget-indexer", description="Budget wallet event indexer"
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the sync loop (default)")
    subparsers.add_parser("migrate", help="Apply database migrations")

    sync_parser = subparsers.add_parser("sync", help="Sync a block range once")
    sync_parser.add_argument("from_block", type=int)
    sync_parser.add_argument("to_block", type=int, nargs="?")

    subparsers.add_parser("test", help="Check RPC and database connectivity")
    subparsers.add_parser("status", help="Print stored checkpoints")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging()

    command = args.command or "run"
    try:
        if command == "migrate":
            return run_migrations()
        if command == "sync":
            return asyncio.run(sync_range(args.from_block, args.to_block))
        if command == "test":
            return asyncio.run(check_connections())
        if command == "status":
            return asyncio.run(show_status())
        return asyncio.run(run_indexer())
    except KeyboardInterrupt:
        logger.info("Indexer stopped by user (KeyboardInterrupt)")
        return 0
    except Exception as e:
        logger.exception(f"Indexer crashed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
