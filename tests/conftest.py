"""Pytest configuration and shared fixtures for all tests."""

import os

# Minimal environment for settings validation; must run before any
# budget_indexer import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RPC_URL", "http://localhost:8545")
os.environ.setdefault("CHAIN_ID", "8453")
os.environ.setdefault(
    "FACTORY_CONTRACT_ADDRESS", "0x82eA29c17EE7eE9176CEb37F728Ab1967C4993a5"
)
os.environ.setdefault(
    "BUDGET_WALLET_TEMPLATE_ADDRESS", "0x4B80e374ff1639B748976a7bF519e2A35b43Ca26"
)
os.environ.setdefault(
    "TOKEN_CONTRACT_ADDRESS", "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
)
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("HEALTH_CHECK_PORT", "0")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from budget_indexer.config.database import create_engine, create_session_maker  # noqa: E402
from budget_indexer.config.settings import settings  # noqa: E402
from budget_indexer.models import Base  # noqa: E402
from budget_indexer.services.event_store import EventStore  # noqa: E402
from tests.factories import FakeChainClient, LogFactory  # noqa: E402


@pytest.fixture
def log_factory() -> LogFactory:
    """Raw log builder."""
    return LogFactory()


@pytest.fixture
def fake_chain() -> FakeChainClient:
    """Chain client double with head at block 110."""
    return FakeChainClient()


@pytest.fixture
def engine_settings():
    """Settings tuned for fast engine tests."""
    return settings.model_copy(
        update={
            "factory_start_block": 100,
            "token_start_block": 100,
            "batch_size": 5,
            "polling_interval": 0.01,
            "error_backoff_multiplier": 1.0,
            "batch_pause": 0,
            "max_batch_retries": 2,
            "skip_failed_batches": False,
        }
    )


@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory SQLite database with all tables."""
    engine = create_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(db_engine):
    return create_session_maker(db_engine)


@pytest_asyncio.fixture
async def store(session_maker) -> EventStore:
    """Event store over the in-memory database."""
    return EventStore(session_maker)
