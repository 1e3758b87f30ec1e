"""
Global pytest configuration and fixtures for ledgerdash tests.
"""

import os

# Configure the test environment before the settings singleton is built
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("OBSERVABILITY__LOG_FORMAT", "text")
os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ledgerdash.db import create_all_tables_async, drop_all_tables_async  # noqa: E402
from ledgerdash.events import EventBus  # noqa: E402
from ledgerdash.invoices import InvoiceSnapshot  # noqa: E402
from ledgerdash.revenues import (  # noqa: E402
    InMemoryRevenueRepository,
    RevenueEventHandler,
    RevenueService,
    SQLAlchemyRevenueRepository,
)


@pytest_asyncio.fixture
async def async_db_engine():
    """In-memory SQLite engine with the schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # Required for SQLite in-memory async
    )
    await create_all_tables_async(engine)
    try:
        yield engine
    finally:
        await drop_all_tables_async(engine)
        await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(async_db_engine):
    return async_sessionmaker(bind=async_db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def sql_repository(session_maker):
    return SQLAlchemyRevenueRepository(session_maker)


@pytest.fixture
def memory_repository():
    return InMemoryRevenueRepository()


@pytest.fixture
def event_bus():
    """Fresh bus per test; nothing is shared between tests."""
    return EventBus(name="test")


@pytest.fixture
def revenue_service(memory_repository):
    return RevenueService(memory_repository, serialize_period_writes=True)


@pytest.fixture
def revenue_handler(event_bus, revenue_service):
    handler = RevenueEventHandler(event_bus, revenue_service)
    yield handler
    handler.close()


@pytest.fixture
def make_invoice():
    """Factory for invoice snapshots with sensible defaults."""

    def _make(**overrides) -> InvoiceSnapshot:
        values = {
            "id": "inv-1",
            "customer_id": "cust-1",
            "amount": 1000,
            "date": "2024-03-15",
            "status": "pending",
        }
        values.update(overrides)
        return InvoiceSnapshot(**values)

    return _make
