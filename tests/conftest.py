"""
User Service — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the test suite.
How:   The app is built with create_app() from injected handles: a SQLite
       file database (aiosqlite) and a TracerProvider that exports to memory.
       No PostgreSQL or collector is needed.

Fixture Hierarchy (all function-scoped):
    ├── test_settings:   Settings pointing at a temp SQLite file
    ├── span_exporter:   InMemorySpanExporter collecting finished spans
    ├── telemetry:       Telemetry handle over an SDK provider
    ├── database:        Connected Database handle (users table created)
    ├── app:             FastAPI app wired to the handles above
    ├── test_client:     HTTPX AsyncClient over ASGITransport
    └── mock_db_session: AsyncMock session for service unit tests
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from user_service.config import Settings
from user_service.database import Database
from user_service.main import create_app
from user_service.telemetry import Telemetry


@pytest.fixture
def test_settings(tmp_path):
    """Settings for an isolated SQLite database inside tmp_path."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        log_level="WARNING",
    )


@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def telemetry(span_exporter):
    """
    Telemetry handle that exports synchronously to memory.

    SimpleSpanProcessor (not Batch) so spans are visible as soon as they end.
    The provider is never registered globally.
    """
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    handle = Telemetry(provider, service_name="example-service-test")
    yield handle
    handle.shutdown()


@pytest_asyncio.fixture
async def database(test_settings):
    """
    Connected database handle with the users table created.

    ASGITransport does not run the lifespan, so connect() is called here.
    """
    db = Database.from_settings(test_settings)
    await db.connect()
    yield db
    await db.dispose()


@pytest.fixture
def app(test_settings, database, telemetry):
    return create_app(settings=test_settings, database=database, telemetry=telemetry)


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient routed directly to the app.

    raise_app_exceptions=False: an unhandled exception is answered with the
    500 built by the catch-all handler instead of being raised in the test.
    """
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def mock_db_session():
    """
    Mock async database session for service unit tests.

    Usage:
        mock_db_session.execute.return_value.scalars.return_value.all.return_value = [...]
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session
