"""
Repasties — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
How:   Store and route tests run against a real SQLite database (aiosqlite)
       in pytest's tmp_path; highlighting is replaced by EchoStrategy unless
       a test exercises the real strategies.

Fixture Hierarchy (all function-scoped):
    ├── settings:      Settings pointing at a fresh SQLite file
    ├── echo_strategy: HighlightStrategy double that records its calls
    ├── renderer:      HighlightRenderer over echo_strategy
    ├── connections:   ConnectionManager (engine disposed after the test)
    ├── store:         bootstrapped SnippetStore with a ticking clock
    └── test_client:   HTTPX AsyncClient running the app inside its lifespan
"""

import html
import itertools
import os
import tempfile
from contextlib import asynccontextmanager

# Override settings for testing BEFORE any app imports
os.environ["DB_DRIVER"] = "sqlite+aiosqlite"
os.environ["DB_NAME"] = os.path.join(tempfile.mkdtemp(prefix="repasties_test_"), "repasties.db")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from repasties.config import Settings
from repasties.database import ConnectionManager, create_engine
from repasties.services.highlight_base import HighlightStrategy
from repasties.services.highlight_service import HighlightRenderer
from repasties.services.snippet_store import SnippetStore, bootstrap_schema

# First timestamp handed out by the test clock
CLOCK_START = 1_700_000_000


class EchoStrategy(HighlightStrategy):
    """Wraps escaped code in a <pre> block and remembers every call."""

    name = "echo"

    def __init__(self):
        self.calls = []

    async def highlight(self, code: str, lang: str) -> str:
        self.calls.append((code, lang))
        return f'<pre class="{lang}">{html.escape(code)}</pre>'


def ticking_clock(start: int = CLOCK_START):
    """Clock returning start, start + 1, ... so created_at values are distinct."""
    ticks = itertools.count(start)
    return lambda: next(ticks)


@asynccontextmanager
async def app_client(settings: Settings, renderer: HighlightRenderer):
    """
    Yields (app, client) with the application lifespan running.

    ASGITransport does not send lifespan events, so the lifespan context is
    entered explicitly; the schema is bootstrapped exactly as in production.
    """
    from repasties.main import create_app

    app = create_app(settings, renderer)
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield app, client


@pytest.fixture
def settings(tmp_path):
    return Settings(
        db_driver="sqlite+aiosqlite",
        db_name=str(tmp_path / "repasties.db"),
        log_level="WARNING",
        _env_file=None,
    )


@pytest.fixture
def echo_strategy():
    return EchoStrategy()


@pytest.fixture
def renderer(echo_strategy):
    return HighlightRenderer(echo_strategy)


@pytest_asyncio.fixture
async def connections(settings):
    manager = ConnectionManager(settings, create_engine(settings))
    yield manager
    await manager.dispose()


@pytest_asyncio.fixture
async def store(settings, connections, renderer):
    await bootstrap_schema(settings, connections.engine)
    return SnippetStore(connections, renderer, clock=ticking_clock())


@pytest_asyncio.fixture
async def test_client(settings, renderer):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    async with app_client(settings, renderer) as (_, client):
        yield client


@pytest.fixture
def client_factory():
    """
    Builds clients for apps with a custom renderer or settings.

    Usage:
        async with client_factory(settings, renderer) as (app, client):
            ...
    """
    return app_client
