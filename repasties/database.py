"""
Repasties — Database Connection Management
===========================================

What:  Declarative base, engine factory and the per-operation ConnectionManager.
How:   The engine is built with NullPool, so every `acquire()` opens a real
       connection and every `release()` really closes it. Nothing is pooled,
       reused across operations, or cached process-wide.
Who:   SnippetStore wraps each create/get/list call in
       `ConnectionManager.connection()`; the health route probes with it.
When:  Engine built once in `create_app()`; connections opened per operation.

Handle lifecycle:
    acquire()  → fresh AsyncConnection, or StoreConnectionError
    release()  → close, failures logged at WARNING and swallowed
    connection() → acquire on entry, release on every exit path
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from repasties.config import Settings
from repasties.exceptions import StoreConnectionError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models; its metadata drives bootstrap."""
    pass


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Build the async engine for the snippet database.

    NullPool makes the engine a plain connection factory: the backing store
    is expected to tolerate many short-lived connections.
    """
    return create_async_engine(
        settings.database_url,
        poolclass=NullPool,
        echo=settings.log_level == "DEBUG",
    )


class ConnectionManager:
    """
    Acquires and releases one store handle per logical operation.

    The manager itself holds no connection. Concurrent operations each get
    their own handle and share nothing but the (stateless) engine.
    """

    def __init__(self, settings: Settings, engine: AsyncEngine):
        self.settings = settings
        self.engine = engine

    async def acquire(self) -> AsyncConnection:
        """
        Open a new connection to the backing store.

        Raises:
            StoreConnectionError: the store could not be reached. The
                operation must abort; callers surface 503.
        """
        try:
            return await self.engine.connect()
        except Exception as e:
            logger.error(
                "Cannot connect to database %s (%s)",
                self.settings.store_address,
                str(e),
            )
            raise StoreConnectionError(
                address=self.settings.store_address,
                context={"error_type": type(e).__name__},
            ) from e

    async def release(self, conn: AsyncConnection) -> None:
        """Close a handle. Never raises."""
        try:
            await conn.close()
        except Exception as e:
            logger.warning("Couldn't close connection: %s", str(e))

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """
        Scoped handle: released on success, early return and error alike.

        Usage:
            async with connections.connection() as conn:
                await conn.execute(...)
        """
        conn = await self.acquire()
        try:
            yield conn
        finally:
            await self.release(conn)

    async def dispose(self) -> None:
        """Dispose the engine at shutdown."""
        await self.engine.dispose()
