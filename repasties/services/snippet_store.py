"""
Repasties — Snippet Store
==========================

What:  Schema bootstrap plus the three snippet operations: create, get, list.
How:   Each operation opens its own connection through ConnectionManager and
       releases it before returning. Listing goes through SnippetQuery, so
       filtering, projection, ordering and limiting all run on the server.
Who:   Route handlers (via app.state.store); bootstrap_schema() from the
       application lifespan.

Create Flow:
    ┌───────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │ Normalize │───▶│  Highlight  │───▶│   Acquire    │───▶│  INSERT  │
    │  & check  │    │ (renderer)  │    │  connection  │    │ RETURNING│
    └───────────┘    └─────────────┘    └──────────────┘    └──────────┘

    Empty body    → ValidationError, the store is never contacted
    Render fails  → PersistenceError, nothing written
    Insert count != 1 → PersistenceError, transaction rolled back
"""

import logging
import time
from typing import Callable, List, Optional

from sqlalchemy import insert, inspect, select, text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from repasties.config import Settings
from repasties.database import Base, ConnectionManager
from repasties.exceptions import (
    BootstrapError,
    PersistenceError,
    RenderError,
    ValidationError,
)
from repasties.models.snippet import snippets_table
from repasties.schemas.snippet import SnippetDraft, SnippetRecord, SnippetSummary
from repasties.services.highlight_service import PLAIN_TEXT, HighlightRenderer
from repasties.services.query import SnippetQuery

logger = logging.getLogger(__name__)

# Columns returned by the listing
SUMMARY_FIELDS = ("id", "title", "created_at")

# Number of body tokens used for a derived title
TITLE_TOKENS = 3

# SQLSTATEs for "already exists": duplicate_database, duplicate_table,
# unique_violation (concurrent CREATE DATABASE on pg_database)
_DUPLICATE_SQLSTATES = {"42P04", "42P07", "23505"}


# ══════════════════════════════════════════════════════════════════════════
# Draft Normalization
# ══════════════════════════════════════════════════════════════════════════

def normalize_lang(lang: Optional[str]) -> str:
    """Language tag as stored: stripped and lower-cased ("" when missing)."""
    return (lang or "").strip().lower()


def derive_title(body: str) -> str:
    """First three whitespace-delimited tokens of `body`, single-spaced."""
    return " ".join(body.split()[:TITLE_TOKENS])


def normalize_draft(draft: SnippetDraft) -> SnippetDraft:
    """
    Apply submission defaults and reject unusable drafts.

    - body must contain something other than whitespace
    - lang defaults to "text" and is lower-cased
    - a blank title is derived from the body

    Raises:
        ValidationError: empty body. The original draft is carried in the
            error context so the caller can re-present it.
    """
    body = draft.body or ""
    if not body.strip():
        raise ValidationError(
            message="Snippet body must not be empty",
            field="body",
            context={"snippet": draft.model_dump()},
        )

    lang = normalize_lang(draft.lang) or PLAIN_TEXT
    title = draft.title if draft.title and draft.title.strip() else derive_title(body)

    return SnippetDraft(title=title, body=body, lang=lang)


def latest_in_language(lang: str, max_results: int) -> SnippetQuery:
    """The listing pipeline: filter → project → order → limit."""
    return (
        SnippetQuery()
        .filter(lang=lang)
        .pluck(*SUMMARY_FIELDS)
        .order_by("created_at", descending=True)
        .limit(max_results)
    )


# ══════════════════════════════════════════════════════════════════════════
# Store
# ══════════════════════════════════════════════════════════════════════════

class SnippetStore:
    """
    Snippet persistence on top of per-operation connections.

    Args:
        connections: ConnectionManager for the snippet database
        renderer: HighlightRenderer chosen at start-up
        clock: returns the current time in epoch seconds
        default_limit: listing size when the caller gives none
    """

    def __init__(
        self,
        connections: ConnectionManager,
        renderer: HighlightRenderer,
        clock: Callable[[], float] = time.time,
        default_limit: int = 10,
    ):
        self.connections = connections
        self.renderer = renderer
        self.clock = clock
        self.default_limit = default_limit

    async def create(self, draft: SnippetDraft) -> str:
        """
        Validate, highlight and insert a snippet.

        Returns:
            The store-generated id of the new snippet.

        Raises:
            ValidationError: empty body (nothing contacted)
            StoreConnectionError: the store is unreachable
            PersistenceError: highlighting failed or the insert did not
                create exactly one record
        """
        snippet = normalize_draft(draft)
        created_at = int(self.clock())

        try:
            formatted_body = await self.renderer.render(snippet.body, snippet.lang)
        except RenderError as e:
            logger.error("Highlighting failed for lang=%s: %s", snippet.lang, e.message)
            raise PersistenceError(
                context={"stage": "highlight", "lang": snippet.lang, **e.context},
            ) from e
        except Exception as e:
            logger.error(
                "Unexpected highlighter failure for lang=%s: %s",
                snippet.lang,
                str(e),
                exc_info=True,
            )
            raise PersistenceError(
                context={
                    "stage": "highlight",
                    "lang": snippet.lang,
                    "error_type": type(e).__name__,
                },
            ) from e

        record = {
            "title": snippet.title,
            "body": snippet.body,
            "lang": snippet.lang,
            "created_at": created_at,
            "formatted_body": formatted_body,
        }

        async with self.connections.connection() as conn:
            try:
                async with conn.begin():
                    result = await conn.execute(
                        insert(snippets_table)
                        .values(**record)
                        .returning(snippets_table.c.id)
                    )
                    generated_keys = list(result.scalars().all())
                    if len(generated_keys) != 1:
                        response = {"inserted": len(generated_keys), "generated_keys": generated_keys}
                        logger.error("Snippet insert failed: %s", response)
                        raise PersistenceError(context=response)
            except SQLAlchemyError as e:
                logger.error("Snippet insert failed: %s", str(e), exc_info=True)
                raise PersistenceError(
                    context={"stage": "insert", "error_type": type(e).__name__},
                ) from e

        snippet_id = str(generated_keys[0])
        logger.info("Snippet %s created (lang=%s, %d chars)", snippet_id, snippet.lang, len(snippet.body))
        return snippet_id

    async def get_by_id(self, snippet_id: str) -> Optional[SnippetRecord]:
        """
        Primary-key lookup.

        Returns:
            The snippet, or None when no snippet has this id.
        """
        async with self.connections.connection() as conn:
            result = await conn.execute(
                select(snippets_table).where(snippets_table.c.id == snippet_id)
            )
            row = result.mappings().first()

        if row is None:
            return None
        return SnippetRecord.model_validate(dict(row))

    async def list_by_language(
        self, lang: str, limit: Optional[int] = None
    ) -> List[SnippetSummary]:
        """
        Latest snippets in `lang`, newest first.

        The language tag is lower-cased before matching. The full result is
        read into memory before the connection is released.

        Raises:
            ValidationError: limit below 1
        """
        max_results = self.default_limit if limit is None else limit
        if max_results < 1:
            raise ValidationError(
                message="limit must be a positive integer",
                field="limit",
                context={"limit": max_results},
            )

        normalized = normalize_lang(lang)
        stmt = latest_in_language(normalized, max_results).compile(snippets_table)

        async with self.connections.connection() as conn:
            result = await conn.execute(stmt)
            rows = result.mappings().all()

        return [SnippetSummary.model_validate(dict(row)) for row in rows]


# ══════════════════════════════════════════════════════════════════════════
# Schema Bootstrap
# ══════════════════════════════════════════════════════════════════════════

def is_already_exists(error: DBAPIError) -> bool:
    """
    True when the driver error says the object being created already exists.

    PostgreSQL drivers report a SQLSTATE (asyncpg as `sqlstate`, the
    SQLAlchemy adaptation as `pgcode`); SQLite only has the message.
    """
    orig = error.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code in _DUPLICATE_SQLSTATES:
        return True
    return "already exists" in str(orig).lower()


async def ensure_database(settings: Settings) -> bool:
    """
    Create the snippet database when the server does not have it yet.

    PostgreSQL: checks pg_database from the maintenance database and issues
    CREATE DATABASE outside a transaction. A process that loses the race to
    another one creating the same database sees a duplicate error, which is
    logged as "already exists". SQLite files are created on first connect.
    Other backends must be provisioned beforehand.

    Returns:
        True if the database was created by this call.
    """
    backend = settings.database_url.get_backend_name()

    if backend == "sqlite":
        logger.info("SQLite database %s is created on first connect", settings.db_name)
        return False

    if backend != "postgresql":
        logger.warning(
            "Cannot create databases on backend '%s'; assuming `%s` exists",
            backend,
            settings.db_name,
        )
        return False

    engine = create_async_engine(
        settings.maintenance_url,
        poolclass=NullPool,
        isolation_level="AUTOCOMMIT",
    )
    try:
        async with engine.connect() as conn:
            exists = await conn.scalar(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": settings.db_name},
            )
            if exists:
                logger.info("Database `%s` already exists", settings.db_name)
                return False

            quoted = conn.dialect.identifier_preparer.quote(settings.db_name)
            try:
                await conn.execute(text(f"CREATE DATABASE {quoted}"))
            except DBAPIError as e:
                if not is_already_exists(e):
                    raise
                logger.info("Database `%s` already exists", settings.db_name)
                return False

            logger.info("Created database `%s`", settings.db_name)
            return True
    finally:
        await engine.dispose()


async def ensure_table(engine: AsyncEngine) -> bool:
    """
    Create the snippets table (and its index) when missing.

    Several workers starting together may all see the table missing; the
    ones whose CREATE TABLE fails with "already exists" return False.

    Returns:
        True if the table was created by this call.
    """
    table_name = snippets_table.name

    try:
        async with engine.begin() as conn:
            exists = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).has_table(table_name)
            )
            if exists:
                logger.info("Table `%s` already exists", table_name)
                return False

            await conn.run_sync(
                Base.metadata.create_all, tables=[snippets_table], checkfirst=False
            )
    except DBAPIError as e:
        if not is_already_exists(e):
            raise
        logger.info("Table `%s` already exists", table_name)
        return False

    logger.info("Created table `%s`", table_name)
    return True


async def bootstrap_schema(settings: Settings, engine: AsyncEngine) -> None:
    """
    Ensure the database and the snippets table exist. Idempotent.

    Raises:
        BootstrapError: anything other than "already exists" went wrong.
            Start-up must not continue.
    """
    try:
        await ensure_database(settings)
        await ensure_table(engine)
    except Exception as e:
        logger.error(
            "Cannot bootstrap database `%s` at %s (%s)",
            settings.db_name,
            settings.store_address,
            str(e),
        )
        raise BootstrapError(
            address=settings.store_address,
            context={"database": settings.db_name, "error_type": type(e).__name__},
        ) from e
