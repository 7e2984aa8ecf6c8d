"""
Repasties — Snippet Route Handlers
===================================

What:  GET / (submission form), POST /api/snippets (create),
       GET /api/snippets/{id} (detail), GET /api/lang/{lang} (latest by language).
How:   Handlers stay thin: they hand the request to SnippetStore and shape the
       response. Errors are turned into responses by the handlers in main.py.

Default view:
    The index (GET /) is where the original HTML app sent users after a
    failed save or an unknown snippet id, so both cases answer
    303 See Other → "/".
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from repasties.languages import SUPPORTED_LANGUAGES
from repasties.schemas.snippet import (
    CreateSnippetResponse,
    ErrorResponse,
    IndexResponse,
    SnippetDraft,
    SnippetListResponse,
    SnippetResponse,
)
from repasties.services.snippet_store import SnippetStore, normalize_lang

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Snippets"])

INDEX_PATH = "/"


def get_snippet_store(request: Request) -> SnippetStore:
    """FastAPI dependency: the store built by create_app()."""
    return request.app.state.store


@router.get(
    INDEX_PATH,
    response_model=IndexResponse,
    summary="Empty submission form and supported languages",
)
async def index() -> IndexResponse:
    return IndexResponse(languages=list(SUPPORTED_LANGUAGES))


@router.post(
    "/api/snippets",
    status_code=201,
    response_model=CreateSnippetResponse,
    responses={
        201: {"description": "Snippet stored", "model": CreateSnippetResponse},
        303: {"description": "Snippet could not be saved; redirect to the index"},
        400: {"description": "Empty body; the draft is echoed back", "model": ErrorResponse},
        503: {"description": "Database not available", "model": ErrorResponse},
    },
    summary="Submit a new snippet",
)
async def create_snippet(
    draft: SnippetDraft,
    store: SnippetStore = Depends(get_snippet_store),
) -> CreateSnippetResponse:
    """
    Highlight and store a snippet.

    A blank title is derived from the first three words of the body and a
    missing language defaults to "text" (stored without highlighting).
    """
    snippet_id = await store.create(draft)
    return CreateSnippetResponse(id=snippet_id, url=f"/api/snippets/{snippet_id}")


@router.get(
    "/api/snippets/{snippet_id}",
    response_model=SnippetResponse,
    responses={
        200: {"description": "Full snippet", "model": SnippetResponse},
        303: {"description": "Unknown id; redirect to the index"},
        503: {"description": "Database not available", "model": ErrorResponse},
    },
    summary="Get a snippet by id",
)
async def get_snippet(
    snippet_id: str,
    response: Response,
    store: SnippetStore = Depends(get_snippet_store),
):
    snippet = await store.get_by_id(snippet_id)
    if snippet is None:
        logger.info("Snippet %s not found; redirecting to index", snippet_id)
        return RedirectResponse(INDEX_PATH, status_code=303)

    # Snippets are immutable once stored
    response.headers["Cache-Control"] = "private, max-age=3600"
    return snippet


@router.get(
    "/api/lang/{lang}",
    response_model=SnippetListResponse,
    responses={
        200: {"description": "Latest snippets, newest first", "model": SnippetListResponse},
        503: {"description": "Database not available", "model": ErrorResponse},
    },
    summary="Latest snippets in a language",
)
async def list_snippets(
    request: Request,
    lang: str,
    limit: int | None = Query(
        default=None,
        ge=1,
        description="Maximum number of snippets (defaults to DEFAULT_LIST_LIMIT)",
    ),
    store: SnippetStore = Depends(get_snippet_store),
) -> SnippetListResponse:
    settings = request.app.state.settings
    if limit is not None:
        limit = min(limit, settings.max_list_limit)

    snippets = await store.list_by_language(lang, limit=limit)
    return SnippetListResponse(lang=normalize_lang(lang), snippets=snippets)
