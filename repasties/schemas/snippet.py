"""
Repasties — Pydantic Request/Response Schemas
==============================================

What:  Pydantic models for the snippet API and the store's return values.
How:   FastAPI validates request bodies against these models and serializes
       responses from them. SnippetStore returns SnippetRecord and
       SnippetSummary so callers never see raw database rows.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Input Models
# ══════════════════════════════════════════════════════════════════════════


class SnippetDraft(BaseModel):
    """
    What:  A snippet as submitted, before normalization.
    Who:   Body of POST /api/snippets; echoed back on validation failure.

    Blank title and language are allowed here; SnippetStore fills them in.
    """
    title: str = Field(default="", description="Short title; derived from body when blank")
    body: str = Field(default="", description="Raw snippet text (required)")
    lang: Optional[str] = Field(default=None, description="Language tag; defaults to 'text'")


# ══════════════════════════════════════════════════════════════════════════
# Store / Response Models
# ══════════════════════════════════════════════════════════════════════════


class SnippetRecord(BaseModel):
    """
    What:  A complete stored snippet.
    Who:   Returned by SnippetStore.get_by_id and GET /api/snippets/{id}.
    """
    id: str = Field(description="Store-generated identifier")
    title: str
    body: str = Field(description="Raw snippet text")
    lang: str = Field(description="Lower-case language tag")
    created_at: int = Field(description="Creation time in epoch seconds")
    formatted_body: str = Field(description="Highlighted markup computed at insert time")

    model_config = {"from_attributes": True}


# Public response name for the detail route
SnippetResponse = SnippetRecord


class SnippetSummary(BaseModel):
    """
    What:  Listing view of a snippet: exactly id, title and created_at.
    Who:   SnippetStore.list_by_language and GET /api/lang/{lang}.
    """
    id: str
    title: str
    created_at: int

    model_config = {"from_attributes": True}


class SnippetListResponse(BaseModel):
    """Latest snippets in one language, newest first."""
    lang: str = Field(description="Normalized (lower-case) language tag")
    snippets: List[SnippetSummary]


class CreateSnippetResponse(BaseModel):
    """Returned by POST /api/snippets with HTTP 201."""
    id: str
    url: str = Field(description="Path of the new snippet")


class IndexResponse(BaseModel):
    """
    What:  The submission form: an empty draft plus the supported languages.
    Who:   GET /, and the target of every redirect to the default view.
    """
    languages: List[str]
    snippet: SnippetDraft = Field(default_factory=SnippetDraft)


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Snippet body must not be empty",
            "details": {"field": "body", "snippet": {"title": "", "body": "", "lang": null}},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    highlighter: str = Field(description="Highlight strategy in use: local, remote")
    uptime_seconds: float = Field(description="Seconds since service started")
