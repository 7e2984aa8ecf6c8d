"""
Repasties — API Route Tests
============================

What:  End-to-end tests of the HTTP surface against a SQLite database.
How:   HTTPX AsyncClient over ASGITransport, with the app lifespan running
       (bootstrap included) and the EchoStrategy highlighter.
"""

import logging
from unittest.mock import AsyncMock

import pytest

from repasties.exceptions import RenderError, StoreConnectionError
from repasties.languages import SUPPORTED_LANGUAGES
from repasties.services.highlight_base import HighlightStrategy
from repasties.services.highlight_service import HighlightRenderer


class BrokenStrategy(HighlightStrategy):
    name = "broken"

    async def highlight(self, code, lang):
        raise RenderError()


class TestIndex:

    @pytest.mark.asyncio
    async def test_index_lists_sorted_languages(self, test_client):
        response = await test_client.get("/")

        assert response.status_code == 200
        body = response.json()
        assert body["languages"] == sorted(SUPPORTED_LANGUAGES)
        assert "Python" in body["languages"]
        assert body["snippet"] == {"title": "", "body": "", "lang": None}

    @pytest.mark.asyncio
    async def test_request_id_header(self, test_client):
        response = await test_client.get("/", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"


class TestCreateAndShow:

    @pytest.mark.asyncio
    async def test_create_then_fetch(self, test_client):
        response = await test_client.post(
            "/api/snippets",
            json={"title": "", "body": "hello brave new world", "lang": "Ruby"},
        )

        assert response.status_code == 201
        created = response.json()
        assert created["url"] == f"/api/snippets/{created['id']}"

        detail = await test_client.get(created["url"])

        assert detail.status_code == 200
        snippet = detail.json()
        assert snippet["id"] == created["id"]
        assert snippet["title"] == "hello brave new"
        assert snippet["lang"] == "ruby"
        assert snippet["body"] == "hello brave new world"
        assert snippet["formatted_body"] == '<pre class="ruby">hello brave new world</pre>'
        assert isinstance(snippet["created_at"], int)

    @pytest.mark.asyncio
    async def test_empty_body_re_presents_draft(self, test_client):
        draft = {"title": "my title", "body": "", "lang": "c"}

        response = await test_client.post("/api/snippets", json=draft)

        assert response.status_code == 400
        error = response.json()
        assert error["error"] == "validation_error"
        assert error["details"]["snippet"] == draft

    @pytest.mark.asyncio
    async def test_unknown_id_redirects_to_index(self, test_client):
        response = await test_client.get("/api/snippets/does-not-exist")

        assert response.status_code == 303
        assert response.headers["location"] == "/"

    @pytest.mark.asyncio
    async def test_render_failure_redirects_to_index(self, settings, client_factory):
        renderer = HighlightRenderer(BrokenStrategy())

        async with client_factory(settings, renderer) as (_, client):
            response = await client.post(
                "/api/snippets", json={"body": "int main;", "lang": "c"}
            )
            listing = await client.get("/api/lang/c")

        assert response.status_code == 303
        assert response.headers["location"] == "/"
        assert listing.json()["snippets"] == []

    @pytest.mark.asyncio
    async def test_store_unavailable_is_503(self, settings, renderer, client_factory):
        async with client_factory(settings, renderer) as (app, client):
            app.state.connections.acquire = AsyncMock(
                side_effect=StoreConnectionError(address=settings.store_address)
            )
            response = await client.post("/api/snippets", json={"body": "x"})

        assert response.status_code == 503
        assert response.json()["error"] == "service_unavailable"


class TestListByLanguage:

    @pytest.mark.asyncio
    async def test_latest_snippets_by_language(self, test_client):
        for i in range(3):
            await test_client.post(
                "/api/snippets", json={"title": f"ruby {i}", "body": f"puts {i}", "lang": "ruby"}
            )
        await test_client.post("/api/snippets", json={"body": "print(1)", "lang": "python"})

        response = await test_client.get("/api/lang/RUBY", params={"limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["lang"] == "ruby"
        assert len(body["snippets"]) == 2
        for summary in body["snippets"]:
            assert set(summary) == {"id", "title", "created_at"}
            assert summary["title"].startswith("ruby ")

    @pytest.mark.asyncio
    async def test_zero_limit_rejected(self, test_client):
        response = await test_client.get("/api/lang/ruby", params={"limit": 0})
        assert response.status_code == 422


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


class TestAccessLog:

    def setup_method(self):
        self.handler = RecordingHandler()
        self.logger = logging.getLogger("repasties.access")
        self.previous_level = self.logger.level
        self.logger.addHandler(self.handler)
        self.logger.setLevel(logging.INFO)

    def teardown_method(self):
        self.logger.removeHandler(self.handler)
        self.logger.setLevel(self.previous_level)

    @pytest.mark.asyncio
    async def test_one_line_per_request_with_redirect_target(self, test_client):
        await test_client.get("/")
        await test_client.get("/api/snippets/does-not-exist")

        assert len(self.handler.messages) == 2
        assert self.handler.messages[0].startswith("GET / 200 ")
        assert self.handler.messages[1].startswith(
            "GET /api/snippets/does-not-exist 303 → / "
        )

    @pytest.mark.asyncio
    async def test_health_and_bodies_are_not_logged(self, test_client):
        await test_client.get("/health")
        await test_client.post(
            "/api/snippets", json={"body": "secret token 1234", "lang": "text"}
        )

        assert len(self.handler.messages) == 1
        assert self.handler.messages[0].startswith("POST /api/snippets 201 ")
        assert "secret" not in self.handler.messages[0]


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_reports_database_and_highlighter(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["highlighter"] == "echo"

    @pytest.mark.asyncio
    async def test_health_unhealthy_without_database(self, settings, renderer, client_factory):
        async with client_factory(settings, renderer) as (app, client):
            app.state.connections.acquire = AsyncMock(
                side_effect=StoreConnectionError(address=settings.store_address)
            )
            response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
