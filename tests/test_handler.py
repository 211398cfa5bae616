"""Tests for the streamable HTTP session endpoint."""

from __future__ import annotations

import asyncio

import pytest
from conftest import FakeClock, FakeSessionFactory, FakeSessionServer, asgi_request
from starlette.datastructures import Headers

from sequentum_mcp.sessions import McpConnectionHandler, SessionStore
from sequentum_mcp.sessions.handler import extract_bearer_token

AUTH = {"Authorization": "Bearer token-1"}


class GatedSessionFactory(FakeSessionFactory):
    """Session factory that blocks until its gate is opened."""

    def __init__(self, *servers: FakeSessionServer):
        super().__init__(*servers)
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def __call__(self, access_token: str | None) -> FakeSessionServer:
        self.entered.set()
        await self.gate.wait()
        return await super().__call__(access_token)


def make_handler(
    store: SessionStore,
    factory: FakeSessionFactory,
    *,
    require_auth: bool = True,
    debug: bool = False,
) -> McpConnectionHandler:
    return McpConnectionHandler(store, factory, require_auth=require_auth, debug=debug)


class TestExtractBearerToken:
    """Tests for extract_bearer_token function."""

    def test_bearer(self) -> None:
        """Test a well-formed bearer header."""
        assert extract_bearer_token(Headers({"authorization": "Bearer abc"})) == "abc"

    def test_missing_or_other_scheme(self) -> None:
        """Test headers that carry no bearer token."""
        assert extract_bearer_token(Headers({})) is None
        assert extract_bearer_token(Headers({"authorization": "Basic abc"})) is None
        assert extract_bearer_token(Headers({"authorization": "Bearer "})) is None


class TestOpenSession:
    """Tests for POST requests without a known session."""

    @pytest.mark.asyncio
    async def test_auth_challenge(self) -> None:
        """Test that a new session without a token gets a 401 challenge."""
        store = SessionStore()
        factory = FakeSessionFactory(FakeSessionServer())

        response = await asgi_request(make_handler(store, factory), "POST")

        assert response.status == 401
        assert response.headers["www-authenticate"] == 'Bearer resource="http://testserver"'
        error = response.json()["error"]
        assert error["code"] == -32001
        assert error["message"] == "Authentication required"
        assert error["data"] == {
            "protectedResourceMetadata": "http://testserver/.well-known/oauth-protected-resource"
        }
        assert response.json()["id"] is None
        assert factory.tokens == []
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_session_registered_on_success(self) -> None:
        """Test that a successful initialize registers the echoed session id."""
        store = SessionStore()
        server = FakeSessionServer("abc")
        factory = FakeSessionFactory(server)

        response = await asgi_request(make_handler(store, factory), "POST", headers=AUTH)

        assert response.status == 200
        assert response.headers["mcp-session-id"] == "abc"
        assert factory.tokens == ["token-1"]
        assert store.get("abc").server is server
        assert server.close_calls == 0

    @pytest.mark.asyncio
    async def test_auth_not_required(self) -> None:
        """Test that sessions open without a token when auth is disabled."""
        store = SessionStore()
        factory = FakeSessionFactory(FakeSessionServer("abc"))

        response = await asgi_request(make_handler(store, factory, require_auth=False), "POST")

        assert response.status == 200
        assert factory.tokens == [None]
        assert "abc" in store

    @pytest.mark.asyncio
    async def test_concurrent_connections_get_distinct_sessions(self) -> None:
        """Test that two clients opening sessions each get their own."""
        store = SessionStore()
        first, second = FakeSessionServer("one"), FakeSessionServer("two")
        handler = make_handler(store, FakeSessionFactory(first, second))

        r1 = await asgi_request(handler, "POST", headers={"Authorization": "Bearer a"})
        r2 = await asgi_request(handler, "POST", headers={"Authorization": "Bearer b"})

        assert r1.headers["mcp-session-id"] == "one"
        assert r2.headers["mcp-session-id"] == "two"
        assert store.get("one").server is first
        assert store.get("two").server is second

    @pytest.mark.asyncio
    async def test_unknown_session_id_opens_new_session(self) -> None:
        """Test that a stale session id on POST starts a fresh session."""
        store = SessionStore()
        factory = FakeSessionFactory(FakeSessionServer("fresh"))

        response = await asgi_request(
            make_handler(store, factory), "POST", headers={**AUTH, "mcp-session-id": "expired"}
        )

        assert response.status == 200
        assert "fresh" in store
        assert "expired" not in store

    @pytest.mark.asyncio
    async def test_failed_initialize_discards_server(self) -> None:
        """Test that a non-2xx answer closes the pending server and registers nothing."""
        store = SessionStore()
        server = FakeSessionServer("abc", status=400)

        response = await asgi_request(make_handler(store, FakeSessionFactory(server)), "POST", headers=AUTH)

        assert response.status == 400
        assert len(store) == 0
        assert server.close_calls == 1

    @pytest.mark.asyncio
    async def test_capacity_rejection(self) -> None:
        """Test that a full store answers 503 without opening a server."""
        store = SessionStore(max_sessions=1)
        factory = FakeSessionFactory(FakeSessionServer("a"), FakeSessionServer("b"))
        handler = make_handler(store, factory)

        await asgi_request(handler, "POST", headers=AUTH)
        response = await asgi_request(handler, "POST", headers=AUTH)

        assert response.status == 503
        assert response.json()["error"] == {
            "code": -32000,
            "message": "Server at capacity. Please try again later.",
        }
        assert factory.tokens == ["token-1"]
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_concurrent_opens_respect_capacity(self) -> None:
        """Test that an open arriving while another is still opening gets the capacity error."""
        store = SessionStore(max_sessions=1)
        factory = GatedSessionFactory(FakeSessionServer("a"), FakeSessionServer("b"))
        handler = make_handler(store, factory)

        first = asyncio.create_task(asgi_request(handler, "POST", headers=AUTH))
        await factory.entered.wait()
        second = await asgi_request(handler, "POST", headers=AUTH)
        factory.gate.set()
        first_response = await first

        assert second.status == 503
        assert "mcp-session-id" not in second.headers
        assert first_response.status == 200
        assert first_response.headers["mcp-session-id"] == "a"
        assert "a" in store
        assert factory.tokens == ["token-1"]
        assert store.pending == 0

    @pytest.mark.asyncio
    async def test_store_drained_while_opening(self) -> None:
        """Test that a session finishing its open after shutdown drained the store is closed."""
        store = SessionStore()
        server = FakeSessionServer("late")
        factory = GatedSessionFactory(server)
        handler = make_handler(store, factory)

        opening = asyncio.create_task(asgi_request(handler, "POST", headers=AUTH))
        await factory.entered.wait()
        store.drain()
        factory.gate.set()
        await opening

        assert "late" not in store
        assert server.close_calls == 1
        assert store.pending == 0

    @pytest.mark.asyncio
    async def test_closed_store_rejects_new_sessions(self) -> None:
        """Test that opens after shutdown began answer 503 without opening a server."""
        store = SessionStore()
        store.drain()
        factory = FakeSessionFactory(FakeSessionServer("abc"))

        response = await asgi_request(make_handler(store, factory), "POST", headers=AUTH)

        assert response.status == 503
        assert response.json()["error"]["message"] == "Server is shutting down."
        assert factory.tokens == []

    @pytest.mark.asyncio
    async def test_failed_open_releases_slot(self) -> None:
        """Test that a rejected initialize frees its capacity slot."""
        store = SessionStore(max_sessions=1)
        factory = FakeSessionFactory(FakeSessionServer("bad", status=400), FakeSessionServer("good"))
        handler = make_handler(store, factory)

        await asgi_request(handler, "POST", headers=AUTH)
        response = await asgi_request(handler, "POST", headers=AUTH)

        assert response.status == 200
        assert "good" in store
        assert store.pending == 0

    @pytest.mark.asyncio
    async def test_factory_error_answers_500(self) -> None:
        """Test that a failure opening a session gives a sanitised 500."""
        store = SessionStore()

        class BrokenFactory(FakeSessionFactory):
            async def __call__(self, access_token: str | None) -> FakeSessionServer:
                raise RuntimeError("upstream unavailable")

        response = await asgi_request(make_handler(store, BrokenFactory()), "POST", headers=AUTH)

        assert response.status == 500
        assert response.json()["error"] == {"code": -32603, "message": "Internal server error"}

    @pytest.mark.asyncio
    async def test_debug_error_details(self) -> None:
        """Test that debug mode reports the error message."""
        store = SessionStore()
        server = FakeSessionServer("abc", error=RuntimeError("transport exploded"))

        response = await asgi_request(
            make_handler(store, FakeSessionFactory(server), debug=True), "POST", headers=AUTH
        )

        assert response.status == 500
        assert response.json()["error"]["message"] == "transport exploded"
        assert server.close_calls == 1
        assert len(store) == 0


class TestExistingSession:
    """Tests for requests addressed to a registered session."""

    @pytest.mark.asyncio
    async def test_post_reuses_session(self, clock: FakeClock) -> None:
        """Test that a known session handles the request and adopts the new token."""
        store = SessionStore(clock=clock)
        server = FakeSessionServer("abc")
        handler = make_handler(store, FakeSessionFactory(server))
        await asgi_request(handler, "POST", headers=AUTH)
        clock.advance(120)

        response = await asgi_request(
            handler, "POST", headers={"Authorization": "Bearer token-2", "mcp-session-id": "abc"}
        )

        assert response.status == 200
        assert server.requests == 2
        assert store.get("abc").last_activity_at == clock.now
        server.api_client.set_access_token.assert_called_with("token-2")

    @pytest.mark.asyncio
    async def test_post_to_session_without_token(self) -> None:
        """Test that an established session keeps working without a token header."""
        store = SessionStore()
        server = FakeSessionServer("abc")
        handler = make_handler(store, FakeSessionFactory(server))
        await asgi_request(handler, "POST", headers=AUTH)

        response = await asgi_request(handler, "POST", headers={"mcp-session-id": "abc"})

        assert response.status == 200
        assert server.requests == 2

    @pytest.mark.asyncio
    async def test_get_missing_session_id(self) -> None:
        """Test that an SSE stream needs a session id."""
        response = await asgi_request(make_handler(SessionStore(), FakeSessionFactory()), "GET")

        assert response.status == 400
        assert response.json()["error"]["message"] == "Missing session ID for SSE stream"

    @pytest.mark.asyncio
    async def test_get_unknown_session(self) -> None:
        """Test that an SSE stream for an unknown session is refused."""
        response = await asgi_request(
            make_handler(SessionStore(), FakeSessionFactory()), "GET", headers={"mcp-session-id": "nope"}
        )

        assert response.status == 400
        assert response.json()["error"]["message"] == "Invalid or expired session"

    @pytest.mark.asyncio
    async def test_get_known_session(self) -> None:
        """Test that an SSE stream is handed to the session's transport."""
        store = SessionStore()
        server = FakeSessionServer("abc")
        handler = make_handler(store, FakeSessionFactory(server))
        await asgi_request(handler, "POST", headers=AUTH)

        response = await asgi_request(handler, "GET", headers={"mcp-session-id": "abc"})

        assert response.status == 200
        assert server.requests == 2

    @pytest.mark.asyncio
    async def test_delete_removes_then_closes(self) -> None:
        """Test that termination unregisters the session and closes it once."""
        store = SessionStore()
        server = FakeSessionServer("abc")
        handler = make_handler(store, FakeSessionFactory(server))
        await asgi_request(handler, "POST", headers=AUTH)

        response = await asgi_request(handler, "DELETE", headers={"mcp-session-id": "abc"})

        assert response.status == 200
        assert response.json() == {"message": "Session terminated"}
        assert "abc" not in store
        assert server.close_calls == 1

    @pytest.mark.asyncio
    async def test_delete_unknown_session(self) -> None:
        """Test that terminating an unknown session still succeeds."""
        response = await asgi_request(
            make_handler(SessionStore(), FakeSessionFactory()), "DELETE", headers={"mcp-session-id": "gone"}
        )

        assert response.status == 200

    @pytest.mark.asyncio
    async def test_method_not_allowed(self) -> None:
        """Test that other methods are refused."""
        response = await asgi_request(make_handler(SessionStore(), FakeSessionFactory()), "PUT")

        assert response.status == 405
        assert response.headers["allow"] == "GET, POST, DELETE"
