"""
Unit Tests for the Request Gateway
Tests for: auth modes, GET cache, single-flight token refresh, error mapping
"""
import asyncio
import json

import httpx
import pytest

from valuedesk.core.exceptions import GatewayError, NetworkError, SessionExpiredError
from valuedesk.core.logging_config import log_context
from valuedesk.services.cache_store import RequestCache
from valuedesk.services.gateway import CACHED_STATUS_TEXT, GatewayContext
from valuedesk.services.notifications import SESSION_EXPIRED_MESSAGE, UNAUTHORIZED_MESSAGE
from valuedesk.services.session_store import MemorySessionStore, SessionState

REFRESH_PATH = "/api/auth/refresh-token"


def _ok(request):
    return httpx.Response(200, json={"ok": True})


def _body(request) -> dict:
    return json.loads(request.content) if request.content else {}


class TestAuthModes:
    """Test how each request is authenticated"""

    @pytest.mark.asyncio
    async def test_bearer_token(self, make_gateway, memory_session):
        """Test a stored token becomes a Bearer header"""
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        gateway = make_gateway(handler, session_store=memory_session)
        await gateway.get("/valuations")

        assert seen[0].headers["Authorization"] == "Bearer old"

    @pytest.mark.asyncio
    async def test_public_endpoint_unmodified(self, make_gateway, memory_session):
        """Test login requests carry no credentials"""
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        gateway = make_gateway(handler, session_store=memory_session)
        await gateway.post("/auth/login", json={"username": "u", "password": "p"})

        assert "Authorization" not in seen[0].headers
        assert _body(seen[0]) == {"username": "u", "password": "p"}

    @pytest.mark.asyncio
    async def test_service_endpoint_uses_service_key(self, make_gateway, memory_session):
        """Test the service credential replaces the user token"""
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        gateway = make_gateway(handler, session_store=memory_session)
        await gateway.post("/free-stream-ai", json={"prompt": "x"})

        assert seen[0].headers["Authorization"] == "test-service-key"

    @pytest.mark.asyncio
    async def test_identity_merged_without_token(self, make_gateway):
        """Test a session without a token sends its identity in the body"""
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        store = MemorySessionStore(SessionState(username="asha", role="engineer", client_id="c-2"))
        gateway = make_gateway(handler, session_store=store)
        await gateway.post("/valuations", json={"note": "hi"})

        assert "Authorization" not in seen[0].headers
        assert _body(seen[0]) == {"note": "hi", "username": "asha", "role": "engineer", "clientId": "c-2"}

    @pytest.mark.asyncio
    async def test_guest_identity_without_session(self, make_gateway):
        """Test requests without any session go out as guest"""
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        gateway = make_gateway(handler)
        await gateway.post("/valuations")

        assert _body(seen[0]) == {"username": "guest", "role": "guest", "clientId": "guest"}

    @pytest.mark.asyncio
    async def test_get_body_untouched(self, make_gateway):
        """Test identity is not added to GET requests"""
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        gateway = make_gateway(handler)
        await gateway.get("/valuations")

        assert seen[0].content == b""


class TestGetCache:
    """Test cached GET responses"""

    @pytest.mark.asyncio
    async def test_second_get_served_from_cache(self, make_gateway, memory_session):
        """Test a repeat GET is answered without a network call"""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=[{"uniqueId": "VAL-1"}])

        gateway = make_gateway(handler, session_store=memory_session)
        first = await gateway.get("/valuations", params={"username": "reviewer"})
        second = await gateway.get("/valuations", params={"username": "reviewer"})

        assert len(calls) == 1
        assert first.cached is False
        assert second.cached is True
        assert second.status_text == CACHED_STATUS_TEXT
        assert second.data == first.data

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, make_gateway, memory_session, clock):
        """Test cache entries are reused before the TTL and refetched after"""
        calls = []

        def handler(request):
            calls.append(request)
            return _ok(request)

        gateway = make_gateway(handler, session_store=memory_session, ttl=300)
        await gateway.get("/valuations")

        clock.advance(299)
        await gateway.get("/valuations")
        assert len(calls) == 1

        clock.advance(2)
        await gateway.get("/valuations")
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_different_params_not_shared(self, make_gateway):
        """Test the query string is part of the cache key"""
        calls = []

        def handler(request):
            calls.append(request)
            return _ok(request)

        gateway = make_gateway(handler)
        await gateway.get("/valuations", params={"username": "a"})
        await gateway.get("/valuations", params={"username": "b"})

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_invalidate_cache(self, make_gateway):
        """Test invalidation forces a refetch"""
        calls = []

        def handler(request):
            calls.append(request)
            return _ok(request)

        gateway = make_gateway(handler)
        await gateway.get("/valuations")
        assert gateway.invalidate_cache("/valuations") == 1
        await gateway.get("/valuations")

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_errors_not_cached(self, make_gateway):
        """Test failed responses are not stored"""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={"message": "down"})

        gateway = make_gateway(handler)
        for _ in range(2):
            with pytest.raises(GatewayError):
                await gateway.get("/valuations")

        assert len(calls) == 2

    def test_context_keeps_empty_injected_cache(self, clock, recording_sink):
        """Test an empty cache and sink passed to create() are the ones used"""
        cache = RequestCache(ttl=60, clock=clock)
        context = GatewayContext.create(session_store=MemorySessionStore(), sink=recording_sink, cache=cache)

        assert len(cache) == 0
        assert context.cache is cache
        assert context.notifications.sink is recording_sink

    @pytest.mark.asyncio
    async def test_request_binds_log_context(self, make_gateway, memory_session):
        """Test each call gets a fresh request id tagged with the signed-in user"""
        gateway = make_gateway(_ok, session_store=memory_session)

        await gateway.get("/valuations")
        first = log_context()
        await gateway.get("/ubi-apf")
        second = log_context()

        assert first["username"] == "reviewer"
        assert first["request_id"]
        assert second["request_id"] != first["request_id"]


class TestTokenRefresh:
    """Test the 401 refresh-and-replay flow"""

    @pytest.mark.asyncio
    async def test_concurrent_401s_refresh_once(self, make_gateway, memory_session):
        """Test three parallel 401s share one refresh and all succeed"""
        refreshes = []

        async def handler(request):
            if request.url.path == REFRESH_PATH:
                refreshes.append(_body(request))
                await asyncio.sleep(0.05)
                return httpx.Response(200, json={"token": "new"})
            if request.headers.get("Authorization") == "Bearer old":
                await asyncio.sleep(0.01)
                return httpx.Response(401, json={"message": "Unauthorized"})
            return httpx.Response(200, json={"path": request.url.path})

        gateway = make_gateway(handler, session_store=memory_session)
        responses = await asyncio.gather(
            gateway.get("/valuations"),
            gateway.get("/bof-maharashtra"),
            gateway.get("/ubi-apf"),
        )

        assert len(refreshes) == 1
        assert refreshes[0] == {"refreshToken": "refresh-1"}
        assert [r.status_code for r in responses] == [200, 200, 200]
        assert memory_session.load().token == "new"

    @pytest.mark.asyncio
    async def test_refresh_failure_expires_session(self, make_gateway, memory_session, recording_sink):
        """Test a failed refresh clears the session and notifies once"""
        async def handler(request):
            if request.url.path == REFRESH_PATH:
                return httpx.Response(500, json={"message": "refresh broken"})
            return httpx.Response(401, json={"message": "Unauthorized"})

        gateway = make_gateway(handler, session_store=memory_session)
        with pytest.raises(SessionExpiredError):
            await gateway.get("/valuations")

        assert memory_session.load() is None
        assert recording_sink.messages == [SESSION_EXPIRED_MESSAGE]

    @pytest.mark.asyncio
    async def test_queued_requests_reject_when_refresh_fails(self, make_gateway, memory_session, recording_sink):
        """Test every waiting request fails with the refresh"""
        async def handler(request):
            if request.url.path == REFRESH_PATH:
                await asyncio.sleep(0.05)
                return httpx.Response(400, json={"message": "invalid refresh token"})
            await asyncio.sleep(0.01)
            return httpx.Response(401, json={"message": "Unauthorized"})

        gateway = make_gateway(handler, session_store=memory_session)
        results = await asyncio.gather(
            gateway.get("/valuations"),
            gateway.get("/ubi-apf"),
            return_exceptions=True,
        )

        assert all(isinstance(r, SessionExpiredError) for r in results)
        assert recording_sink.messages == [SESSION_EXPIRED_MESSAGE]

    @pytest.mark.asyncio
    async def test_no_refresh_token_clears_session(self, make_gateway, recording_sink):
        """Test a 401 without a refresh token logs the user out"""
        store = MemorySessionStore(SessionState(username="u", role="r", client_id="c", token="old"))

        def handler(request):
            return httpx.Response(401, json={"message": "Unauthorized"})

        gateway = make_gateway(handler, session_store=store)
        with pytest.raises(GatewayError) as exc_info:
            await gateway.get("/valuations")

        assert exc_info.value.status_code == 401
        assert store.load() is None
        assert recording_sink.messages == [UNAUTHORIZED_MESSAGE]

    @pytest.mark.asyncio
    async def test_replay_still_unauthorized(self, make_gateway, memory_session, recording_sink):
        """Test a replayed request is not refreshed a second time"""
        refreshes = []

        def handler(request):
            if request.url.path == REFRESH_PATH:
                refreshes.append(request)
                return httpx.Response(200, json={"token": "new"})
            return httpx.Response(401, json={"message": "Unauthorized"})

        gateway = make_gateway(handler, session_store=memory_session)
        with pytest.raises(GatewayError):
            await gateway.get("/valuations")

        assert len(refreshes) == 1
        assert recording_sink.messages == [UNAUTHORIZED_MESSAGE]

    @pytest.mark.asyncio
    async def test_other_401_not_refreshed(self, make_gateway, memory_session):
        """Test 401s that do not say Unauthorized skip the refresh"""
        refreshes = []

        def handler(request):
            if request.url.path == REFRESH_PATH:
                refreshes.append(request)
                return httpx.Response(200, json={"token": "new"})
            return httpx.Response(401, json={"message": "Invalid credentials"})

        gateway = make_gateway(handler, session_store=memory_session)
        with pytest.raises(GatewayError):
            await gateway.get("/valuations")

        assert refreshes == []
        assert memory_session.load().token == "old"


class TestErrorMapping:
    """Test non-401 failures"""

    @pytest.mark.asyncio
    async def test_server_error(self, make_gateway):
        """Test 5xx responses raise GatewayError with the upstream message"""
        def handler(request):
            return httpx.Response(500, json={"message": "database unavailable"})

        gateway = make_gateway(handler)
        with pytest.raises(GatewayError) as exc_info:
            await gateway.get("/valuations")

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "database unavailable"
        assert exc_info.value.payload == {"message": "database unavailable"}

    @pytest.mark.asyncio
    async def test_connection_error(self, make_gateway):
        """Test transport failures raise NetworkError"""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway = make_gateway(handler)
        with pytest.raises(NetworkError):
            await gateway.get("/valuations")

    @pytest.mark.asyncio
    async def test_text_body_decoded(self, make_gateway):
        """Test non-JSON bodies are returned as text"""
        def handler(request):
            return httpx.Response(200, text="pong")

        gateway = make_gateway(handler)
        response = await gateway.get("/ping")

        assert response.ok
        assert response.data == "pong"
