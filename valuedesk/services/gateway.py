"""
Request Gateway
===============

Single HTTP client wrapper for the valuation API.

Per request it decides how to authenticate:

    public endpoint (login/logout)    -> sent unmodified
    service endpoint (AI passthrough) -> fixed service credential header
    session with access token         -> Authorization: Bearer <token>
    session without a token           -> identity fields merged into the body
    no session                        -> guest identity merged into the body

GET responses are cached for REQUEST_CACHE_TTL seconds. A 401 whose message
says "Unauthorized" triggers at most one token refresh at a time; requests that
hit 401 while a refresh is running wait for it and replay with the new token.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from valuedesk.core.config import settings
from valuedesk.core.exceptions import (
    GatewayError,
    MissingRefreshTokenError,
    NetworkError,
    SessionExpiredError,
)
from valuedesk.core.logging_config import bind_request, logger
from valuedesk.services.cache_store import RequestCache, make_cache_key
from valuedesk.services.notifications import (
    SESSION_EXPIRED_MESSAGE,
    UNAUTHORIZED_MESSAGE,
    NotificationCenter,
    NotificationSink,
)
from valuedesk.services.session_store import MemorySessionStore, SessionState, SessionStore


CACHED_STATUS_TEXT = "OK (Cached)"
BODY_METHODS = ("POST", "PUT", "PATCH", "DELETE")


@dataclass
class GatewayResponse:
    status_code: int
    data: Any
    status_text: str = ""
    cached: bool = False
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass
class GatewayContext:
    """
    Process-wide gateway state: read cache, notifications, session and the
    in-flight refresh. Build one with ``create()`` and share it.
    """
    cache: RequestCache
    notifications: NotificationCenter
    session_store: MemorySessionStore
    refresh_task: Optional[asyncio.Future] = None

    @classmethod
    def create(
        cls,
        session_store: Optional[MemorySessionStore] = None,
        sink: Optional[NotificationSink] = None,
        cache: Optional[RequestCache] = None,
    ) -> "GatewayContext":
        return cls(
            cache=cache if cache is not None else RequestCache(),
            notifications=NotificationCenter(sink),
            session_store=session_store if session_store is not None else SessionStore(),
        )


def _matches(url: str, endpoints) -> bool:
    return any(endpoint in url for endpoint in endpoints)


class RequestGateway:
    """Authenticated, caching HTTP client"""

    def __init__(
        self,
        context: Optional[GatewayContext] = None,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
    ):
        self.context = context or GatewayContext.create()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=settings.REQUEST_TIMEOUT,
        )

    async def __aenter__(self) -> "RequestGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    @property
    def session(self) -> Optional[SessionState]:
        return self.context.session_store.load()

    # ========== Public API ==========

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> GatewayResponse:
        """
        Send a request through the auth, cache and refresh pipeline.

        Raises:
            GatewayError: non-2xx response that could not be recovered
            SessionExpiredError: the token refresh failed
            NetworkError: the request never got a response
        """
        session = self.session
        bind_request(session.username if session else None)
        return await self._dispatch(method.upper(), url, params, json, headers, retried=False)

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> GatewayResponse:
        return await self.request("GET", url, params=params, **kwargs)

    async def post(self, url: str, json: Any = None, **kwargs) -> GatewayResponse:
        return await self.request("POST", url, json=json, **kwargs)

    async def put(self, url: str, json: Any = None, **kwargs) -> GatewayResponse:
        return await self.request("PUT", url, json=json, **kwargs)

    async def delete(self, url: str, **kwargs) -> GatewayResponse:
        return await self.request("DELETE", url, **kwargs)

    def invalidate_cache(self, pattern: str) -> int:
        return self.context.cache.invalidate(pattern)

    def clear_cache(self) -> None:
        self.context.cache.clear()

    def reset_unauthorized_flag(self) -> None:
        self.context.notifications.reset()

    # ========== Pipeline ==========

    def _prepare(self, method: str, url: str, json: Any, headers: Optional[Dict[str, str]]):
        """Headers, body and the access token used (if any) for one attempt"""
        request_headers = dict(headers or {})
        body = json

        if _matches(url, settings.PUBLIC_ENDPOINTS):
            return request_headers, body, None

        if _matches(url, settings.SERVICE_ENDPOINTS):
            request_headers["Authorization"] = settings.SERVICE_API_KEY
            return request_headers, body, None

        session = self.session
        if session is not None and session.token:
            request_headers["Authorization"] = f"Bearer {session.token}"
            return request_headers, body, session.token

        identity = (session or SessionState.guest()).identity()
        if method in BODY_METHODS and (body is None or isinstance(body, dict)):
            body = {**(body or {}), **identity}
        return request_headers, body, None

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def _dispatch(self, method, url, params, json, headers, retried: bool) -> GatewayResponse:
        cache_key = make_cache_key(url, params) if method == "GET" else None
        if cache_key is not None:
            cached = self.context.cache.get(cache_key)
            if cached is not None:
                return GatewayResponse(200, cached, CACHED_STATUS_TEXT, cached=True)

        request_headers, body, token_used = self._prepare(method, url, json, headers)

        start = time.time()
        try:
            response = await self.client.request(
                method, url, params=params, json=body, headers=request_headers
            )
        except httpx.HTTPError as e:
            logger.warning(f"[Gateway] {method} {url} failed: {e}")
            raise NetworkError(f"Request failed: {e}", url=url)

        logger.log_request(method, url, response.status_code, (time.time() - start) * 1000)
        data = self._decode(response)

        if response.status_code == 401:
            return await self._handle_unauthorized(
                method, url, params, json, headers, retried, token_used, data
            )

        if response.is_error:
            message = data.get("message", "") if isinstance(data, dict) else ""
            raise GatewayError(response.status_code, message or response.reason_phrase, payload=data)

        if cache_key is not None and response.status_code == 200:
            self.context.cache.set(cache_key, data)

        return GatewayResponse(
            status_code=response.status_code,
            data=data,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
        )

    async def _handle_unauthorized(self, method, url, params, json, headers, retried, token_used, data):
        message = data.get("message") if isinstance(data, dict) else None
        is_unauthorized = isinstance(message, str) and "Unauthorized" in message
        session = self.session

        if is_unauthorized and session is not None and session.refresh_token and not retried:
            await self._refreshed_token(token_used)
            return await self._dispatch(method, url, params, json, headers, retried=True)

        if is_unauthorized and session is not None and not session.refresh_token:
            # Nothing to refresh with
            self.context.session_store.clear()
            logger.log_auth_event("refresh", False, session.username, reason="no refresh token")

        self.context.notifications.notify_unauthorized(UNAUTHORIZED_MESSAGE)
        raise GatewayError(401, message or "Unauthorized", payload=data)

    async def _refreshed_token(self, token_used: Optional[str]) -> str:
        """New access token, refreshing at most once across concurrent callers"""
        context = self.context
        if context.refresh_task is not None and not context.refresh_task.done():
            logger.debug("[Gateway] Waiting for in-flight token refresh")
            return await asyncio.shield(context.refresh_task)

        current = self.session
        if current is not None and current.token and current.token != token_used:
            # Refreshed after this request went out
            return current.token

        context.refresh_task = asyncio.ensure_future(self._refresh())
        return await asyncio.shield(context.refresh_task)

    def _expire_session(self, username: Optional[str], reason: str) -> SessionExpiredError:
        self.context.session_store.clear()
        self.context.notifications.notify_unauthorized(SESSION_EXPIRED_MESSAGE)
        logger.log_auth_event("refresh", False, username, reason=reason)
        return SessionExpiredError()

    async def _refresh(self) -> str:
        session = self.session
        if session is None or not session.refresh_token:
            raise self._expire_session(None, MissingRefreshTokenError().message)

        try:
            response = await self.client.post(
                settings.REFRESH_ENDPOINT, json={"refreshToken": session.refresh_token}
            )
            response.raise_for_status()
            token = response.json()["token"]
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise self._expire_session(session.username, str(e)) from e

        self.context.session_store.save(session.with_token(token))
        logger.log_auth_event("refresh", True, session.username)
        return token
