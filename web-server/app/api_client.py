"""HTTP client for calling the upstream JSON test API.

Why is this its own module?
- Keeps the FastAPI route handlers small and readable.
- All outbound traffic goes through one place, which is exactly what you want
  when a debugging proxy sits on the network path.
- Tests swap the network for an `httpx.MockTransport` without touching routes.
"""

from __future__ import annotations

import logging
import ssl
from typing import Any

import httpx

from .config import Settings
from .models import UpstreamPost

logger = logging.getLogger("upstream")


class UpstreamError(Exception):
    """The upstream call failed at the transport/HTTP level.

    Covers DNS, connection, timeout and TLS errors, non-2xx statuses where the
    call checks for them, and bodies that are not valid JSON.
    """


async def _log_request(request: httpx.Request) -> None:
    logger.info("-> %s %s", request.method, request.url)


async def _log_response(response: httpx.Response) -> None:
    request = response.request
    logger.info("<- %s %s %s", response.status_code, request.method, request.url)


def _tls_verify(settings: Settings) -> ssl.SSLContext | bool:
    if not settings.upstream_verify_tls:
        return False
    if settings.upstream_ca_bundle:
        # Trust the default store plus the extra bundle (e.g. the proxy's root CA).
        ctx = ssl.create_default_context()
        ctx.load_verify_locations(cafile=settings.upstream_ca_bundle)
        return ctx
    return True


def build_async_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the shared `httpx.AsyncClient` (connection pooling, keep-alive).

    Created once at app startup and reused by every request.
    """
    kwargs: dict[str, Any] = {
        "base_url": settings.upstream_base_url,
        "timeout": httpx.Timeout(settings.upstream_timeout_seconds),
        "trust_env": settings.upstream_trust_env,
        "event_hooks": {"request": [_log_request], "response": [_log_response]},
    }
    if transport is not None:
        kwargs["transport"] = transport
    else:
        kwargs["verify"] = _tls_verify(settings)
        if settings.upstream_proxy_url:
            kwargs["proxy"] = settings.upstream_proxy_url
    return httpx.AsyncClient(**kwargs)


def _parse_json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        raise UpstreamError(f"Invalid JSON from {resp.request.url}: {e}") from e


class UpstreamClient:
    """The three upstream calls the service makes."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            resp = await self._client.get(path, params=params)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("GET %s failed: %s", path, e)
            raise UpstreamError(str(e)) from e
        return _parse_json(resp)

    async def get_user(self, user_id: int) -> Any:
        """GET /users/{id}. Raises UpstreamError on non-2xx."""
        return await self._get_json(f"/users/{user_id}")

    async def get_posts_for_user(self, user_id: int) -> Any:
        """GET /posts?userId={id}. Raises UpstreamError on non-2xx."""
        return await self._get_json("/posts", params={"userId": user_id})

    async def create_post(self, post: UpstreamPost) -> tuple[int, Any]:
        """POST /posts and return (upstream status, parsed body).

        The status is returned as data, not checked: a 4xx/5xx from upstream
        is still a successful round trip from our point of view.
        """
        try:
            resp = await self._client.post("/posts", json=post.model_dump())
        except httpx.HTTPError as e:
            logger.warning("POST /posts failed: %s", e)
            raise UpstreamError(str(e)) from e
        return resp.status_code, _parse_json(resp)

    async def aclose(self) -> None:
        await self._client.aclose()
