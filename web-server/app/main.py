"""web-server FastAPI application.

Responsibilities:
- `GET /` health check.
- `GET /api/user/{id}`: fetch a user and their posts from the upstream API.
- `POST /api/create-post`: forward a new post to the upstream API.

Important note:
Nothing is stored here. Every response is built from the current request and
whatever the upstream returned for it.

Error policy (same for both forwarding routes):
- `UpstreamError` (network / HTTP failure) -> 500 problem body with the message.
- anything else is a bug -> logged, generic 500 problem body, no details.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .api_client import UpstreamClient, UpstreamError, build_async_client
from .config import Settings, load_settings
from .models import (
    CreatePostRequest,
    CreatePostResultEnvelope,
    HealthEnvelope,
    ProblemDetails,
    UpstreamPost,
    UserAggregateEnvelope,
)

logger = logging.getLogger("web-server")

HEALTH_MESSAGE = "Traffic Capture Demo API"

router = APIRouter()


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging. The level comes from `Settings.log_level`."""
    logging.basicConfig(level=level, format="%(asctime)s [%(name)s] %(levelname)s %(message)s")


def problem(detail: str | None, status: int = 500) -> JSONResponse:
    """Build an `application/problem+json` response."""
    body = ProblemDetails(status=status, detail=detail)
    return JSONResponse(
        status_code=status,
        content=body.model_dump(),
        media_type="application/problem+json",
    )


def _error_detail(settings: Settings, prefix: str, err: Exception) -> str:
    if settings.expose_error_details:
        return f"{prefix}: {err}"
    return prefix


def get_upstream(request: Request) -> UpstreamClient:
    """Dependency: the shared upstream client created at startup."""
    return request.app.state.upstream


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/", response_model=HealthEnvelope)
async def health() -> HealthEnvelope:
    """Basic liveness endpoint."""
    return HealthEnvelope(message=HEALTH_MESSAGE, timestamp=datetime.now(timezone.utc))


@router.get("/api/user/{id}", response_model=UserAggregateEnvelope)
async def get_user(
    id: int,
    upstream: UpstreamClient = Depends(get_upstream),
    settings: Settings = Depends(get_settings),
):
    """Return a user and their posts, as the upstream sent them.

    The two calls run one after the other; if the user call fails we never
    ask for the posts.
    """
    try:
        user = await upstream.get_user(id)
        posts = await upstream.get_posts_for_user(id)
    except UpstreamError as e:
        return problem(_error_detail(settings, "Error calling external API", e))

    return UserAggregateEnvelope(
        message="Data retrieved successfully",
        user=user,
        posts=posts,
        timestamp=datetime.now(timezone.utc),
    )


@router.post("/api/create-post", response_model=CreatePostResultEnvelope)
async def create_post(
    req: CreatePostRequest,
    upstream: UpstreamClient = Depends(get_upstream),
    settings: Settings = Depends(get_settings),
):
    """Forward a post to the upstream and echo what it answered.

    We answer 200 whenever the upstream answered at all; its own status code
    is reported in `statusCode`.
    """
    post = UpstreamPost(title=req.title, body=req.body, userId=req.userId)

    try:
        status_code, response = await upstream.create_post(post)
    except UpstreamError as e:
        return problem(_error_detail(settings, "Error", e))

    return CreatePostResultEnvelope(
        message="Post created successfully",
        statusCode=status_code,
        response=response,
    )


async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    """Top-level fault boundary for bugs (anything that isn't an UpstreamError)."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return problem(None)


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the app.

    Args:
        settings: explicit configuration; defaults to `load_settings()` (env vars).
        transport: optional httpx transport for the upstream client. Tests pass
            an `httpx.MockTransport` here instead of hitting the network.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Traffic Capture Demo API")
    app.state.settings = settings
    app.state.upstream = None

    @app.on_event("startup")
    async def on_startup() -> None:
        """Create the upstream HTTP client once when the app starts."""
        app.state.upstream = UpstreamClient(build_async_client(settings, transport))
        logger.info("Upstream: %s", settings.upstream_base_url)
        if settings.upstream_proxy_url:
            logger.info("Outbound traffic goes through proxy %s", settings.upstream_proxy_url)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        if app.state.upstream is not None:
            await app.state.upstream.aclose()
            app.state.upstream = None

    app.add_exception_handler(Exception, unhandled_exception)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = load_settings()
    uvicorn.run("app.main:app", host=_settings.host, port=_settings.port, log_level=_settings.log_level.lower())
