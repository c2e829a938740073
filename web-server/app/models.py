"""Pydantic models for web-server.

Two kinds of models live here:
- request bodies we accept (`CreatePostRequest`)
- envelopes we return (every route wraps its payload the same way)

Upstream documents (`user`, `posts`, `response`) are typed as `Any` on purpose:
they are passed through exactly as the upstream sent them. A partial typed
model would silently drop fields we didn't think of.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class CreatePostRequest(BaseModel):
    """Request body for `POST /api/create-post`.

    Missing fields (and explicit nulls) fall back to the type default
    ("" / 0) instead of failing the request. Unknown fields are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    body: str = ""
    userId: int = 0

    @field_validator("title", "body", mode="before")
    @classmethod
    def _null_text(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("userId", mode="before")
    @classmethod
    def _null_user_id(cls, v: Any) -> Any:
        return 0 if v is None else v


class UpstreamPost(BaseModel):
    """Payload sent to the upstream `POST /posts`. Field order is fixed."""

    title: str
    body: str
    userId: int


class HealthEnvelope(BaseModel):
    """Response for `GET /`."""

    message: str
    timestamp: datetime


class UserAggregateEnvelope(BaseModel):
    """Response for `GET /api/user/{id}`."""

    message: str
    user: Any
    posts: Any
    timestamp: datetime


class CreatePostResultEnvelope(BaseModel):
    """Response for `POST /api/create-post`.

    `statusCode` is the upstream's status, not ours (ours is always 200 here).
    """

    message: str
    statusCode: int
    response: Any


class ProblemDetails(BaseModel):
    """Problem body (RFC 9457 shape) returned by every failure path."""

    type: str = "https://tools.ietf.org/html/rfc9110#section-15.6.1"
    title: str = "An error occurred while processing your request."
    status: int = 500
    detail: str | None = None
