"""Shared fixtures: a fake upstream API behind an httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app

UPSTREAM = "https://upstream.test"

USERS = {
    1: {"id": 1, "name": "Leanne Graham", "address": {"city": "Gwenborough", "geo": {"lat": "-37.3159"}}},
}
POSTS = {
    1: [
        {"userId": 1, "id": 1, "title": "sunt aut facere", "body": "quia et suscipit"},
        {"userId": 1, "id": 2, "title": "qui est esse", "body": "est rerum tempore"},
    ],
}


class FakeUpstream:
    """Records every request and answers like the public test API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.overrides: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        override = self.overrides.get((request.method, request.url.path))
        if override is not None:
            return override(request)

        path = request.url.path
        if request.method == "GET" and path.startswith("/users/"):
            user_id = int(path.rsplit("/", 1)[1])
            if user_id not in USERS:
                return httpx.Response(404, json={})
            return httpx.Response(200, json=USERS[user_id])
        if request.method == "GET" and path == "/posts":
            user_id = int(request.url.params["userId"])
            return httpx.Response(200, json=POSTS.get(user_id, []))
        if request.method == "POST" and path == "/posts":
            data = json.loads(request.content)
            return httpx.Response(201, json={**data, "id": 101})
        return httpx.Response(404, json={})

    def on(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.overrides[(method, path)] = handler

    @property
    def calls(self) -> list[str]:
        return [f"{r.method} {r.url.path}" + (f"?{r.url.query.decode()}" if r.url.query else "") for r in self.requests]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host env vars (PORT, LOG_LEVEL, ...) out of Settings."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def make_client(upstream: FakeUpstream):
    """Factory: build the app against the fake upstream and open a TestClient."""
    opened: list[TestClient] = []

    def _make(**overrides) -> TestClient:
        settings = Settings(upstream_base_url=UPSTREAM, **overrides)
        app = create_app(settings, transport=httpx.MockTransport(upstream))
        client = TestClient(app, raise_server_exceptions=False)
        client.__enter__()
        opened.append(client)
        return client

    yield _make

    for client in opened:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
