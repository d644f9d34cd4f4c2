"""Shared pytest fixtures: a fake clock and a scriptable fake GitHub."""

from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest


class FakeClock:
    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeGitHub:
    """Routes requests to handlers keyed by (method, path) and records them."""

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, handler) -> None:
        if not callable(handler):
            payload = handler
            handler = lambda request: httpx.Response(200, json=payload)  # noqa: E731
        self.routes[(method, path)] = handler

    def graphql_bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path == "/graphql"]

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "Not Found"})
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()
