from __future__ import annotations

import json
from typing import Callable, Union

import httpx
import pytest

from reelfetch.app.config import ResolverConfig
from reelfetch.services.strategies.base import StrategyContext

Handler = Callable[[httpx.Request], httpx.Response]
Route = Union[httpx.Response, Handler]


class FakeWeb:
    """Routes keyed by (method, host, path); anything unrouted answers 404."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str, str], Route] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, route: Route) -> None:
        parsed = httpx.URL(url)
        self.routes[(method.upper(), parsed.host, parsed.path)] = route

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.host, request.url.path))
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, httpx.Response):
            return route
        return route(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), follow_redirects=True)

    def hits(self, host: str, path: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.url.host == host and (path is None or r.url.path == path)
        ]

    def posted_urls(self, host: str) -> list[str]:
        return [json.loads(r.content)["url"] for r in self.hits(host) if r.method == "POST"]


@pytest.fixture
def web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def config() -> ResolverConfig:
    return ResolverConfig()


@pytest.fixture
def ctx(web: FakeWeb, config: ResolverConfig) -> StrategyContext:
    return StrategyContext.create(web.client(), config)
