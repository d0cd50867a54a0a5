# reelfetch/app/deps.py (process-wide singletons exposed as dependencies)

from __future__ import annotations

from typing import AsyncIterator, Callable

import httpx
from fastapi import Request

from reelfetch.app.config import ResolverConfig, settings
from reelfetch.app.infra.rate_limit.base import CounterStore
from reelfetch.app.infra.rate_limit.memory import InMemoryCounterStore
from reelfetch.services.http import new_client

_limiter: CounterStore | None = None


def get_rate_limiter() -> CounterStore:
    global _limiter
    if _limiter is None:
        _limiter = InMemoryCounterStore(
            limit=settings.RATE_LIMIT,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        )
    return _limiter


def get_resolver_config() -> ResolverConfig:
    return ResolverConfig.from_settings(settings)


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with new_client() as client:
        yield client


def get_proxy_client_factory() -> Callable[[], httpx.AsyncClient]:
    """The proxy keeps its client open while streaming, so it owns the lifecycle."""
    def factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(
            follow_redirects=True,
            timeout=httpx.Timeout(settings.PROXY_TIMEOUT_SECONDS),
        )
    return factory


def get_client_id(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
