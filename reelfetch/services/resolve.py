# reelfetch/services/resolve.py
from __future__ import annotations

import logging
import time
from typing import Optional

import httpx

from reelfetch.app.config import ResolverConfig
from reelfetch.app.domain.models import (
    ErrorKind,
    Platform,
    ResolutionFailure,
    ResolutionRequest,
    ResolutionResult,
)
from reelfetch.app.infra.rate_limit.base import CounterStore
from reelfetch.services.classifier import classify
from reelfetch.services.facebook import FacebookResolver
from reelfetch.services.http import new_client
from reelfetch.services.instagram import InstagramResolver
from reelfetch.services.strategies.base import StrategyContext

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "Too many requests. Please wait a moment and try again."
URL_REQUIRED_MESSAGE = "URL is required"
INVALID_URL_MESSAGE = "Invalid Instagram or Facebook URL format"


async def resolve_url(
    request: ResolutionRequest,
    limiter: CounterStore,
    config: ResolverConfig,
    http: Optional[httpx.AsyncClient] = None,
) -> ResolutionResult:
    """
    Resolve a post URL into a direct video URL.

    The rate limit is consulted before anything else and unrecognized URLs
    are rejected before any network I/O. Unexpected exceptions propagate.
    """
    if not limiter.increment(request.client_id):
        return ResolutionFailure(ErrorKind.RATE_LIMITED, RATE_LIMITED_MESSAGE)

    raw_url = (request.raw_url or "").strip()
    if not raw_url:
        return ResolutionFailure(ErrorKind.INVALID_URL, URL_REQUIRED_MESSAGE)

    target = classify(raw_url)
    if target is None:
        return ResolutionFailure(ErrorKind.INVALID_URL, INVALID_URL_MESSAGE)

    t0 = time.time()
    owns_client = http is None
    client = http or new_client()
    try:
        ctx = StrategyContext.create(client, config)
        if target.platform is Platform.FACEBOOK:
            result = await FacebookResolver(ctx).resolve(target)
        else:
            result = await InstagramResolver(ctx).resolve(target, raw_url)
    finally:
        if owns_client:
            await client.aclose()

    logger.info(
        "resolve.done platform=%s kind=%s success=%s dt=%.2fs",
        target.platform.value,
        target.kind.value,
        result.success,
        time.time() - t0,
    )
    return result
