# reelfetch/services/instagram.py
from __future__ import annotations

import logging
from typing import Optional, Sequence

from reelfetch.app.domain.models import (
    CanonicalTarget,
    ErrorKind,
    ResolutionFailure,
    ResolutionResult,
    ResolutionSuccess,
)
from reelfetch.services.markup import is_absolute_http_url
from reelfetch.services.strategies import instagram as ig
from reelfetch.services.strategies.base import Strategy, StrategyContext, StrategyStatus, run_chain

logger = logging.getLogger(__name__)

INSTAGRAM_NOT_FOUND = "Unable to fetch video. The post may be private or unavailable."


class InstagramResolver:
    """Headless backend first, then the local scraping chain against the canonical post URL."""

    def __init__(
        self,
        ctx: StrategyContext,
        backend: Optional[Strategy] = None,
        local: Optional[Sequence[Strategy]] = None,
    ):
        self._ctx = ctx
        self._backend = backend or ig.BackendStrategy()
        self._local = list(local) if local is not None else ig.local_chain()

    async def resolve(self, target: CanonicalTarget, raw_url: str) -> ResolutionResult:
        result = await self._backend.attempt(raw_url, self._ctx)
        if (
            result.status is StrategyStatus.SUCCESS
            and result.outcome is not None
            and is_absolute_http_url(result.outcome.video_url)
        ):
            logger.info("ig.backend_ok url=%s method=%s", raw_url, result.outcome.method)
            return ResolutionSuccess(result.outcome)
        logger.info("ig.backend_unavailable status=%s reason=%s", result.status.value, result.reason)

        outcome = await run_chain(self._local, target.normalized_url, self._ctx)
        if outcome is not None:
            return ResolutionSuccess(outcome)

        logger.info("ig.exhausted url=%s shortcode=%s", raw_url, target.identifier)
        return ResolutionFailure(ErrorKind.NOT_FOUND, INSTAGRAM_NOT_FOUND)
