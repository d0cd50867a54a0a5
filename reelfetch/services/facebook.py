# reelfetch/services/facebook.py
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Sequence

from reelfetch.app.domain.models import (
    CanonicalTarget,
    ErrorKind,
    ExtractionOutcome,
    ResolutionFailure,
    ResolutionResult,
    ResolutionSuccess,
)
from reelfetch.services.share_resolver import FacebookShareResolver
from reelfetch.services.strategies import facebook as fb
from reelfetch.services.strategies.base import Strategy, StrategyContext, run_chain

logger = logging.getLogger(__name__)

FACEBOOK_NOT_FOUND = "Unable to fetch Facebook video. The post may be private or unavailable."

ThumbnailProbe = Callable[[str], Awaitable[Optional[str]]]


class FacebookResolver:
    """
    Drives Facebook extraction:
    share-link resolution, the primary chain against the resolved URL,
    a reduced second pass against the original link, thumbnail backfill.
    """

    def __init__(
        self,
        ctx: StrategyContext,
        share_resolver: Optional[FacebookShareResolver] = None,
        primary: Optional[Sequence[Strategy]] = None,
        second_pass: Optional[Sequence[Strategy]] = None,
        thumbnail_probe: Optional[ThumbnailProbe] = None,
    ):
        self._ctx = ctx
        self._share_resolver = share_resolver or FacebookShareResolver(ctx)
        self._primary = list(primary) if primary is not None else fb.primary_chain()
        self._second_pass = list(second_pass) if second_pass is not None else fb.original_url_chain()
        self._thumbnail_probe = thumbnail_probe or (lambda url: fb.extract_og_thumbnail(url, ctx))

    async def _backfill_thumbnail(self, outcome: ExtractionOutcome, original_url: str) -> ExtractionOutcome:
        if outcome.thumbnail_url:
            return outcome
        try:
            thumbnail = await self._thumbnail_probe(original_url)
        except Exception as exc:
            logger.warning("fb.thumbnail_probe_error url=%s error=%s", original_url, exc)
            return outcome
        if thumbnail:
            logger.info("fb.thumbnail_backfilled url=%s", original_url)
            return outcome.with_thumbnail(thumbnail)
        return outcome

    async def resolve(self, target: CanonicalTarget) -> ResolutionResult:
        original_url = target.normalized_url
        resolved_url = original_url

        if target.is_share_link:
            resolution = await self._share_resolver.resolve(target)
            resolved_url = resolution.resolved_url

        outcome = await run_chain(self._primary, resolved_url, self._ctx)
        if outcome is not None:
            return ResolutionSuccess(await self._backfill_thumbnail(outcome, original_url))

        if resolved_url != original_url:
            logger.info("fb.second_pass url=%s", original_url)
            outcome = await run_chain(self._second_pass, original_url, self._ctx)
            if outcome is not None:
                return ResolutionSuccess(await self._backfill_thumbnail(outcome, original_url))

        logger.info("fb.exhausted url=%s resolved=%s", original_url, resolved_url)
        return ResolutionFailure(ErrorKind.NOT_FOUND, FACEBOOK_NOT_FOUND)
