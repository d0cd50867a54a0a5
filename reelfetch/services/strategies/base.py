# reelfetch/services/strategies/base.py
"""
Strategy contract shared by every extraction technique.

A strategy takes a URL and returns a tagged StrategyResult; it never
raises for network, parse or upstream-shape problems. Chains are plain
ordered lists walked by `run_chain`, which stops at the first success.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import httpx

from reelfetch.app.config import ResolverConfig
from reelfetch.app.domain.errors import UpstreamFailureError
from reelfetch.app.domain.models import ExtractionOutcome, Quality
from reelfetch.services.delegates import BrowserBackendClient, CobaltClient
from reelfetch.services.markup import MarkupMatch, is_absolute_http_url

logger = logging.getLogger(__name__)


class StrategyStatus(str, Enum):
    SUCCESS = "success"
    SKIP = "skip"
    FAIL = "fail"


@dataclass(frozen=True)
class StrategyResult:
    status: StrategyStatus
    outcome: Optional[ExtractionOutcome] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, outcome: ExtractionOutcome) -> StrategyResult:
        return cls(StrategyStatus.SUCCESS, outcome=outcome)

    @classmethod
    def skip(cls, reason: str) -> StrategyResult:
        return cls(StrategyStatus.SKIP, reason=reason)

    @classmethod
    def fail(cls, reason: str) -> StrategyResult:
        return cls(StrategyStatus.FAIL, reason=reason)


@dataclass(frozen=True)
class StrategyContext:
    """Per-resolution collaborators handed to every strategy."""
    http: httpx.AsyncClient
    config: ResolverConfig
    cobalt: CobaltClient
    backend: BrowserBackendClient

    @classmethod
    def create(cls, http: httpx.AsyncClient, config: ResolverConfig) -> StrategyContext:
        return cls(
            http=http,
            config=config,
            cobalt=CobaltClient(http, config),
            backend=BrowserBackendClient(http, config),
        )


class Strategy(ABC):
    name: str = ""

    async def attempt(self, url: str, ctx: StrategyContext) -> StrategyResult:
        try:
            return await self.run(url, ctx)
        except UpstreamFailureError as exc:
            return StrategyResult.fail(exc.reason)
        except httpx.HTTPError as exc:
            return StrategyResult.fail(f"{type(exc).__name__}: {exc}")
        except ValueError as exc:
            return StrategyResult.fail(f"parse error: {exc}")

    @abstractmethod
    async def run(self, url: str, ctx: StrategyContext) -> StrategyResult:
        ...

    def outcome(
        self,
        video_url: str,
        quality: Quality,
        thumbnail_url: Optional[str] = None,
        duration_seconds: Optional[float] = None,
        method: Optional[str] = None,
    ) -> ExtractionOutcome:
        return ExtractionOutcome(
            video_url=video_url,
            strategy_name=self.name,
            quality=quality,
            thumbnail_url=thumbnail_url or None,
            duration_seconds=duration_seconds,
            method=method,
        )

    def from_match(self, match: MarkupMatch, quality: Quality = Quality.HD) -> StrategyResult:
        return StrategyResult.success(
            self.outcome(
                match.video_url,
                quality,
                thumbnail_url=match.thumbnail_url,
                duration_seconds=match.duration_seconds,
            )
        )


async def run_chain(
    strategies: Sequence[Strategy],
    url: str,
    ctx: StrategyContext,
) -> Optional[ExtractionOutcome]:
    """Run strategies in order and return the first usable outcome."""
    for strategy in strategies:
        result = await strategy.attempt(url, ctx)

        if result.status is StrategyStatus.SUCCESS and result.outcome is not None:
            if is_absolute_http_url(result.outcome.video_url):
                logger.info("strategy.ok name=%s url=%s", strategy.name, url)
                return result.outcome
            logger.info(
                "strategy.rejected name=%s reason=non-absolute video url %r",
                strategy.name,
                result.outcome.video_url[:100],
            )
            continue

        if result.status is StrategyStatus.SKIP:
            logger.info("strategy.skip name=%s reason=%s", strategy.name, result.reason)
        else:
            logger.info("strategy.fail name=%s url=%s reason=%s", strategy.name, url, result.reason)
    return None
