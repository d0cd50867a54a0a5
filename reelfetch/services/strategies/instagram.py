# reelfetch/services/strategies/instagram.py
from __future__ import annotations

import json
import logging
import re
from typing import Optional
from urllib.parse import quote

import httpx

from reelfetch.app.domain.models import Quality
from reelfetch.services.classifier import classify
from reelfetch.services.http import (
    UA_DESKTOP,
    UA_FACEBOOK_PREVIEW,
    UA_GOOGLEBOT,
    UA_INSTAGRAM_APP,
    UA_IPHONE,
    UA_LINUX_DESKTOP,
    fetch_text,
    html_headers,
)
from reelfetch.services.markup import (
    MarkupMatch,
    extract_video_from_json,
    extract_video_from_markup,
    is_absolute_http_url,
)
from reelfetch.services.strategies.base import Strategy, StrategyContext, StrategyResult

logger = logging.getLogger(__name__)

EMBED_CAPTIONED_URL = "https://www.instagram.com/p/{code}/embed/captioned/"
EMBED_URL = "https://www.instagram.com/p/{code}/embed/"
POST_URL = "https://www.instagram.com/p/{code}/"
OEMBED_URL = "https://api.instagram.com/oembed/?url={url}"

# search-engine bot, social-preview bot, generic desktop, generic mobile
SCRAPE_USER_AGENTS = (UA_GOOGLEBOT, UA_FACEBOOK_PREVIEW, UA_LINUX_DESKTOP, UA_IPHONE)

_OEMBED_VIDEO_PATTERNS = (
    re.compile(r'src="([^"]+\.mp4[^"]*)"'),
    re.compile(r'"video_url":"([^"]+)"'),
)


def _shortcode(url: str) -> Optional[str]:
    target = classify(url)
    return target.identifier if target else None


def parse_page(body: str) -> Optional[MarkupMatch]:
    """Pages occasionally come back as bare JSON; everything else is markup."""
    stripped = body.lstrip()
    if stripped.startswith("{"):
        try:
            match = extract_video_from_json(json.loads(stripped))
        except ValueError:
            match = None
        if match:
            return match
    return extract_video_from_markup(body)


class BackendStrategy(Strategy):
    """Delegated headless-browser extraction; thumbnail is left for later enrichment."""
    name = "browser-backend"

    async def run(self, url: str, ctx: StrategyContext) -> StrategyResult:
        if not ctx.backend.enabled:
            return StrategyResult.skip("backend not configured")

        reply = await ctx.backend.extract(url)
        if not reply.success or not reply.videoUrl:
            return StrategyResult.fail("backend reported no video")
        return StrategyResult.success(
            self.outcome(
                reply.videoUrl,
                Quality.HD,
                method=f"backend-{reply.method or 'unknown'}",
            )
        )


class EmbedEndpointStrategy(Strategy):
    name = "instagram-embed"

    async def run(self, url: str, ctx: StrategyContext) -> StrategyResult:
        code = _shortcode(url)
        if not code:
            return StrategyResult.skip("no shortcode")

        markup = await fetch_text(
            ctx.http,
            EMBED_CAPTIONED_URL.format(code=code),
            headers=html_headers(UA_GOOGLEBOT),
            timeout=ctx.config.scrape_timeout,
        )
        if markup is None:
            return StrategyResult.fail("embed endpoint not reachable")

        match = extract_video_from_markup(markup)
        if match is None:
            return StrategyResult.fail("no video in embed markup")
        return self.from_match(match)


class PageScrapeStrategy(Strategy):
    """Fetch the post page under several User-Agents, then the plain embed page."""
    name = "instagram-page"

    async def _scrape(self, url: str, user_agent: str, ctx: StrategyContext) -> Optional[MarkupMatch]:
        body = await fetch_text(
            ctx.http,
            url,
            headers=html_headers(user_agent, **{"Cache-Control": "no-cache", "Pragma": "no-cache"}),
            timeout=ctx.config.scrape_timeout,
        )
        return parse_page(body) if body else None

    async def run(self, url: str, ctx: StrategyContext) -> StrategyResult:
        for user_agent in SCRAPE_USER_AGENTS:
            try:
                match = await self._scrape(url, user_agent, ctx)
            except httpx.HTTPError as exc:
                logger.info("ig.page_scrape_failed ua=%s error=%s", user_agent[:40], exc)
                continue
            if match:
                return self.from_match(match)

        code = _shortcode(url)
        if code:
            markup = await fetch_text(
                ctx.http,
                EMBED_URL.format(code=code),
                headers=html_headers(UA_FACEBOOK_PREVIEW),
                timeout=ctx.config.scrape_timeout,
            )
            match = extract_video_from_markup(markup) if markup else None
            if match:
                return self.from_match(match)

        return StrategyResult.fail("no video in page markup for any user agent")


class OEmbedStrategy(Strategy):
    name = "instagram-oembed"

    async def _mobile_app_scrape(self, url: str, ctx: StrategyContext) -> StrategyResult:
        code = _shortcode(url)
        if not code:
            return StrategyResult.skip("no shortcode")

        body = await fetch_text(
            ctx.http,
            POST_URL.format(code=code),
            headers={
                "User-Agent": UA_INSTAGRAM_APP,
                "Accept": "*/*",
                "Accept-Language": "en-US,en;q=0.9",
            },
            timeout=ctx.config.scrape_timeout,
        )
        match = parse_page(body) if body else None
        if match is None:
            return StrategyResult.fail("no video via oEmbed or mobile app scrape")
        return self.from_match(match)

    async def run(self, url: str, ctx: StrategyContext) -> StrategyResult:
        response = await ctx.http.get(
            OEMBED_URL.format(url=quote(url, safe="")),
            headers={"User-Agent": UA_DESKTOP},
            timeout=ctx.config.scrape_timeout,
        )
        if response.is_success:
            data = response.json()
            embed = data.get("html") if isinstance(data, dict) else None
            if isinstance(embed, str):
                for pattern in _OEMBED_VIDEO_PATTERNS:
                    m = pattern.search(embed)
                    if m and is_absolute_http_url(m.group(1)):
                        thumb = data.get("thumbnail_url")
                        return StrategyResult.success(
                            self.outcome(
                                m.group(1),
                                Quality.HD,
                                thumbnail_url=thumb if isinstance(thumb, str) else None,
                            )
                        )
        return await self._mobile_app_scrape(url, ctx)


def local_chain() -> list[Strategy]:
    return [EmbedEndpointStrategy(), PageScrapeStrategy(), OEmbedStrategy()]
