# reelfetch/services/strategies/facebook.py
from __future__ import annotations

import html
import logging
import re
from typing import Optional, Pattern, Sequence
from urllib.parse import quote

import httpx

from reelfetch.app.domain.models import Quality
from reelfetch.services.http import UA_ANDROID, UA_DESKTOP, fetch_text, html_headers
from reelfetch.services.markup import find_og_content, first_match, unescape_json_url
from reelfetch.services.strategies.base import Strategy, StrategyContext, StrategyResult

logger = logging.getLogger(__name__)

EMBED_PLAYER_URL = "https://www.facebook.com/plugins/video.php?href={href}"
MIRROR_SITE_URL = "https://www.getfvid.com/downloader"

EMBED_HD_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r'"playable_url_quality_hd":"([^"]+)"'),
    re.compile(r'"browser_native_hd_url":"([^"]+)"'),
    re.compile(r'"hd_src":"([^"]+)"'),
    re.compile(r'hd_src:"([^"]+)"'),
)
EMBED_SD_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r'"playable_url":"([^"]+)"'),
    re.compile(r'"browser_native_sd_url":"([^"]+)"'),
    re.compile(r'"sd_src":"([^"]+)"'),
    re.compile(r'sd_src:"([^"]+)"'),
    re.compile(r'"video_url":"([^"]+)"'),
)

MOBILE_SD_PATTERNS: tuple[Pattern[str], ...] = EMBED_SD_PATTERNS + (
    re.compile(r'src="(https://[^"]+\.mp4[^"]*)"'),
    re.compile(r'href="(https://video[^"]+)"'),
)

THUMBNAIL_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r'"preferred_thumbnail":\{"image":\{"uri":"([^"]+)"'),
    re.compile(r'"thumbnailImage":\{"uri":"([^"]+)"'),
    re.compile(r'"thumbnail_url":"([^"]+)"'),
)

MIRROR_HD_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r'href="([^"]+)"\s+download="[^"]*hd[^"]*\.mp4"', re.IGNORECASE),
    re.compile(r'href="([^"]+)"\s+[^>]*>[^<]*HD[^<]*</a>', re.IGNORECASE),
    re.compile(r'<a[^>]+href="([^"]+)"[^>]*class="[^"]*hd[^"]*"', re.IGNORECASE),
)
MIRROR_SD_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r'href="([^"]+)"\s+download="[^"]*\.mp4"', re.IGNORECASE),
    re.compile(r'<a[^>]+href="([^"]+)"[^>]*class="[^"]*download[^"]*"', re.IGNORECASE),
    re.compile(r'href="(https://[^"]+\.mp4[^"]*)"', re.IGNORECASE),
    re.compile(r'"downloadUrl":"([^"]+)"', re.IGNORECASE),
)
MIRROR_THUMBNAIL_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r'poster="([^"]+)"', re.IGNORECASE),
    re.compile(r'"thumbnail":"([^"]+)"', re.IGNORECASE),
    re.compile(r'data-thumb="([^"]+)"', re.IGNORECASE),
)


def pick_quality_tier(
    markup: str,
    hd_patterns: Sequence[Pattern[str]],
    sd_patterns: Sequence[Pattern[str]],
) -> Optional[tuple[str, Quality]]:
    """HD markers win; SD markers are only consulted when no HD marker matched."""
    hd = first_match(hd_patterns, markup)
    if hd:
        return unescape_json_url(hd), Quality.HD
    sd = first_match(sd_patterns, markup)
    if sd:
        return unescape_json_url(sd), Quality.SD
    return None


def _thumbnail(markup: str, patterns: Sequence[Pattern[str]]) -> Optional[str]:
    value = first_match(patterns, markup)
    return unescape_json_url(value) if value else find_og_content(markup, "og:image")


class EmbedPlayerStrategy(Strategy):
    """Scrape the public embeddable video player page."""
    name = "facebook-embed"

    async def run(self, url: str, ctx: StrategyContext) -> StrategyResult:
        markup = await fetch_text(
            ctx.http,
            EMBED_PLAYER_URL.format(href=quote(url, safe="")),
            headers=html_headers(UA_DESKTOP),
            timeout=ctx.config.scrape_timeout,
        )
        if markup is None:
            return StrategyResult.fail("embed player not reachable")

        picked = pick_quality_tier(markup, EMBED_HD_PATTERNS, EMBED_SD_PATTERNS)
        if picked is None:
            return StrategyResult.fail("no video marker in embed player")

        video_url, quality = picked
        return StrategyResult.success(
            self.outcome(video_url, quality, thumbnail_url=_thumbnail(markup, THUMBNAIL_PATTERNS))
        )


class CobaltStrategy(Strategy):
    """Delegated external resolver; trusted to return max quality."""
    name = "cobalt"

    async def run(self, url: str, ctx: StrategyContext) -> StrategyResult:
        reply = await ctx.cobalt.probe(url, timeout=ctx.config.scrape_timeout)
        if not reply.is_resolvable:
            return StrategyResult.fail(f"resolver status {reply.status}")
        return StrategyResult.success(
            self.outcome(reply.url, Quality.HD, thumbnail_url=reply.thumb)
        )


class MobileDirectStrategy(Strategy):
    """Scrape the lightweight mobile site, which inlines video sources."""
    name = "facebook-mobile"

    @staticmethod
    def mobile_url(url: str) -> str:
        return (
            url.replace("://www.facebook.com", "://mbasic.facebook.com")
            .replace("://m.facebook.com", "://mbasic.facebook.com")
            .replace("://facebook.com", "://mbasic.facebook.com")
        )

    async def run(self, url: str, ctx: StrategyContext) -> StrategyResult:
        markup = await fetch_text(
            ctx.http,
            self.mobile_url(url),
            headers=html_headers(UA_ANDROID),
            timeout=ctx.config.scrape_timeout,
        )
        if markup is None:
            return StrategyResult.fail("mobile page not reachable")

        picked = pick_quality_tier(markup, EMBED_HD_PATTERNS, MOBILE_SD_PATTERNS)
        if picked is None:
            return StrategyResult.fail("no video marker in mobile page")

        video_url, quality = picked
        return StrategyResult.success(
            self.outcome(video_url, quality, thumbnail_url=_thumbnail(markup, THUMBNAIL_PATTERNS))
        )


class MirrorSiteStrategy(Strategy):
    """Third-party downloader site; posts the URL as a form and reads the result page."""
    name = "mirror-site"

    async def run(self, url: str, ctx: StrategyContext) -> StrategyResult:
        response = await ctx.http.post(
            MIRROR_SITE_URL,
            data={"url": url},
            headers=html_headers(
                UA_DESKTOP,
                Origin="https://www.getfvid.com",
                Referer="https://www.getfvid.com/",
            ),
            timeout=ctx.config.scrape_timeout,
        )
        if not response.is_success:
            return StrategyResult.fail(f"mirror status {response.status_code}")

        markup = response.text
        picked = pick_quality_tier(markup, MIRROR_HD_PATTERNS, MIRROR_SD_PATTERNS)
        if picked is None:
            return StrategyResult.fail("no download link on mirror page")

        video_url, quality = picked
        thumb = first_match(MIRROR_THUMBNAIL_PATTERNS, markup)
        return StrategyResult.success(
            self.outcome(video_url, quality, thumbnail_url=html.unescape(thumb) if thumb else None)
        )


async def extract_og_thumbnail(url: str, ctx: StrategyContext) -> Optional[str]:
    """Best-effort Open Graph image lookup; never raises."""
    try:
        markup = await fetch_text(
            ctx.http,
            url,
            headers=html_headers(UA_DESKTOP),
            timeout=ctx.config.probe_timeout,
        )
    except httpx.HTTPError as exc:
        logger.info("fb.thumbnail_failed url=%s error=%s", url, exc)
        return None
    if markup is None:
        return None
    return find_og_content(markup, "og:image")


def primary_chain() -> list[Strategy]:
    return [EmbedPlayerStrategy(), CobaltStrategy(), MobileDirectStrategy(), MirrorSiteStrategy()]


def original_url_chain() -> list[Strategy]:
    return [CobaltStrategy(), MirrorSiteStrategy()]
