# reelfetch/services/share_resolver.py
"""
Facebook share-link resolution.

Share links (`/share/r/<id>`, `/share/v/<id>`, ...) are opaque; this module
turns them into canonical Facebook URLs by trying, in order:

1. the external resolver on the raw link (keeps the raw link if it copes)
2. base-62 decoding of the share ID into a `reel/<id>` URL, verified by the
   external resolver
3. redirect tracing: Location header, final URL, then page markup
4. the headless-browser backend, when configured
5. giving up and handing back the raw link

Every step has its own timeout and its failures are logged and swallowed.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from reelfetch.app.domain.errors import Base62DecodeError, UpstreamFailureError
from reelfetch.app.domain.models import CanonicalTarget
from reelfetch.services.base62 import base62_to_decimal
from reelfetch.services.classifier import is_canonical_facebook_url
from reelfetch.services.http import UA_DESKTOP, UA_IPHONE, html_headers
from reelfetch.services.markup import first_match
from reelfetch.services.strategies.base import StrategyContext

logger = logging.getLogger(__name__)

REEL_URL = "https://www.facebook.com/reel/{id}"

REFRESH_URL_RE = re.compile(r"""url\s*=\s*["']?([^"'\s]+)""", re.IGNORECASE)
EMBEDDED_ID_PATTERNS = (
    re.compile(r'"video_id":"(\d+)"'),
    re.compile(r'"videoID":"(\d+)"'),
    re.compile(r"/reel/(\d+)"),
    re.compile(r'"fbid":"(\d+)"'),
)


@dataclass(frozen=True)
class ShareResolution:
    original_url: str
    resolved_url: str
    strategy: Optional[str] = None

    @property
    def rewritten(self) -> bool:
        return self.resolved_url != self.original_url


ShareStep = Callable[[CanonicalTarget], Awaitable[Optional[str]]]


def _canonical(candidate: Optional[str]) -> Optional[str]:
    if not isinstance(candidate, str) or not candidate.strip():
        return None
    value = candidate.strip()
    return value if is_canonical_facebook_url(value) else None


def _refresh_target(soup: BeautifulSoup) -> Optional[str]:
    tag = soup.find("meta", attrs={"http-equiv": re.compile(r"^refresh$", re.IGNORECASE)})
    content = tag.get("content") if tag else None
    m = REFRESH_URL_RE.search(content) if isinstance(content, str) else None
    return m.group(1) if m else None


def scan_markup_for_canonical(markup: str) -> Optional[str]:
    """Meta refresh, then og:url / canonical link, then an embedded numeric ID."""
    soup = BeautifulSoup(markup, "html.parser")

    og_url = soup.find("meta", attrs={"property": "og:url"})
    canonical_link = soup.find("link", rel="canonical")
    candidates = (
        _refresh_target(soup),
        og_url.get("content") if og_url else None,
        canonical_link.get("href") if canonical_link else None,
    )
    for candidate in candidates:
        found = _canonical(candidate)
        if found:
            return found

    video_id = first_match(EMBEDDED_ID_PATTERNS, markup)
    return REEL_URL.format(id=video_id) if video_id else None


class FacebookShareResolver:
    def __init__(self, ctx: StrategyContext):
        self._ctx = ctx
        self._steps: list[tuple[str, ShareStep]] = [
            ("cobalt-probe", self._probe_external),
            ("base62-transcode", self._transcode_identifier),
            ("redirect-trace", self._trace_redirects),
            ("browser-backend", self._browser_backend),
        ]

    async def resolve(self, target: CanonicalTarget) -> ShareResolution:
        raw_url = target.normalized_url
        logger.info("fb_share.start url=%s share_id=%s", raw_url, target.identifier or "-")

        for name, step in self._steps:
            try:
                resolved = await step(target)
            except (UpstreamFailureError, Base62DecodeError, httpx.HTTPError, ValueError) as exc:
                logger.info("fb_share.strategy_failed name=%s error=%s", name, exc)
                continue
            if resolved:
                logger.info("fb_share.resolved name=%s url=%s", name, resolved)
                return ShareResolution(original_url=raw_url, resolved_url=resolved, strategy=name)
            logger.info("fb_share.inconclusive name=%s", name)

        logger.info("fb_share.exhausted url=%s; keeping original for fallback", raw_url)
        return ShareResolution(original_url=raw_url, resolved_url=raw_url)

    async def _probe_external(self, target: CanonicalTarget) -> Optional[str]:
        # A resolvable probe only says the resolver accepts the link; the
        # bytes are not fetched here.
        if await self._ctx.cobalt.is_resolvable(target.normalized_url):
            return target.normalized_url
        return None

    async def _transcode_identifier(self, target: CanonicalTarget) -> Optional[str]:
        if not target.identifier:
            return None
        decimal_id = base62_to_decimal(target.identifier)
        constructed = REEL_URL.format(id=decimal_id)
        logger.info("fb_share.transcoded share_id=%s decimal=%s", target.identifier, decimal_id)
        if await self._ctx.cobalt.is_resolvable(constructed):
            return constructed
        return None

    async def _trace_redirects(self, target: CanonicalTarget) -> Optional[str]:
        raw_url = target.normalized_url
        timeout = self._ctx.config.probe_timeout

        manual = await self._ctx.http.get(
            raw_url,
            headers=html_headers(UA_IPHONE),
            follow_redirects=False,
            timeout=timeout,
        )
        location = manual.headers.get("location")
        if location:
            found = _canonical(urljoin(raw_url, location))
            if found:
                return found

        followed = await self._ctx.http.get(
            raw_url,
            headers=html_headers(UA_DESKTOP),
            follow_redirects=True,
            timeout=timeout,
        )
        if not followed.is_success:
            return None

        found = _canonical(str(followed.url))
        if found:
            return found
        return scan_markup_for_canonical(followed.text)

    async def _browser_backend(self, target: CanonicalTarget) -> Optional[str]:
        if not self._ctx.backend.enabled:
            logger.info("fb_share.backend_skipped reason=BACKEND_URL not set")
            return None
        reply = await self._ctx.backend.resolve_share(target.normalized_url)
        return _canonical(reply.resolved_url)
