# reelfetch/services/classifier.py
from __future__ import annotations

import re
from typing import Optional, Pattern, Tuple
from urllib.parse import urlparse

from reelfetch.app.domain.models import CanonicalTarget, LinkKind, Platform

_INSTAGRAM_HOST_RE = re.compile(r"(?:^|\.)instagram\.com$", re.IGNORECASE)
_FACEBOOK_HOST_RE = re.compile(r"(?:^|\.)(?:facebook\.com|fb\.watch)$", re.IGNORECASE)

# (url segment, kind, pattern); order matters, `reels` before `reel`
_INSTAGRAM_RULES: Tuple[Tuple[str, LinkKind, Pattern[str]], ...] = (
    ("p", LinkKind.POST, re.compile(r"instagram\.com/p/([^/?#]+)", re.IGNORECASE)),
    ("reels", LinkKind.REEL, re.compile(r"instagram\.com/reels/([^/?#]+)", re.IGNORECASE)),
    ("reel", LinkKind.REEL, re.compile(r"instagram\.com/reel/([^/?#]+)", re.IGNORECASE)),
    ("tv", LinkKind.POST, re.compile(r"instagram\.com/tv/([^/?#]+)", re.IGNORECASE)),
)

_FACEBOOK_SHARE_RULES: Tuple[Pattern[str], ...] = (
    re.compile(r"facebook\.com/share/r/([A-Za-z0-9]+)", re.IGNORECASE),
    re.compile(r"facebook\.com/share/v/([A-Za-z0-9]+)", re.IGNORECASE),
    re.compile(r"facebook\.com/share/reel/([A-Za-z0-9]+)", re.IGNORECASE),
    re.compile(r"facebook\.com/share/(?:[a-z]/)?([A-Za-z0-9]+)", re.IGNORECASE),
    re.compile(r"facebook\.com/share/?()(?:$|[?#])", re.IGNORECASE),
)

_FACEBOOK_RULES: Tuple[Tuple[LinkKind, Pattern[str]], ...] = (
    (LinkKind.REEL, re.compile(r"facebook\.com/reel/(\d+)", re.IGNORECASE)),
    (LinkKind.POST, re.compile(r"facebook\.com/.+?/videos/(?:[^/?#]+/)?(\d+)", re.IGNORECASE)),
    (LinkKind.POST, re.compile(r"facebook\.com/watch/?\?(?:[^#]*&)?v=(\d+)", re.IGNORECASE)),
    (LinkKind.POST, re.compile(r"fb\.watch/([^/?#]+)", re.IGNORECASE)),
)


def _host(url: str) -> Optional[str]:
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
        return None
    return parsed.hostname.lower()


def detect_platform(url: str) -> Platform:
    host = _host(url or "")
    if host is None:
        return Platform.UNRECOGNIZED
    if _INSTAGRAM_HOST_RE.search(host):
        return Platform.INSTAGRAM
    if _FACEBOOK_HOST_RE.search(host):
        return Platform.FACEBOOK
    return Platform.UNRECOGNIZED


def is_facebook_url(url: str) -> bool:
    """True for any Facebook URL shape the resolver understands, share links included."""
    target = classify(url)
    return target is not None and target.platform is Platform.FACEBOOK


def is_share_url(url: str) -> bool:
    target = classify(url)
    return target is not None and target.is_share_link


def is_canonical_facebook_url(url: str) -> bool:
    target = classify(url)
    return (
        target is not None
        and target.platform is Platform.FACEBOOK
        and not target.is_share_link
    )


def _classify_instagram(url: str) -> Optional[CanonicalTarget]:
    for segment, kind, pattern in _INSTAGRAM_RULES:
        m = pattern.search(url)
        if m and m.group(1):
            ident = m.group(1)
            return CanonicalTarget(
                platform=Platform.INSTAGRAM,
                kind=kind,
                identifier=ident,
                normalized_url=f"https://www.instagram.com/{segment}/{ident}/",
            )
    return None


def _classify_facebook(url: str) -> Optional[CanonicalTarget]:
    for pattern in _FACEBOOK_SHARE_RULES:
        m = pattern.search(url)
        if m:
            # share links keep the raw URL; the ID is opaque until resolved
            return CanonicalTarget(
                platform=Platform.FACEBOOK,
                kind=LinkKind.SHARE_LINK,
                identifier=m.group(1),
                normalized_url=url,
            )

    for kind, pattern in _FACEBOOK_RULES:
        m = pattern.search(url)
        if m and m.group(1):
            ident = m.group(1)
            if kind is LinkKind.REEL:
                normalized = f"https://www.facebook.com/reel/{ident}"
            else:
                normalized = url
            return CanonicalTarget(
                platform=Platform.FACEBOOK,
                kind=kind,
                identifier=ident,
                normalized_url=normalized,
            )
    return None


def classify(raw_url: str) -> Optional[CanonicalTarget]:
    """
    Classify a raw URL into a CanonicalTarget.

    Returns None for anything unrecognized; callers must reject those
    without performing any network I/O.
    """
    if not isinstance(raw_url, str):
        return None
    url = raw_url.strip()
    platform = detect_platform(url)
    if platform is Platform.INSTAGRAM:
        return _classify_instagram(url)
    if platform is Platform.FACEBOOK:
        return _classify_facebook(url)
    return None
