# reelfetch/services/markup.py
"""
Pattern-based helpers for pulling video and thumbnail URLs out of page
markup and embedded JSON. Platforms change their markup often; keep every
regex here or next to the strategy that owns it.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Pattern
from urllib.parse import urlparse

from bs4 import BeautifulSoup

CDN_HINTS = ("scontent", "cdninstagram", "fbcdn")

VIDEO_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r'"video_url":"([^"]+)"'),
    re.compile(r'"playback_url":"([^"]+)"'),
    re.compile(r'"src":"([^"]+\.mp4[^"]*)"'),
    re.compile(r'"videoUrl":"([^"]+)"'),
    re.compile(r'property="og:video:secure_url"[^>]*content="([^"]+)"'),
    re.compile(r'property="og:video"[^>]*content="([^"]+)"'),
    re.compile(r'meta[^>]*content="([^"]+)"[^>]*property="og:video(?::secure_url)?"'),
    re.compile(r'"video_versions":\[\{[^}]*?"url":"([^"]+)"'),
    re.compile(r'"video_dash_manifest":"[^"]*","video_url":"([^"]+)"'),
    re.compile(r'videoUrl[\'"]\s*:\s*[\'"]([^\'"]+)[\'"]'),
    re.compile(r'"contentUrl":"([^"]+)"'),
    re.compile(r'src="([^"]+\.mp4[^"]*)"'),
    re.compile(r'href="([^"]+\.mp4[^"]*)"'),
    re.compile(r'"url":"([^"]+\.mp4[^"]*)"'),
)

THUMBNAIL_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r'"display_url":"([^"]+)"'),
    re.compile(r'"thumbnail_src":"([^"]+)"'),
    re.compile(r'"thumbnail_url":"([^"]+)"'),
    re.compile(r'"image_versions2":\{"candidates":\[\{[^}]*?"url":"([^"]+)"'),
    re.compile(r'thumbnailUrl[\'"]\s*:\s*[\'"]([^\'"]+)[\'"]'),
)

DURATION_PATTERN = re.compile(r'"video_duration":\s*([0-9]+(?:\.[0-9]+)?)')
UNICODE_ESCAPE_PATTERN = re.compile(r"\\u([0-9a-fA-F]{4})")
SCRIPT_PATTERN = re.compile(r"<script[^>]*>(.*?)</script>", re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True)
class MarkupMatch:
    video_url: str
    thumbnail_url: Optional[str] = None
    duration_seconds: Optional[float] = None


def decode_unicode_escapes(text: str) -> str:
    return UNICODE_ESCAPE_PATTERN.sub(lambda m: chr(int(m.group(1), 16)), text)


def unescape_json_url(value: str) -> str:
    cleaned = decode_unicode_escapes(value).replace("\\/", "/").replace("\\", "")
    return html.unescape(cleaned)


def normalize_markup(markup: str) -> str:
    """Decode JSON unicode escapes and drop stray backslashes so one pattern set fits all."""
    return decode_unicode_escapes(markup).replace("\\", "")


def is_absolute_http_url(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_plausible_video_url(url: str) -> bool:
    lowered = url.lower()
    if ".mp4" in lowered or "video" in lowered:
        return True
    return any(hint in lowered for hint in CDN_HINTS)


def first_match(patterns: Iterable[Pattern[str]], text: str) -> Optional[str]:
    for pattern in patterns:
        m = pattern.search(text)
        if m and m.group(1):
            return m.group(1)
    return None


def find_og_content(markup: str, prop: str) -> Optional[str]:
    """Content of the `<meta property=...>` (or `name=...`) tag for `prop`, in any attribute order."""
    soup = BeautifulSoup(markup, "html.parser")
    tag = soup.find("meta", attrs={"property": prop}) or soup.find("meta", attrs={"name": prop})
    content = tag.get("content") if tag else None
    if not isinstance(content, str) or not content.strip():
        return None
    return content.strip()


def extract_script_bodies(markup: str) -> list[str]:
    return [body for body in SCRIPT_PATTERN.findall(markup) if body.strip()]


def _find_video(text: str) -> Optional[str]:
    for pattern in VIDEO_PATTERNS:
        m = pattern.search(text)
        if not m or not m.group(1):
            continue
        candidate = html.unescape(m.group(1))
        if is_plausible_video_url(candidate) and is_absolute_http_url(candidate):
            return candidate
    return None


def _find_duration(text: str) -> Optional[float]:
    m = DURATION_PATTERN.search(text)
    return float(m.group(1)) if m else None


def extract_video_from_markup(markup: str) -> Optional[MarkupMatch]:
    """
    Scan markup for a video URL and a thumbnail.

    The raw markup is tried first; when that yields nothing, each script
    tag body is scanned on its own.
    """
    if not markup:
        return None

    cleaned = normalize_markup(markup)
    video_url = _find_video(cleaned)

    if video_url is None:
        for body in extract_script_bodies(cleaned):
            video_url = _find_video(body)
            if video_url:
                break

    if video_url is None:
        return None

    thumbnail = first_match(THUMBNAIL_PATTERNS, cleaned)
    thumbnail = html.unescape(thumbnail) if thumbnail else find_og_content(markup, "og:image")
    return MarkupMatch(
        video_url=video_url,
        thumbnail_url=thumbnail,
        duration_seconds=_find_duration(cleaned),
    )


def _first_dict(value: Any) -> Optional[dict]:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    return float(value) if isinstance(value, (int, float)) else None


def extract_video_from_json(data: Any) -> Optional[MarkupMatch]:
    """Read the JSON shapes Instagram serves (`items`, `graphql.shortcode_media`, `data.shortcode_media`)."""
    if not isinstance(data, dict):
        return None

    graphql = data.get("graphql") if isinstance(data.get("graphql"), dict) else {}
    nested = data.get("data") if isinstance(data.get("data"), dict) else {}
    items = data.get("items") or graphql.get("shortcode_media") or nested.get("shortcode_media")

    if isinstance(items, list):
        item = _first_dict(items)
        version = _first_dict(item.get("video_versions")) if item else None
        if version is None:
            return None
        video_url = version.get("url")
        images = item.get("image_versions2")
        candidate = _first_dict(images.get("candidates")) if isinstance(images, dict) else None
        thumbnail = (candidate.get("url") if candidate else None) or item.get("display_url")
    elif isinstance(items, dict):
        item = items
        video_url = item.get("video_url")
        thumbnail = item.get("display_url") or item.get("thumbnail_src")
    else:
        return None

    if not is_absolute_http_url(video_url):
        return None
    return MarkupMatch(
        video_url=video_url,
        thumbnail_url=thumbnail if isinstance(thumbnail, str) else None,
        duration_seconds=_as_number(item.get("video_duration")),
    )
