# reelfetch/services/http.py
from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

UA_DESKTOP = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
UA_LINUX_DESKTOP = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
UA_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.0 Mobile/15E148 Safari/604.1"
)
UA_ANDROID = (
    "Mozilla/5.0 (Linux; Android 10; SM-G973F) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
UA_GOOGLEBOT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
UA_FACEBOOK_PREVIEW = (
    "Mozilla/5.0 (compatible; facebookexternalhit/1.1; "
    "+http://www.facebook.com/externalhit_uatext.php)"
)
UA_INSTAGRAM_APP = (
    "Instagram 76.0.0.15.395 Android (24/7.0; 640dpi; 1440x2560; samsung; "
    "SM-G930F; herolte; samsungexynos8890; en_US; 138226743)"
)

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def html_headers(user_agent: str = UA_DESKTOP, **extra: str) -> dict[str, str]:
    headers = {
        "User-Agent": user_agent,
        "Accept": HTML_ACCEPT,
        "Accept-Language": "en-US,en;q=0.9",
    }
    headers.update(extra)
    return headers


def json_headers(**extra: str) -> dict[str, str]:
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    headers.update(extra)
    return headers


def new_client() -> httpx.AsyncClient:
    """Client owned by a single resolution; each call still sets its own timeout."""
    return httpx.AsyncClient(follow_redirects=True, timeout=httpx.Timeout(15.0))


async def fetch_text(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: Optional[dict[str, str]] = None,
    timeout: float = 15.0,
    follow_redirects: bool = True,
) -> Optional[str]:
    """GET `url` and return the body on 2xx, None otherwise. Network errors propagate."""
    response = await client.get(
        url,
        headers=headers or html_headers(),
        timeout=timeout,
        follow_redirects=follow_redirects,
    )
    if not response.is_success:
        logger.info("http.not_ok url=%s status=%d", url, response.status_code)
        return None
    return response.text
