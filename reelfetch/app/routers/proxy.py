# reelfetch/app/routers/proxy.py
"""
Byte proxy: streams a resolved video URL back to the browser as a download.
"""
from __future__ import annotations

import logging
import time
from typing import Callable

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from reelfetch.app.config import settings
from reelfetch.app.deps import get_proxy_client_factory
from reelfetch.app.schemas.resolve import ProxyRequest
from reelfetch.services.http import UA_IPHONE

logger = logging.getLogger(__name__)

router = APIRouter(tags=["proxy"])

KNOWN_VIDEO_HOSTS = ("instagram", "cdninstagram", "fbcdn", "scontent")

UPSTREAM_HEADERS = {
    "User-Agent": UA_IPHONE,
    "Accept": "video/mp4,video/webm,video/*;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "identity",
    "Referer": "https://www.instagram.com/",
    "Origin": "https://www.instagram.com",
    "Sec-Fetch-Dest": "video",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "cross-site",
}


def is_proxyable(url: str) -> bool:
    return any(host in url for host in KNOWN_VIDEO_HOSTS) or url.startswith("https://")


def extension_for(content_type: str) -> str:
    lowered = content_type.lower()
    if "webm" in lowered:
        return "webm"
    if "mov" in lowered or "quicktime" in lowered:
        return "mov"
    return "mp4"


def _filename(url: str, extension: str) -> str:
    prefix = "facebook" if "fbcdn" in url else "instagram"
    return f"{prefix}-video-{int(time.time() * 1000)}.{extension}"


@router.post("/proxy-download")
@router.post("/api/proxy-download", include_in_schema=False)
async def proxy_download(
    body: ProxyRequest,
    client_factory: Callable[[], httpx.AsyncClient] = Depends(get_proxy_client_factory),
):
    url = (body.url or "").strip()
    if not url:
        return JSONResponse(status_code=400, content={"error": "URL is required"})
    if not is_proxyable(url):
        return JSONResponse(status_code=400, content={"error": "Invalid video URL"})

    client = client_factory()
    try:
        upstream = await client.send(
            client.build_request("GET", url, headers=UPSTREAM_HEADERS),
            stream=True,
        )
    except httpx.HTTPError as exc:
        await client.aclose()
        logger.exception("proxy.fail url=%s", url[:120])
        message = "Download failed" if settings.is_production else (str(exc) or "Download failed")
        return JSONResponse(status_code=500, content={"error": message})

    if not upstream.is_success:
        status_code = upstream.status_code
        await upstream.aclose()
        await client.aclose()
        logger.error("proxy.upstream_not_ok url=%s status=%d", url[:120], status_code)
        return JSONResponse(status_code=status_code, content={"error": f"Failed to fetch video: {status_code}"})

    content_type = upstream.headers.get("content-type") or "video/mp4"
    headers = {
        "Content-Disposition": f'attachment; filename="{_filename(url, extension_for(content_type))}"',
        "Cache-Control": "no-cache",
        "Access-Control-Allow-Origin": "*",
    }
    content_length = upstream.headers.get("content-length")
    if content_length:
        headers["Content-Length"] = content_length

    async def _close() -> None:
        await upstream.aclose()
        await client.aclose()

    return StreamingResponse(
        upstream.aiter_raw(),
        status_code=200,
        media_type=content_type,
        headers=headers,
        background=BackgroundTask(_close),
    )
