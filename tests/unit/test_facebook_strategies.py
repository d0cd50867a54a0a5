from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from reelfetch.app.domain.models import Quality
from reelfetch.services.http import UA_ANDROID
from reelfetch.services.strategies.base import StrategyStatus
from reelfetch.services.strategies.facebook import (
    CobaltStrategy,
    EmbedPlayerStrategy,
    MirrorSiteStrategy,
    MobileDirectStrategy,
)

REEL_URL = "https://www.facebook.com/reel/123"
COBALT_URL = "https://api.cobalt.tools/api/json"
MIRROR_URL = "https://www.getfvid.com/downloader"


class TestEmbedPlayerStrategy:
    @pytest.mark.asyncio
    async def test_sd_markers_only_give_sd(self, web, ctx) -> None:
        web.add(
            "GET",
            "https://www.facebook.com/plugins/video.php",
            httpx.Response(200, text='{"sd_src":"https:\\/\\/video.fbcdn.net\\/sd.mp4"}'),
        )

        result = await EmbedPlayerStrategy().attempt(REEL_URL, ctx)

        assert result.outcome.video_url == "https://video.fbcdn.net/sd.mp4"
        assert result.outcome.quality is Quality.SD
        assert web.requests[0].url.params["href"] == REEL_URL

    @pytest.mark.asyncio
    async def test_no_markers_fail(self, web, ctx) -> None:
        web.add("GET", "https://www.facebook.com/plugins/video.php", httpx.Response(200, text="<html></html>"))

        result = await EmbedPlayerStrategy().attempt(REEL_URL, ctx)

        assert result.status is StrategyStatus.FAIL


class TestCobaltStrategy:
    @pytest.mark.asyncio
    async def test_always_tagged_hd(self, web, ctx) -> None:
        web.add(
            "POST",
            COBALT_URL,
            httpx.Response(200, json={"status": "tunnel", "url": "https://tunnel.example/x", "thumb": "https://t.example/t.jpg"}),
        )

        result = await CobaltStrategy().attempt(REEL_URL, ctx)

        assert result.outcome.quality is Quality.HD
        assert result.outcome.video_url == "https://tunnel.example/x"
        assert result.outcome.thumbnail_url == "https://t.example/t.jpg"

    @pytest.mark.asyncio
    async def test_error_status_fails(self, web, ctx) -> None:
        web.add("POST", COBALT_URL, httpx.Response(200, json={"status": "error", "text": "fetch.fail"}))

        result = await CobaltStrategy().attempt(REEL_URL, ctx)

        assert result.status is StrategyStatus.FAIL


class TestMobileDirectStrategy:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.facebook.com/reel/123",
            "https://m.facebook.com/reel/123",
            "https://facebook.com/reel/123",
        ],
    )
    def test_mobile_url(self, url: str) -> None:
        assert MobileDirectStrategy.mobile_url(url) == "https://mbasic.facebook.com/reel/123"

    @pytest.mark.asyncio
    async def test_inline_video_link(self, web, ctx) -> None:
        web.add(
            "GET",
            "https://mbasic.facebook.com/reel/123",
            httpx.Response(200, text='<a href="https://video.xx.fbcdn.net/v/t.mp4?x=1&amp;y=2">Watch</a>'),
        )

        result = await MobileDirectStrategy().attempt(REEL_URL, ctx)

        assert result.outcome.video_url == "https://video.xx.fbcdn.net/v/t.mp4?x=1&y=2"
        assert result.outcome.quality is Quality.SD
        assert web.requests[0].headers["user-agent"] == UA_ANDROID

    @pytest.mark.asyncio
    async def test_hd_marker_wins(self, web, ctx) -> None:
        web.add(
            "GET",
            "https://mbasic.facebook.com/reel/123",
            httpx.Response(200, text='"hd_src":"https://video.fbcdn.net/hd.mp4" <video src="https://video.fbcdn.net/sd.mp4">'),
        )

        result = await MobileDirectStrategy().attempt(REEL_URL, ctx)

        assert result.outcome.video_url == "https://video.fbcdn.net/hd.mp4"
        assert result.outcome.quality is Quality.HD


class TestMirrorSiteStrategy:
    @pytest.mark.asyncio
    async def test_hd_link_preferred(self, web, ctx) -> None:
        page = (
            '<a href="https://dl.example/sd.mp4" download="video_sd.mp4">SD</a>'
            '<a href="https://dl.example/hd.mp4" download="video_hd.mp4">HD</a>'
            '<video poster="https://dl.example/p.jpg"></video>'
        )
        web.add("POST", MIRROR_URL, httpx.Response(200, text=page))

        result = await MirrorSiteStrategy().attempt(REEL_URL, ctx)

        assert result.outcome.video_url == "https://dl.example/hd.mp4"
        assert result.outcome.quality is Quality.HD
        assert result.outcome.thumbnail_url == "https://dl.example/p.jpg"
        form = parse_qs(web.requests[0].content.decode())
        assert form["url"] == [REEL_URL]

    @pytest.mark.asyncio
    async def test_sd_link_when_no_hd(self, web, ctx) -> None:
        web.add(
            "POST",
            MIRROR_URL,
            httpx.Response(200, text='<a href="https://dl.example/sd.mp4" download="video.mp4">Save</a>'),
        )

        result = await MirrorSiteStrategy().attempt(REEL_URL, ctx)

        assert result.outcome.video_url == "https://dl.example/sd.mp4"
        assert result.outcome.quality is Quality.SD

    @pytest.mark.asyncio
    async def test_error_status_fails(self, web, ctx) -> None:
        web.add("POST", MIRROR_URL, httpx.Response(503))

        result = await MirrorSiteStrategy().attempt(REEL_URL, ctx)

        assert result.status is StrategyStatus.FAIL
        assert "503" in result.reason
