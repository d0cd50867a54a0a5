from __future__ import annotations

from typing import Optional

import httpx
import pytest

from reelfetch.app.domain.models import ErrorKind, ExtractionOutcome, Quality, ResolutionSuccess
from reelfetch.services.classifier import classify
from reelfetch.services.envelope import build_envelope
from reelfetch.services.facebook import FACEBOOK_NOT_FOUND, FacebookResolver
from reelfetch.services.share_resolver import ShareResolution
from reelfetch.services.strategies.base import Strategy, StrategyContext, StrategyResult

COBALT_HOST = "api.cobalt.tools"

SHARE_URL = "https://facebook.com/share/r/XyZ9/"
REEL_URL = "https://www.facebook.com/reel/123"


class RecordingStrategy(Strategy):
    def __init__(self, name: str, video_url: Optional[str] = None, thumbnail: Optional[str] = None):
        self.name = name
        self._video_url = video_url
        self._thumbnail = thumbnail
        self.calls: list[str] = []

    async def run(self, url: str, ctx: StrategyContext) -> StrategyResult:
        self.calls.append(url)
        if self._video_url is None:
            return StrategyResult.fail("no video")
        return StrategyResult.success(
            ExtractionOutcome(
                video_url=self._video_url,
                strategy_name=self.name,
                quality=Quality.SD,
                thumbnail_url=self._thumbnail,
            )
        )


class FixedShareResolver:
    def __init__(self, resolved_url: str):
        self.resolved_url = resolved_url
        self.calls = 0

    async def resolve(self, target):
        self.calls += 1
        return ShareResolution(original_url=target.normalized_url, resolved_url=self.resolved_url, strategy="stub")


def probe_returning(value):
    calls: list[str] = []

    async def probe(url: str) -> Optional[str]:
        calls.append(url)
        if isinstance(value, Exception):
            raise value
        return value

    probe.calls = calls
    return probe


class TestThumbnailBackfill:
    @pytest.mark.asyncio
    async def test_missing_thumbnail_is_backfilled_from_original(self, ctx) -> None:
        probe = probe_returning("https://img.fbcdn.net/t.jpg")
        resolver = FacebookResolver(
            ctx,
            primary=[RecordingStrategy("winner", "https://video.fbcdn.net/v.mp4")],
            thumbnail_probe=probe,
        )

        result = await resolver.resolve(classify(REEL_URL))

        assert result.outcome.thumbnail_url == "https://img.fbcdn.net/t.jpg"
        assert result.outcome.video_url == "https://video.fbcdn.net/v.mp4"
        assert probe.calls == [REEL_URL]

    @pytest.mark.asyncio
    async def test_existing_thumbnail_is_kept(self, ctx) -> None:
        probe = probe_returning("https://img/other.jpg")
        resolver = FacebookResolver(
            ctx,
            primary=[RecordingStrategy("winner", "https://video/v.mp4", thumbnail="https://img/own.jpg")],
            thumbnail_probe=probe,
        )

        result = await resolver.resolve(classify(REEL_URL))

        assert result.outcome.thumbnail_url == "https://img/own.jpg"
        assert probe.calls == []

    @pytest.mark.asyncio
    async def test_probe_without_image_leaves_thumbnail_out(self, ctx) -> None:
        resolver = FacebookResolver(
            ctx,
            primary=[RecordingStrategy("winner", "https://video/v.mp4")],
            thumbnail_probe=probe_returning(None),
        )

        result = await resolver.resolve(classify(REEL_URL))

        assert isinstance(result, ResolutionSuccess)
        assert "thumbnail" not in build_envelope(result)

    @pytest.mark.asyncio
    async def test_probe_error_keeps_success(self, ctx) -> None:
        resolver = FacebookResolver(
            ctx,
            primary=[RecordingStrategy("winner", "https://video/v.mp4")],
            thumbnail_probe=probe_returning(httpx.ReadTimeout("slow")),
        )

        result = await resolver.resolve(classify(REEL_URL))

        assert isinstance(result, ResolutionSuccess)
        assert result.outcome.thumbnail_url is None


class TestSecondPass:
    @pytest.mark.asyncio
    async def test_original_link_retried_when_resolved_differs(self, ctx) -> None:
        primary = RecordingStrategy("primary")
        second = RecordingStrategy("second", "https://video/v.mp4")
        resolver = FacebookResolver(
            ctx,
            share_resolver=FixedShareResolver(REEL_URL),
            primary=[primary],
            second_pass=[second],
            thumbnail_probe=probe_returning(None),
        )

        result = await resolver.resolve(classify(SHARE_URL))

        assert primary.calls == [REEL_URL]
        assert second.calls == [SHARE_URL]
        assert result.outcome.strategy_name == "second"

    @pytest.mark.asyncio
    async def test_no_second_pass_when_unchanged(self, ctx) -> None:
        second = RecordingStrategy("second", "https://video/v.mp4")
        resolver = FacebookResolver(
            ctx,
            share_resolver=FixedShareResolver(SHARE_URL),
            primary=[RecordingStrategy("primary")],
            second_pass=[second],
        )

        result = await resolver.resolve(classify(SHARE_URL))

        assert second.calls == []
        assert result.kind is ErrorKind.NOT_FOUND
        assert result.message == FACEBOOK_NOT_FOUND

    @pytest.mark.asyncio
    async def test_canonical_links_skip_share_resolution(self, ctx) -> None:
        share = FixedShareResolver("https://never.used/")
        resolver = FacebookResolver(
            ctx,
            share_resolver=share,
            primary=[RecordingStrategy("winner", "https://video/v.mp4")],
            thumbnail_probe=probe_returning(None),
        )

        await resolver.resolve(classify(REEL_URL))

        assert share.calls == 0


class TestFacebookEndToEnd:
    @pytest.mark.asyncio
    async def test_share_link_with_every_step_failing(self, web, ctx) -> None:
        result = await FacebookResolver(ctx).resolve(classify(SHARE_URL))

        assert result.http_status == 404
        assert build_envelope(result) == {"success": False, "error": FACEBOOK_NOT_FOUND}
        assert SHARE_URL in web.posted_urls(COBALT_HOST)
        assert web.hits("mbasic.facebook.com", "/share/r/XyZ9/")

    @pytest.mark.asyncio
    async def test_embed_player_hd_with_backfilled_thumbnail(self, web, ctx) -> None:
        web.add(
            "GET",
            "https://www.facebook.com/plugins/video.php",
            httpx.Response(200, text='{"playable_url":"https:\\/\\/video.fbcdn.net\\/sd.mp4","hd_src":"https:\\/\\/video.fbcdn.net\\/hd.mp4"}'),
        )
        web.add(
            "GET",
            REEL_URL,
            httpx.Response(200, text='<meta property="og:image" content="https://scontent.fbcdn.net/thumb.jpg">'),
        )

        result = await FacebookResolver(ctx).resolve(classify(REEL_URL))

        assert build_envelope(result) == {
            "success": True,
            "video_url": "https://video.fbcdn.net/hd.mp4",
            "quality": "HD",
            "thumbnail": "https://scontent.fbcdn.net/thumb.jpg",
        }
        assert web.hits(COBALT_HOST) == []
