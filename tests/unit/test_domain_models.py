from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from reelfetch.app.domain.models import (
    CanonicalTarget,
    ErrorKind,
    ExtractionOutcome,
    LinkKind,
    Platform,
    Quality,
    ResolutionFailure,
    ResolutionSuccess,
)


class TestErrorKind:
    @pytest.mark.parametrize(
        "kind, status",
        [
            (ErrorKind.INVALID_URL, 400),
            (ErrorKind.RATE_LIMITED, 429),
            (ErrorKind.NOT_FOUND, 404),
            (ErrorKind.UPSTREAM_FAILURE, 502),
            (ErrorKind.INTERNAL_ERROR, 500),
        ],
    )
    def test_http_status(self, kind: ErrorKind, status: int) -> None:
        assert kind.http_status == status


class TestCanonicalTarget:
    def test_share_link_flag(self) -> None:
        share = CanonicalTarget(Platform.FACEBOOK, LinkKind.SHARE_LINK, "abc", "https://facebook.com/share/r/abc/")
        reel = CanonicalTarget(Platform.FACEBOOK, LinkKind.REEL, "1", "https://www.facebook.com/reel/1")

        assert share.is_share_link
        assert not reel.is_share_link

    def test_immutable(self) -> None:
        target = CanonicalTarget(Platform.INSTAGRAM, LinkKind.POST, "A", "https://www.instagram.com/p/A/")
        with pytest.raises(FrozenInstanceError):
            target.identifier = "B"  # type: ignore[misc]


class TestExtractionOutcome:
    def test_defaults(self) -> None:
        outcome = ExtractionOutcome(video_url="https://v/x.mp4", strategy_name="s")
        assert outcome.quality is Quality.UNKNOWN
        assert outcome.thumbnail_url is None
        assert outcome.duration_seconds is None

    def test_with_thumbnail_returns_copy(self) -> None:
        outcome = ExtractionOutcome(video_url="https://v/x.mp4", strategy_name="s", quality=Quality.SD)

        updated = outcome.with_thumbnail("https://img/t.jpg")

        assert updated.thumbnail_url == "https://img/t.jpg"
        assert updated.quality is Quality.SD
        assert outcome.thumbnail_url is None


class TestResolutionResult:
    def test_success_flag(self) -> None:
        assert ResolutionSuccess(ExtractionOutcome("https://v", "s")).success is True
        assert ResolutionFailure(ErrorKind.NOT_FOUND, "x").success is False
