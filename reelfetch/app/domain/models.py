# reelfetch/app/domain/models.py
"""
Domain models for the video resolution engine.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Union


class Platform(str, Enum):
    """Platform a raw URL belongs to. Derived, never stored."""
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    UNRECOGNIZED = "unrecognized"


class LinkKind(str, Enum):
    POST = "post"
    REEL = "reel"
    SHARE_LINK = "share_link"


class Quality(str, Enum):
    HD = "HD"
    SD = "SD"
    UNKNOWN = "Unknown"


class ErrorKind(str, Enum):
    """Error taxonomy surfaced to callers."""
    INVALID_URL = "invalid_url"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    UPSTREAM_FAILURE = "upstream_failure"
    INTERNAL_ERROR = "internal_error"

    @property
    def http_status(self) -> int:
        return _ERROR_STATUS[self]


_ERROR_STATUS = {
    ErrorKind.INVALID_URL: 400,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UPSTREAM_FAILURE: 502,
    ErrorKind.INTERNAL_ERROR: 500,
}


@dataclass(frozen=True)
class ResolutionRequest:
    raw_url: str
    client_id: str


@dataclass(frozen=True)
class CanonicalTarget:
    """Classified URL. Produced once by the classifier and never mutated."""
    platform: Platform
    kind: LinkKind
    identifier: str
    normalized_url: str

    @property
    def is_share_link(self) -> bool:
        return self.kind is LinkKind.SHARE_LINK


@dataclass(frozen=True)
class ExtractionOutcome:
    """
    Result produced by exactly one winning strategy.
    The only permitted post-hoc change is the thumbnail backfill,
    done through `with_thumbnail` which returns a copy.
    """
    video_url: str
    strategy_name: str
    quality: Quality = Quality.UNKNOWN
    thumbnail_url: Optional[str] = None
    duration_seconds: Optional[float] = None
    method: Optional[str] = None

    def with_thumbnail(self, thumbnail_url: str) -> ExtractionOutcome:
        return replace(self, thumbnail_url=thumbnail_url)


@dataclass(frozen=True)
class ResolutionSuccess:
    outcome: ExtractionOutcome
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class ResolutionFailure:
    kind: ErrorKind
    message: str
    success: bool = field(default=False, init=False)

    @property
    def http_status(self) -> int:
        return self.kind.http_status


ResolutionResult = Union[ResolutionSuccess, ResolutionFailure]


@dataclass
class RateLimitRecord:
    """Per-client counter inside one rolling window."""
    count: int
    window_start: float  # monotonic seconds
