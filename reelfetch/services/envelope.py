# reelfetch/services/envelope.py
from __future__ import annotations

import math
from typing import Any

from reelfetch.app.domain.models import ResolutionFailure, ResolutionResult


def format_duration(seconds: float) -> str:
    """Raw seconds to `m:ss`."""
    total = max(0, int(math.floor(seconds)))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


def build_envelope(result: ResolutionResult) -> dict[str, Any]:
    """Caller-facing shape; optional fields appear only when known."""
    if isinstance(result, ResolutionFailure):
        return {"success": False, "error": result.message}

    outcome = result.outcome
    if not outcome.video_url:
        raise ValueError("success envelope requires a video_url")

    payload: dict[str, Any] = {
        "success": True,
        "video_url": outcome.video_url,
        "quality": outcome.quality.value,
    }
    if outcome.thumbnail_url:
        payload["thumbnail"] = outcome.thumbnail_url
    if outcome.duration_seconds is not None:
        payload["duration"] = format_duration(outcome.duration_seconds)
    if outcome.method:
        payload["method"] = outcome.method
    return payload
