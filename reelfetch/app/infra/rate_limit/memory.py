# reelfetch/app/infra/rate_limit/memory.py
from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from reelfetch.app.domain.models import RateLimitRecord
from reelfetch.app.infra.rate_limit.base import CounterStore

logger = logging.getLogger(__name__)


class InMemoryCounterStore(CounterStore):
    """
    Fixed-window counter kept in process memory.

    Entries are reset lazily when a new window starts and are never
    deleted, so memory grows with the number of distinct clients.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._records: dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()

    def increment(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            record = self._records.get(key)
            if record is None or now - record.window_start >= self.window_seconds:
                self._records[key] = RateLimitRecord(count=1, window_start=now)
                return True

            if record.count >= self.limit:
                logger.info("rate_limit.rejected client=%s count=%d", key, record.count)
                return False

            record.count += 1
            return True

    def snapshot(self, key: str) -> RateLimitRecord | None:
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            return RateLimitRecord(count=record.count, window_start=record.window_start)
