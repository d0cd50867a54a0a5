# reelfetch/app/infra/rate_limit/base.py
"""
Abstract counter store consulted before any resolution work starts.
This interface allows swapping the in-process store for a shared one
(Redis, Memcached) without touching the resolver.
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class CounterStore(ABC):
    """
    Rate-limit counter keyed by client identifier.

    Implementations:
    - InMemoryCounterStore: process-local, best effort
    """

    @abstractmethod
    def increment(self, key: str) -> bool:
        """
        Count one request for `key` inside the current window.

        Args:
            key: Client identifier (usually the caller IP)

        Returns:
            True if the request is allowed, False if the limit is reached
        """
        pass
