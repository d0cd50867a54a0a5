from __future__ import annotations


class ResolverError(Exception):
    pass


class UpstreamFailureError(ResolverError):
    """A delegated service or scraped page did not give a usable answer."""

    def __init__(self, strategy: str, reason: str):
        super().__init__(f"Strategy {strategy} failed: {reason}")
        self.strategy = strategy
        self.reason = reason


class Base62DecodeError(ResolverError, ValueError):
    def __init__(self, char: str):
        super().__init__(f"Invalid base62 character: {char!r}")
        self.char = char
