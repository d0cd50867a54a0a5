# reelfetch/services/delegates.py
"""
Clients for the delegated collaborators: the external video-resolution API
and the optional headless-browser backend. Replies are validated into typed
envelopes; any transport error, non-2xx status or shape mismatch surfaces
as UpstreamFailureError so the calling strategy can move on.
"""
from __future__ import annotations

import logging
from typing import Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from reelfetch.app.config import ResolverConfig
from reelfetch.app.domain.errors import UpstreamFailureError
from reelfetch.services.http import json_headers

logger = logging.getLogger(__name__)

RESOLVABLE_STATUSES = frozenset({"redirect", "stream", "tunnel"})


class CobaltReply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: Literal["redirect", "stream", "tunnel", "error"]
    url: Optional[str] = None
    thumb: Optional[str] = None
    text: Optional[str] = None

    @property
    def is_resolvable(self) -> bool:
        return self.status in RESOLVABLE_STATUSES and bool(self.url)


class BackendReply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = False
    videoUrl: Optional[str] = None
    method: Optional[str] = None


class ShareResolveReply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    resolved_url: Optional[str] = None


def _parse(model: type[BaseModel], response: httpx.Response, source: str):
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise UpstreamFailureError(source, f"unexpected response shape: {exc}") from exc


class CobaltClient:
    """Delegated external video-resolution API."""

    name = "cobalt"

    def __init__(self, http: httpx.AsyncClient, config: ResolverConfig):
        self._http = http
        self._config = config

    def _headers(self) -> dict[str, str]:
        if self._config.cobalt_api_key:
            return json_headers(Authorization=f"Api-Key {self._config.cobalt_api_key}")
        return json_headers()

    async def probe(self, url: str, timeout: Optional[float] = None) -> CobaltReply:
        payload = {"url": url, "videoCodec": "h264", "videoQuality": "max"}
        try:
            response = await self._http.post(
                self._config.cobalt_api_url,
                json=payload,
                headers=self._headers(),
                timeout=timeout or self._config.probe_timeout,
            )
        except httpx.HTTPError as exc:
            raise UpstreamFailureError(self.name, f"{type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise UpstreamFailureError(self.name, f"status {response.status_code}")

        reply = _parse(CobaltReply, response, self.name)
        if reply.status == "error":
            logger.info("cobalt.error url=%s text=%s", url, reply.text)
        return reply

    async def is_resolvable(self, url: str) -> bool:
        reply = await self.probe(url)
        return reply.is_resolvable


class BrowserBackendClient:
    """Optional headless-browser backend reachable at BACKEND_URL."""

    name = "browser-backend"

    def __init__(self, http: httpx.AsyncClient, config: ResolverConfig):
        self._http = http
        self._config = config

    @property
    def enabled(self) -> bool:
        return bool(self._config.backend_url)

    async def _get(self, path: str, url: str) -> httpx.Response:
        return await self._http.get(
            f"{self._config.backend_url}{path}",
            params={"url": url},
            headers={"Accept": "application/json"},
            timeout=self._config.backend_timeout,
        )

    async def extract(self, url: str) -> BackendReply:
        if not self.enabled:
            raise UpstreamFailureError(self.name, "backend not configured")
        try:
            response = await self._get("/extract", url)
            if response.status_code == 404:
                # older deployments only expose the reel endpoint
                response = await self._get("/api/reel", url)
        except httpx.HTTPError as exc:
            raise UpstreamFailureError(self.name, f"{type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise UpstreamFailureError(self.name, f"status {response.status_code}")
        return _parse(BackendReply, response, self.name)

    async def resolve_share(self, url: str) -> ShareResolveReply:
        if not self.enabled:
            raise UpstreamFailureError(self.name, "backend not configured")
        try:
            response = await self._http.post(
                f"{self._config.backend_url}/api/facebook-resolve",
                json={"url": url},
                headers=json_headers(),
                timeout=self._config.browser_timeout,
            )
        except httpx.HTTPError as exc:
            raise UpstreamFailureError(self.name, f"{type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise UpstreamFailureError(self.name, f"status {response.status_code}")
        return _parse(ShareResolveReply, response, self.name)
