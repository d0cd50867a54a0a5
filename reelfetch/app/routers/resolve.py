# reelfetch/app/routers/resolve.py
from __future__ import annotations

import logging
import time

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from reelfetch.app.config import ResolverConfig, settings
from reelfetch.app.deps import get_client_id, get_http_client, get_rate_limiter, get_resolver_config
from reelfetch.app.domain.models import ResolutionFailure, ResolutionRequest
from reelfetch.app.infra.rate_limit.base import CounterStore
from reelfetch.app.schemas.resolve import ErrorResponse, ResolveRequest, ResolveResponse
from reelfetch.services.envelope import build_envelope
from reelfetch.services.resolve import resolve_url

log = logging.getLogger("resolve")
router = APIRouter(tags=["resolve"])

GENERIC_ERROR = "An unexpected error occurred"


@router.post(
    "/resolve",
    response_model=ResolveResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
@router.post("/api/download", include_in_schema=False)
async def resolve_video(
    body: ResolveRequest,
    client_id: str = Depends(get_client_id),
    limiter: CounterStore = Depends(get_rate_limiter),
    config: ResolverConfig = Depends(get_resolver_config),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    t0 = time.time()
    log.info("resolve.start url=%s client=%s", body.url, client_id)
    try:
        result = await resolve_url(
            ResolutionRequest(raw_url=body.url or "", client_id=client_id),
            limiter=limiter,
            config=config,
            http=http,
        )
    except Exception as exc:
        dt = time.time() - t0
        log.exception("resolve.fail url=%s dt=%.2fs", body.url, dt)
        message = GENERIC_ERROR if settings.is_production else (str(exc) or GENERIC_ERROR)
        return JSONResponse(status_code=500, content={"success": False, "error": message})

    dt = time.time() - t0
    envelope = build_envelope(result)
    if isinstance(result, ResolutionFailure):
        log.warning("resolve.%s url=%s dt=%.2fs", result.kind.value, body.url, dt)
        return JSONResponse(status_code=result.http_status, content=envelope)

    log.info("resolve.ok url=%s strategy=%s dt=%.2fs", body.url, result.outcome.strategy_name, dt)
    return JSONResponse(status_code=200, content=envelope)
