# reelfetch/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reelfetch import __version__
from reelfetch.app.config import settings
from reelfetch.app.routers.proxy import router as proxy_router
from reelfetch.app.routers.resolve import router as resolve_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
# request lines from the HTTP client drown out strategy logs
for noisy in ("httpx", "httpcore"):
    logging.getLogger(noisy).setLevel(logging.WARNING)

log = logging.getLogger("api")

app = FastAPI(title="Reelfetch API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(resolve_router)
app.include_router(proxy_router)

INVALID_BODY = "Request body must be JSON with a string url"


@app.exception_handler(RequestValidationError)
async def invalid_body(request: Request, exc: RequestValidationError):
    log.warning("request.invalid path=%s errors=%s", request.url.path, exc.errors())
    content = {"error": INVALID_BODY}
    if not request.url.path.endswith("proxy-download"):
        content = {"success": False, **content}
    return JSONResponse(status_code=400, content=content)


@app.get("/health")
def health():
    return {"ok": True}
