from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel


class ResolveRequest(BaseModel):
    url: Optional[str] = None


class ResolveResponse(BaseModel):
    success: Literal[True] = True
    video_url: str
    quality: str
    thumbnail: Optional[str] = None
    duration: Optional[str] = None
    method: Optional[str] = None


class ErrorResponse(BaseModel):
    success: Literal[False] = False
    error: str


class ProxyRequest(BaseModel):
    url: Optional[str] = None
