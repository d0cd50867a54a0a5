from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    # Headless-browser backend; the feature degrades gracefully when unset
    BACKEND_URL: Optional[str] = None

    COBALT_API_URL: str = "https://api.cobalt.tools/api/json"
    COBALT_API_KEY: Optional[str] = None

    RATE_LIMIT: int = 10
    RATE_LIMIT_WINDOW_SECONDS: float = 60.0

    PROBE_TIMEOUT_SECONDS: float = 8.0
    SCRAPE_TIMEOUT_SECONDS: float = 15.0
    BROWSER_TIMEOUT_SECONDS: float = 15.0
    BACKEND_TIMEOUT_SECONDS: float = 30.0
    PROXY_TIMEOUT_SECONDS: float = 60.0

    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:3001"],
    )

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"


@dataclass(frozen=True)
class ResolverConfig:
    """Snapshot of the settings the resolution engine needs."""
    backend_url: Optional[str] = None
    cobalt_api_url: str = "https://api.cobalt.tools/api/json"
    cobalt_api_key: Optional[str] = None
    probe_timeout: float = 8.0
    scrape_timeout: float = 15.0
    browser_timeout: float = 15.0
    backend_timeout: float = 30.0

    @classmethod
    def from_settings(cls, source: Settings) -> ResolverConfig:
        backend = (source.BACKEND_URL or "").strip().rstrip("/") or None
        return cls(
            backend_url=backend,
            cobalt_api_url=source.COBALT_API_URL,
            cobalt_api_key=source.COBALT_API_KEY or None,
            probe_timeout=source.PROBE_TIMEOUT_SECONDS,
            scrape_timeout=source.SCRAPE_TIMEOUT_SECONDS,
            browser_timeout=source.BROWSER_TIMEOUT_SECONDS,
            backend_timeout=source.BACKEND_TIMEOUT_SECONDS,
        )


settings = Settings()
