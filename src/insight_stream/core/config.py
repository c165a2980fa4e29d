"""Application settings for the analysis stream consumer and producer."""

import json
import os
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env"), env_file_encoding="utf-8")

    # App
    APP_NAME: str = "Insight Stream"
    ENVIRONMENT: str = "development"  # development | production | test

    # Analysis endpoints consumed by the session controller
    ANALYSIS_API_BASE_URL: str = "http://localhost:3001"
    ANALYSIS_API_PREFIX: str = "/api"

    # Timeouts (seconds). The read timeout bounds the gap between two chunks.
    STREAM_CONNECT_TIMEOUT_SECONDS: float = 10.0
    STREAM_READ_TIMEOUT_SECONDS: float = 300.0
    FALLBACK_TIMEOUT_SECONDS: float = 300.0

    # Reference producer
    PRODUCER_CHUNK_DELAY_SECONDS: float = 0.0

    # CORS
    # Accept list or CSV/JSON string from env; normalized to list[str] by validators
    CORS_ORIGINS: list[str] | str = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: object) -> list[str]:
        """Allow list, CSV string, or JSON array string for CORS origins."""
        if isinstance(v, list):
            return [str(i).strip() for i in v]
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    parsed = json.loads(s)
                except json.JSONDecodeError as e:
                    raise ValueError(
                        "CORS_ORIGINS must be a CSV list or JSON array string"
                    ) from e
                if not isinstance(parsed, list):
                    raise ValueError("CORS_ORIGINS JSON must be a list")
                return [str(i).strip() for i in parsed]
            return [i.strip() for i in s.split(",") if i.strip()]
        raise ValueError("Invalid CORS_ORIGINS type; expected str or list[str]")

    @field_validator("ANALYSIS_API_PREFIX")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        """Ensure the prefix starts with a slash and has no trailing slash."""
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = f"/{v}"
        return v

    def endpoint_url(self, path: str) -> str:
        """Join the configured base URL, API prefix and an endpoint path."""
        base = self.ANALYSIS_API_BASE_URL.rstrip("/")
        return f"{base}{self.ANALYSIS_API_PREFIX}/{path.lstrip('/')}"


@lru_cache
def get_settings() -> Settings:
    env = os.getenv("ENVIRONMENT", "development").lower()
    if env not in {"development", "production", "test"}:
        raise ValueError("ENVIRONMENT must be 'development', 'production', or 'test'")

    if env == "production":
        env_file = ".env.prod"
    elif env == "development":
        env_file = ".env.dev"
    else:
        # test environment - no env file needed, use defaults
        env_file = ""

    # The Settings initializer accepts a runtime-only `_env_file` kwarg used by
    # pydantic-settings; mypy's stub doesn't allow this call argument.
    return Settings(_env_file=env_file or None)  # type: ignore[call-arg]
