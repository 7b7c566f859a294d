"""Application settings and CORS configuration."""

import json
import os
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env"), env_file_encoding="utf-8")

    # App
    APP_NAME: str = "PageLens"
    ENVIRONMENT: str = "development"  # development | production | test

    # CORS
    # Accept list or CSV/JSON string from env; normalized to list[str] by validators
    CORS_ORIGINS: list[str] | str = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    ALLOW_CREDENTIALS: bool = True

    # Local inference (Ollama)
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    CHAT_MODEL: str = "gpt-oss:20b"
    # Summaries use their own setting so a lighter model can be swapped in
    SUMMARY_MODEL: str = "gpt-oss:20b"
    INFERENCE_TIMEOUT_SECONDS: float = 120.0

    # Page capture
    CAPTURE_TIMEOUT_SECONDS: float = 30.0
    CAPTURE_USER_AGENT: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36"
    )
    CAPTURE_SCROLL_PAUSE_MS: int = 2000
    CAPTURE_SETTLE_PAUSE_MS: int = 1000
    CAPTURE_MIN_CONTENT_LENGTH: int = 200
    CAPTURE_ALLOW_PRIVATE_HOSTS: bool = False
    CAPTURE_STRIP_INLINE_STYLES: bool = True

    # Prompt construction
    CONTEXT_MAX_CHARS: int = 1000
    SEARCH_URL_TEMPLATE: str = "https://www.bing.com/search?q={query}"

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
            # CSV fallback
            return [i.strip() for i in s.split(",") if i.strip()]
        raise ValueError("Invalid CORS_ORIGINS type; expected str or list[str]")

    @field_validator("SEARCH_URL_TEMPLATE")
    @classmethod
    def _require_query_placeholder(cls, v: str) -> str:
        if "{query}" not in v:
            raise ValueError("SEARCH_URL_TEMPLATE must contain a {query} placeholder")
        return v

    @model_validator(mode="after")
    def _validate_cors_credentials(self) -> "Settings":
        """Ensure wildcard origins are not used when credentials are allowed."""
        # Normalize in case the union allows a stray string at runtime
        if isinstance(self.CORS_ORIGINS, str):
            self.CORS_ORIGINS = self.assemble_cors_origins(self.CORS_ORIGINS)
        if self.ALLOW_CREDENTIALS and any(
            o.strip() == "*" for o in (self.CORS_ORIGINS or [])
        ):
            raise ValueError(
                "CORS configuration error: ALLOW_CREDENTIALS=True but "
                "CORS_ORIGINS contains '*'. Use explicit origins when credentials "
                "are allowed."
            )
        return self


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

    # pydantic-settings accepts a runtime-only `_env_file` kwarg that mypy's
    # stub does not know about.
    return Settings(_env_file=env_file or None)  # type: ignore[call-arg]
