from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AnyHttpUrl,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

API_PATH = "/web/api/v2.1"

_http_url = TypeAdapter(AnyHttpUrl)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # SentinelOne
    sentinelone_api_key: str = Field(repr=False)
    sentinelone_api_base: str

    # MCP Server
    mcp_transport: Literal["stdio", "http"] = "stdio"
    mcp_host: str = "0.0.0.0"
    mcp_port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("mcp_port", "port"),
    )
    mcp_auth_token: Optional[str] = Field(default=None, repr=False)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("sentinelone_api_key")
    @classmethod
    def _api_key_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("SENTINELONE_API_KEY cannot be empty")
        return value.strip()

    @field_validator("log_level", mode="before")
    @classmethod
    def _fold_log_level(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("sentinelone_api_base")
    @classmethod
    def _normalize_api_base(cls, value: str) -> str:
        try:
            _http_url.validate_python(value)
        except ValidationError:
            raise ValueError(
                "SENTINELONE_API_BASE must be a valid URL (e.g., https://usea1.sentinelone.net)"
            ) from None
        return value.rstrip("/")

    @model_validator(mode="after")
    def _http_needs_token(self) -> "Settings":
        if self.mcp_transport == "http" and not self.mcp_auth_token:
            raise ValueError("MCP_AUTH_TOKEN is required when MCP_TRANSPORT is 'http'")
        return self

    @property
    def api_url(self) -> str:
        return f"{self.sentinelone_api_base}{API_PATH}"


def _describe(error: Any) -> str:
    loc = error.get("loc") or ()
    name = str(loc[0]).upper() if loc else ""
    if error.get("type") == "missing":
        return f"{name} environment variable is required"
    message = str(error.get("msg", "")).removeprefix("Value error, ")
    if name and name not in message:
        return f"{name}: {message}"
    return message


def load_settings(**overrides: Any) -> Settings:
    """Build settings from the environment, failing with one readable message."""
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        problems = ", ".join(_describe(e) for e in exc.errors())
        raise ConfigurationError(f"Configuration error: {problems}") from None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
