"""Pydantic configuration models with full validation."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from europarl_mcp.api.rate_limiter import Interval

DEFAULT_API_URL = "https://data.europarl.europa.eu/api/v2/"
USER_AGENT = "European-Parliament-MCP-Server/1.0"


# ── API ──────────────────────────────────────────────────
class RateLimitConfig(BaseModel):
    capacity: float = Field(gt=0, default=100)
    interval: Interval = Interval.MINUTE
    initial_tokens: float | None = Field(ge=0, default=None)

    @field_validator("interval", mode="before")
    @classmethod
    def normalise_interval(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_initial_tokens(self) -> RateLimitConfig:
        if self.initial_tokens is not None and self.initial_tokens > self.capacity:
            raise ValueError("initial_tokens must be <= capacity")
        return self


class APIConfig(BaseModel):
    base_url: str = DEFAULT_API_URL
    timeout: float = Field(gt=0, le=120, default=10.0)
    enable_retry: bool = True
    max_retries: int = Field(ge=0, le=10, default=2)
    retry_delay: float = Field(ge=0.0, default=1.0)
    user_agent: str = USER_AGENT
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)

    @field_validator("base_url")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL: {v}")
        return v if v.endswith("/") else v + "/"


# ── Cache ────────────────────────────────────────────────
class CacheConfig(BaseModel):
    enabled: bool = True
    ttl: float = Field(ge=0.0, default=900.0)
    max_size: int = Field(ge=1, default=500)


# ── Logging ──────────────────────────────────────────────
class LoggingConfig(BaseModel):
    level: str = "INFO"
    console: bool = True
    file: str | None = "logs/europarl_mcp.log"
    rotation: str = "50 MB"
    retention: str = "14 days"
    audit_file: str | None = "logs/audit.log"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Invalid log level: {v}. Must be one of {allowed}")
        return v.upper()


# ── Root Config ──────────────────────────────────────────
class AppConfig(BaseModel):
    api: APIConfig = Field(default_factory=APIConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
