"""Configuration loader: YAML + env vars -> validated AppConfig."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import yaml
from dotenv import load_dotenv
from loguru import logger

from .models import AppConfig


def sanitize_url(url: str) -> str:
    """Strip credentials, query string and fragment from *url*."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.hostname:
        return url.split("?", 1)[0].split("#", 1)[0]
    netloc = parts.hostname
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


def _env_number(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a number")
        return None
    if value <= 0:
        logger.warning(f"Ignoring {name}={raw!r}: must be positive")
        return None
    return value


def apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Fold the supported environment variables into a raw config dict."""
    env_log_level = os.getenv("LOG_LEVEL")
    if env_log_level:
        raw.setdefault("logging", {})["level"] = env_log_level

    api = raw.setdefault("api", {})

    api_url = os.getenv("EP_API_URL")
    if api_url:
        api["base_url"] = sanitize_url(api_url)

    timeout_ms = _env_number("EP_REQUEST_TIMEOUT_MS")
    if timeout_ms is not None:
        api["timeout"] = timeout_ms / 1000

    cache_ttl_ms = _env_number("EP_CACHE_TTL")
    if cache_ttl_ms is not None:
        raw.setdefault("cache", {})["ttl"] = cache_ttl_ms / 1000

    per_minute = _env_number("EP_RATE_LIMIT")
    if per_minute is not None:
        rate_limit = api.setdefault("rate_limit", {})
        rate_limit["capacity"] = per_minute
        rate_limit["interval"] = "minute"
        initial = rate_limit.get("initial_tokens")
        if initial is not None and initial > per_minute:
            rate_limit["initial_tokens"] = per_minute

    return raw


def load_config(config_path: str = "config/config.yaml") -> AppConfig:
    """Load and validate configuration from YAML file.

    Environment variables from .env are loaded first so that the
    ``EP_*`` and ``LOG_LEVEL`` overrides can come from either source.
    """
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)
        logger.info(f"Loaded environment from {env_path.resolve()}")

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file.resolve()}")

    with open(config_file, encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raise ValueError(f"Config file is empty: {config_file}")
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a mapping: {config_file}")

    config = AppConfig(**apply_env_overrides(raw))

    rl = config.api.rate_limit
    logger.info(
        f"Config loaded: api={config.api.base_url}, "
        f"rate_limit={rl.capacity:g}/{rl.interval.value}, "
        f"cache_ttl={config.cache.ttl:g}s"
    )
    return config
