"""Client configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
from typing import Any, Optional
from urllib.parse import urlparse

from dotenv import find_dotenv, load_dotenv

from .backoff import DEFAULT_DELAY_FACTOR, DEFAULT_MAX_DELAY, DEFAULT_MIN_DELAY
from .errors import ConfigError
from .platforms import get_platform


@dataclass(frozen=True)
class ClientConfig:
    base_url: str
    username: str
    password: str = ""
    insecure: bool = False
    proxy_url: Optional[str] = None
    domain: Optional[str] = None
    platform: str = "mso"
    version: Optional[str] = None
    skip_logging_payload: bool = False
    max_retries: int = 0
    backoff_min_delay: float = DEFAULT_MIN_DELAY
    backoff_max_delay: float = DEFAULT_MAX_DELAY
    backoff_delay_factor: float = DEFAULT_DELAY_FACTOR
    request_timeout: Optional[float] = None

    def with_options(self, **options: Any) -> "ClientConfig":
        unknown = set(options) - OPTION_NAMES
        if unknown:
            raise ConfigError(f"Unknown client options: {', '.join(sorted(unknown))}")
        return replace(self, **options)


OPTION_NAMES = {item.name for item in fields(ClientConfig)} - {"base_url", "username"}


def build_config(base_url: str, username: str, **options: Any) -> ClientConfig:
    """Apply ``options`` in order over the defaults and validate the result."""
    config = ClientConfig(base_url=base_url, username=username)
    for name, value in options.items():
        config = config.with_options(**{name: value})
    config = _apply_backoff_defaults(config)
    validate_config(config)
    return config


def _apply_backoff_defaults(config: ClientConfig) -> ClientConfig:
    # A zero backoff setting means "not set".
    return replace(
        config,
        backoff_min_delay=config.backoff_min_delay or DEFAULT_MIN_DELAY,
        backoff_max_delay=config.backoff_max_delay or DEFAULT_MAX_DELAY,
        backoff_delay_factor=config.backoff_delay_factor or DEFAULT_DELAY_FACTOR,
    )


def validate_config(config: ClientConfig) -> None:
    _require_url(config.base_url, "base URL")
    if config.proxy_url:
        _require_url(config.proxy_url, "proxy URL")
    get_platform(config.platform)
    if config.max_retries < 0:
        raise ConfigError(f"max_retries must not be negative: {config.max_retries}")
    if config.backoff_min_delay < 0:
        raise ConfigError(f"backoff_min_delay must not be negative: {config.backoff_min_delay}")
    if config.backoff_max_delay < config.backoff_min_delay:
        raise ConfigError(
            f"backoff_max_delay ({config.backoff_max_delay}) is lower than "
            f"backoff_min_delay ({config.backoff_min_delay})"
        )
    if config.backoff_delay_factor <= 0:
        raise ConfigError(f"backoff_delay_factor must be positive: {config.backoff_delay_factor}")


def _require_url(value: str, label: str) -> None:
    try:
        parsed = urlparse(value or "")
        parsed.port  # raises ValueError for a malformed port
    except ValueError as exc:
        raise ConfigError(f"Invalid {label} {value!r}: {exc}") from exc
    if not parsed.scheme or not parsed.netloc:
        raise ConfigError(f"Invalid {label} {value!r}: scheme and host are required")


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigError(f"Missing required environment variable: {name}")
    return value


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def _parse_number(name: str, default: Optional[float], cast=float):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return cast(value)
    except ValueError as exc:
        raise ConfigError(f"Invalid value for {name}: {value}") from exc


def load_config() -> ClientConfig:
    load_dotenv(find_dotenv(usecwd=True))

    return build_config(
        _require_env("MSO_URL"),
        _require_env("MSO_USERNAME"),
        password=os.getenv("MSO_PASSWORD", ""),
        insecure=_parse_bool(os.getenv("MSO_INSECURE")),
        proxy_url=_normalize_optional(os.getenv("MSO_PROXY_URL")),
        domain=_normalize_optional(os.getenv("MSO_DOMAIN")),
        platform=os.getenv("MSO_PLATFORM", "mso").strip().lower(),
        version=_normalize_optional(os.getenv("MSO_VERSION")),
        skip_logging_payload=_parse_bool(os.getenv("MSO_SKIP_LOGGING_PAYLOAD")),
        max_retries=_parse_number("MSO_MAX_RETRIES", 0, int),
        backoff_min_delay=_parse_number("MSO_BACKOFF_MIN_DELAY", DEFAULT_MIN_DELAY),
        backoff_max_delay=_parse_number("MSO_BACKOFF_MAX_DELAY", DEFAULT_MAX_DELAY),
        backoff_delay_factor=_parse_number("MSO_BACKOFF_DELAY_FACTOR", DEFAULT_DELAY_FACTOR),
        request_timeout=_parse_number("MSO_REQUEST_TIMEOUT", None),
    )


def _normalize_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned if cleaned else None
