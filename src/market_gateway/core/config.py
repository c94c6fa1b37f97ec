"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from market_gateway.core.exceptions import ConfigError

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class UpstreamConfig(BaseModel):
    """Yahoo Finance chart API access configuration."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://query1.finance.yahoo.com"
    request_timeout: float = 5.0
    user_agent: str = "Mozilla/5.0 (compatible; market-gateway/0.1)"

    @field_validator("base_url")
    @classmethod
    def base_url_is_http(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("request_timeout")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request_timeout must be > 0")
        return v


class CacheConfig(BaseModel):
    """Spot price cache configuration."""

    model_config = ConfigDict(frozen=True)

    freshness_ms: int = 10_000
    single_flight: bool = False

    @field_validator("freshness_ms")
    @classmethod
    def freshness_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("freshness_ms must be >= 0")
        return v


class LedgerConfig(BaseModel):
    """Balance ledger storage configuration."""

    model_config = ConfigDict(frozen=True)

    path: str = "./data/balances.json"


class APIConfig(BaseModel):
    """FastAPI server configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]


class LoggingConfig(BaseModel):
    """Process-wide logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def level_is_known(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _LOG_LEVELS:
            raise ValueError(f"unknown log level: {v!r}")
        return upper


class GatewayConfig(BaseModel):
    """Root configuration for the market gateway."""

    model_config = ConfigDict(frozen=True)

    upstream: UpstreamConfig = UpstreamConfig()
    cache: CacheConfig = CacheConfig()
    ledger: LedgerConfig = LedgerConfig()
    api: APIConfig = APIConfig()
    logging: LoggingConfig = LoggingConfig()


CONFIG_ENV_VAR = "MARKET_GATEWAY_CONFIG"
DEFAULT_CONFIG_FILE = "market-gateway.yml"


def load_config(
    config_path: str | None = None,
    env_prefix: str = "MARKET_GATEWAY_",
) -> GatewayConfig:
    """Build the gateway configuration.

    Three layers, each overriding the one before: built-in defaults, a YAML
    file, then ``<env_prefix>SECTION__FIELD`` environment variables. So
    ``MARKET_GATEWAY_CACHE__FRESHNESS_MS=2500`` sets ``cache.freshness_ms``.

    The YAML file is ``config_path`` when given, otherwise the file named by
    ``MARKET_GATEWAY_CONFIG``, otherwise ``./market-gateway.yml`` if it exists.

    Raises:
        ConfigError: the file is missing, unreadable or not a mapping, or a
            merged value fails validation.
    """
    path = _resolve_config_path(config_path)
    settings = _load_yaml(path) if path is not None else {}
    settings = _merge_env_vars(settings, env_prefix)
    try:
        return GatewayConfig.model_validate(settings)
    except ValidationError as e:
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _resolve_config_path(explicit: str | None) -> Path | None:
    if explicit is not None:
        origin, candidate = "config_path", explicit
    elif os.environ.get(CONFIG_ENV_VAR):
        origin, candidate = CONFIG_ENV_VAR, os.environ[CONFIG_ENV_VAR]
    else:
        fallback = Path(DEFAULT_CONFIG_FILE)
        return fallback if fallback.exists() else None

    path = Path(candidate)
    if not path.exists():
        where = "" if origin == "config_path" else f" from {origin}"
        raise ConfigError(
            f"Config file{where} not found: {candidate}",
            context={"field": origin, "value": candidate},
        )
    return path


def _load_yaml(path: Path) -> dict:
    """Read ``path`` as a YAML mapping; an empty file counts as ``{}``."""
    context = {"field": "config_file", "value": str(path)}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {e}", context=context) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config: {e}", context=context) from e

    data = {} if data is None else data
    if not isinstance(data, dict):
        raise ConfigError(
            f"YAML config must be a mapping, got {type(data).__name__}",
            context=context,
        )
    return data


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Overlay environment variables onto base config dict.

    Double-underscore separates nesting levels.
    Values are auto-cast: "true"/"false" -> bool, numeric strings -> int/float.
    """
    result = dict(base)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        parts = [p.lower() for p in remainder.split("__")]

        # Skip the CONFIG env var itself
        if parts == ["config"]:
            continue

        cast_value = _auto_cast(value)

        target = result
        for part in parts[:-1]:
            nested = target.get(part)
            nested = dict(nested) if isinstance(nested, dict) else {}
            target[part] = nested
            target = nested
        target[parts[-1]] = cast_value

    return result


def _auto_cast(value: str) -> str | int | float | bool:
    """Interpret an env var string as a bool, int or float where it reads as one."""
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value
