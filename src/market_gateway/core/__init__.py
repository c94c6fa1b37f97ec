"""market_gateway.core: Config, exceptions, and logging setup."""

from market_gateway.core.config import (
    APIConfig,
    CacheConfig,
    GatewayConfig,
    LedgerConfig,
    LoggingConfig,
    UpstreamConfig,
    load_config,
)
from market_gateway.core.exceptions import (
    ConfigError,
    GatewayError,
    InvalidInput,
    LedgerError,
    NoUsableData,
    UpstreamError,
    UpstreamShapeError,
    UpstreamUnreachable,
)
from market_gateway.core.logging import configure_logging

__all__ = [
    # Config
    "GatewayConfig",
    "UpstreamConfig",
    "CacheConfig",
    "LedgerConfig",
    "APIConfig",
    "LoggingConfig",
    "load_config",
    # Exceptions
    "GatewayError",
    "ConfigError",
    "UpstreamError",
    "UpstreamUnreachable",
    "UpstreamShapeError",
    "NoUsableData",
    "InvalidInput",
    "LedgerError",
    # Logging
    "configure_logging",
]
