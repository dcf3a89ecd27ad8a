"""MySQL connection registry exports."""

from __future__ import annotations

from .config import ConnectionPoolSettings, ConnectionSpec, MySQLConfig, MySQLConnectSettings, load_config
from .core import HealthCheckStatus, TopologyMode
from .dsn import DataSourceName, parse_dsn, redact_dsn
from .duration import Duration, format_duration, parse_duration
from .exceptions import (
    CloseError,
    ConfigError,
    ConnectError,
    HandleClosedError,
    MySQLConnectError,
    NotFoundError,
    ResolutionError,
)
from .handle import HandleOpener, PooledHandle
from .health import ConnectionHealthResult, RegistryHealthResult
from .logger import LoggingSettings, configure_logging, get_logger
from .pool import MySQLPool, PoolStats
from .registry import ConnectionRegistry, apply_pool_settings, open_registry
from .resolver import resolve_dsn
from .validator import validate_config

__all__ = [
    "CloseError",
    "ConfigError",
    "ConnectError",
    "ConnectionHealthResult",
    "ConnectionPoolSettings",
    "ConnectionRegistry",
    "ConnectionSpec",
    "DataSourceName",
    "Duration",
    "HandleClosedError",
    "HandleOpener",
    "HealthCheckStatus",
    "LoggingSettings",
    "MySQLConfig",
    "MySQLConnectError",
    "MySQLConnectSettings",
    "MySQLPool",
    "NotFoundError",
    "PoolStats",
    "PooledHandle",
    "RegistryHealthResult",
    "ResolutionError",
    "TopologyMode",
    "apply_pool_settings",
    "configure_logging",
    "format_duration",
    "get_logger",
    "load_config",
    "open_registry",
    "parse_dsn",
    "parse_duration",
    "redact_dsn",
    "resolve_dsn",
    "validate_config",
]
