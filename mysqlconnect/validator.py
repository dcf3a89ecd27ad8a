"""Invariant checks run on a `MySQLConfig` before any connection is opened.

The checks run in a fixed order and only the first violation is reported:

1. Exactly one of DSN, cluster and HA cluster is set.
2. Schema is set if and only if a cluster mode is used.
3. At least one connection is declared.
4. Connection names are unique.
5. In cluster modes every connection targets the master or is read-only.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from .exceptions import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .config import ConnectionSpec, MySQLConfig

_PREFIX = "invalid MySQL config"


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _check_topology(config: MySQLConfig) -> None:
    if not config.dsn and not config.cluster and not config.ha_cluster:
        raise ConfigError(f"{_PREFIX}: DSN, Cluster and HACluster are empty")

    if config.dsn and (config.cluster or config.ha_cluster):
        raise ConfigError(f"{_PREFIX}: DSN is mutually exclusive with Cluster and HACluster")

    if config.cluster and config.ha_cluster:
        raise ConfigError(f"{_PREFIX}: Cluster is mutually exclusive with HACluster")


def _check_schema(config: MySQLConfig) -> None:
    if config.dsn and config.schema_name:
        raise ConfigError(
            f"{_PREFIX}: DSN is mutually exclusive with Schema since the schema is already defined in the DSN"
        )

    if not config.dsn and not config.schema_name:
        raise ConfigError(f"{_PREFIX}: when DSN is empty the Schema must be defined")


def _check_unique_names(connections: Iterable[ConnectionSpec]) -> None:
    seen: set[str] = set()
    for connection in connections:
        if connection.name in seen:
            raise ConfigError(
                f"{_PREFIX}: duplicated connection name {_quote(connection.name)}",
                value=connection.name,
            )
        seen.add(connection.name)


def _check_roles(connections: Iterable[ConnectionSpec]) -> None:
    # A connection to a replica with write credentials makes no sense.
    for connection in connections:
        if not connection.is_master and not connection.is_read_only:
            raise ConfigError(
                f"{_PREFIX}: cannot write to a replica: connection {_quote(connection.name)}",
                value=connection.name,
            )


def validate_config(config: MySQLConfig) -> None:
    """Validate a configuration, raising on the first violated invariant.

    Pure and side-effect free; safe to call any number of times.

    Parameters
    ----------
    config
        The configuration to check.

    Raises
    ------
    ConfigError
        Describing the first violated invariant. For duplicated names and
        replica write connections, ``ConfigError.value`` holds the name.
    """
    _check_topology(config)
    _check_schema(config)

    if not config.connections:
        raise ConfigError(f"{_PREFIX}: no connections defined")

    _check_unique_names(config.connections)

    if not config.dsn:
        _check_roles(config.connections)
