"""Configuration models for the MySQL connection registry.

- `ConnectionPoolSettings`: Optional pool tuning for one connection
- `ConnectionSpec`: One named connection to open
- `MySQLConfig`: Topology (DSN, cluster or HA cluster) plus connections
- `MySQLConnectSettings`: Process settings read from the environment

Examples
--------
>>> config = MySQLConfig.model_validate_json('''
... {
...     "cluster": "my_cluster",
...     "schema": "my_schema",
...     "connections": [
...         {"name": "master", "is_master": true, "parameters": "parseTime=true",
...          "connection_pool": {"conn_max_lifetime": "10m", "max_open_connections": 100}},
...         {"name": "replica", "is_read_only": true}
...     ]
... }
... ''')
>>> config.mode
<TopologyMode.SINGLE_CLUSTER: 'cluster'>
"""

from __future__ import annotations

from pathlib import Path
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.enums import TopologyMode
from .duration import Duration
from .exceptions import ConfigError


class ConnectionPoolSettings(BaseModel):
    """Pool tuning for a single connection.

    Every field is optional. A field left as ``None`` is not applied, so the
    handle keeps its own default for it.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    conn_max_lifetime: Duration | None = Field(
        default=None, description="Maximum amount of time a connection may be reused"
    )
    max_idle_connections: int | None = Field(
        default=None, description="Maximum number of idle connections kept in the pool"
    )
    max_open_connections: int | None = Field(
        default=None, description="Maximum number of open connections (0 or less is unlimited)"
    )
    conn_max_idle_time: Duration | None = Field(
        default=None, description="Maximum amount of time a connection may sit idle"
    )


class ConnectionSpec(BaseModel):
    """A named connection declared in the configuration.

    ``is_master`` and ``is_read_only`` select the endpoint and credentials in
    cluster modes and are ignored when a DSN is configured. ``parameters`` is
    a ``key=value&...`` string appended to derived DSNs, also ignored with a
    DSN since it carries its own query string.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(description="Unique name used to look the connection up")
    is_master: bool = Field(default=False, description="Connect to the primary endpoint")
    is_read_only: bool = Field(default=False, description="Use read-only credentials")
    parameters: str = Field(default="", description="Driver parameters, e.g. parseTime=true&timeout=100ms")
    connection_pool: ConnectionPoolSettings = Field(
        default_factory=ConnectionPoolSettings, description="Connection pool settings"
    )


class MySQLConfig(BaseModel):
    """Configuration for opening one or more MySQL connections.

    Exactly one of ``dsn``, ``cluster`` and ``ha_cluster`` must be set, and
    ``schema`` is required with the cluster modes. These rules are checked by
    `mysqlconnect.validator.validate_config` rather than at parse time so that
    callers get the first violated rule with a stable message.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    dsn: str = Field(
        default="",
        description="[username[:password]@][protocol[(address)]]/schema[?param1=value1&...]",
    )
    cluster: str = Field(default="", description="MySQL cluster name")
    ha_cluster: str = Field(default="", description="HA MySQL cluster name")
    schema_name: str = Field(default="", alias="schema", description="Schema for cluster modes")
    connections: tuple[ConnectionSpec, ...] = Field(
        default_factory=tuple, description="Connections created by the registry"
    )

    @property
    def mode(self) -> TopologyMode | None:
        """Topology selected by this configuration, or ``None`` if ambiguous."""
        selected = [
            mode
            for mode, value in (
                (TopologyMode.DIRECT, self.dsn),
                (TopologyMode.SINGLE_CLUSTER, self.cluster),
                (TopologyMode.HA_CLUSTER, self.ha_cluster),
            )
            if value
        ]
        return selected[0] if len(selected) == 1 else None

    @property
    def cluster_name(self) -> str:
        """Name of the configured cluster, whichever mode it belongs to."""
        return self.cluster or self.ha_cluster

    @classmethod
    def from_json(cls, data: str | bytes) -> Self:
        """Parse a configuration from its JSON representation."""
        return cls.model_validate_json(data)

    def to_json(self, *, indent: int | None = None) -> str:
        """Serialise to the JSON format accepted by `from_json`."""
        return self.model_dump_json(by_alias=True, indent=indent)


class MySQLConnectSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MYSQLCONNECT_",
        extra="ignore",
        frozen=True,
    )

    config_file: Path | None = Field(default=None, description="Path to the JSON connection config")


def load_config(path: str | Path | None = None) -> MySQLConfig:
    """Load a `MySQLConfig` from a JSON file.

    Parameters
    ----------
    path
        File to read. Defaults to ``MYSQLCONNECT_CONFIG_FILE``.

    Returns
    -------
    MySQLConfig
        The parsed (not yet validated) configuration.

    Raises
    ------
    ConfigError
        If no path is configured, the file cannot be read or it does not
        match the configuration format.
    """
    config_path = Path(path) if path is not None else MySQLConnectSettings().config_file
    if config_path is None:
        raise ConfigError("invalid MySQL config: no config file given and MYSQLCONNECT_CONFIG_FILE is not set")

    try:
        raw = config_path.read_bytes()
    except OSError as e:
        raise ConfigError(f"invalid MySQL config: cannot read {config_path}: {e}") from e

    try:
        return MySQLConfig.from_json(raw)
    except ValidationError as e:
        raise ConfigError(f"invalid MySQL config: {config_path}: {e}") from e
