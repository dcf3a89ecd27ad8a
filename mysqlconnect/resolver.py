"""Connection string resolution from configuration and environment.

Cluster deployments inject endpoints and passwords as environment variables
whose names follow a fixed convention. Operators already provision secrets
under these names, so the shapes below must not change::

    DB_MYSQL_{CLUSTER}_{SCHEMA}_{SCHEMA}_ENDPOINT                  master
    DB_MYSQL_{CLUSTER}_{SCHEMA}_{SCHEMA}_LOCAL_REPLICA_ENDPOINT    replica
    DB_MYSQL_{CLUSTER}_{SCHEMA}_{SCHEMA}_WPROD                     write password
    DB_MYSQL_{CLUSTER}_{SCHEMA}_{SCHEMA}_RPROD                     read-only password

    DB_HA_MYSQL_{CLUSTER}_{SCHEMA}_{SCHEMA}_WR_ENDPOINT            master
    DB_HA_MYSQL_{CLUSTER}_{SCHEMA}_{SCHEMA}_RO_ENDPOINT            replica
    DB_HA_MYSQL_{CLUSTER}_{SCHEMA}_{SCHEMA}_WPROD                  write password
    DB_HA_MYSQL_{CLUSTER}_{SCHEMA}_{SCHEMA}_RPROD                  read-only password

Cluster and schema are upper-cased in variable names only; the username
(``{schema}_WPROD`` / ``{schema}_RPROD``) and the DSN path keep the schema as
configured.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .core.enums import TopologyMode
from .exceptions import ResolutionError
from .logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

    from structlog.stdlib import BoundLogger

    from .config import ConnectionSpec, MySQLConfig

logger: BoundLogger = get_logger(__name__)

_WRITE_SUFFIX = "WPROD"
_READ_ONLY_SUFFIX = "RPROD"


@dataclass(frozen=True, slots=True)
class ClusterNaming:
    """Environment variable naming scheme for one cluster flavour."""

    prefix: str
    master_endpoint: str
    replica_endpoint: str

    def variable(self, cluster: str, schema: str, suffix: str) -> str:
        cluster_upper = cluster.upper()
        schema_upper = schema.upper()
        return f"{self.prefix}_{cluster_upper}_{schema_upper}_{schema_upper}_{suffix}"

    def endpoint_variable(self, cluster: str, schema: str, *, is_master: bool) -> str:
        suffix = self.master_endpoint if is_master else self.replica_endpoint
        return self.variable(cluster, schema, suffix)

    def password_variable(self, cluster: str, schema: str, *, is_read_only: bool) -> str:
        suffix = _READ_ONLY_SUFFIX if is_read_only else _WRITE_SUFFIX
        return self.variable(cluster, schema, suffix)


SINGLE_CLUSTER_NAMING = ClusterNaming(
    prefix="DB_MYSQL",
    master_endpoint="ENDPOINT",
    replica_endpoint="LOCAL_REPLICA_ENDPOINT",
)
HA_CLUSTER_NAMING = ClusterNaming(
    prefix="DB_HA_MYSQL",
    master_endpoint="WR_ENDPOINT",
    replica_endpoint="RO_ENDPOINT",
)

_NAMING_BY_MODE: dict[TopologyMode, ClusterNaming] = {
    TopologyMode.SINGLE_CLUSTER: SINGLE_CLUSTER_NAMING,
    TopologyMode.HA_CLUSTER: HA_CLUSTER_NAMING,
}


def cluster_username(schema: str, *, is_read_only: bool) -> str:
    """Database user for a cluster schema and access level."""
    suffix = _READ_ONLY_SUFFIX if is_read_only else _WRITE_SUFFIX
    return f"{schema}_{suffix}"


def compose_dsn(username: str, password: str, host: str, schema: str, parameters: str = "") -> str:
    """Build ``username:password@tcp(host)/schema[?parameters]``."""
    dsn = f"{username}:{password}@tcp({host})/{schema}"
    if parameters:
        dsn = f"{dsn}?{parameters}"
    return dsn


def _lookup(environ: Mapping[str, str], variable: str, *, allow_empty: bool) -> str:
    value = environ.get(variable)
    if value is None:
        raise ResolutionError(f"environment variable {variable} is not set", variable=variable)
    if not value and not allow_empty:
        raise ResolutionError(f"environment variable {variable} is empty", variable=variable)
    return value


def resolve_dsn(
    config: MySQLConfig,
    spec: ConnectionSpec,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Resolve the connection string for one declared connection.

    Parameters
    ----------
    config
        A configuration that already passed `validate_config`.
    spec
        The connection to resolve.
    environ
        Environment to read endpoints and passwords from. Defaults to
        ``os.environ``, read at call time.

    Returns
    -------
    str
        The DSN to hand to the opener. In direct mode this is the configured
        DSN verbatim and ``spec.parameters`` is ignored.

    Raises
    ------
    ResolutionError
        If the endpoint variable is unset or empty, or the password variable
        is unset.
    """
    mode = config.mode
    if mode is None:
        raise ResolutionError("cannot resolve a connection for an ambiguous topology")
    if mode is TopologyMode.DIRECT:
        return config.dsn

    env = os.environ if environ is None else environ
    naming = _NAMING_BY_MODE[mode]
    cluster = config.cluster_name
    schema = config.schema_name

    endpoint_variable = naming.endpoint_variable(cluster, schema, is_master=spec.is_master)
    password_variable = naming.password_variable(cluster, schema, is_read_only=spec.is_read_only)

    host = _lookup(env, endpoint_variable, allow_empty=False)
    password = _lookup(env, password_variable, allow_empty=True)

    logger.debug(
        "Resolved cluster endpoint",
        connection=spec.name,
        mode=str(mode),
        endpoint_variable=endpoint_variable,
        password_variable=password_variable,
        host=host,
    )

    username = cluster_username(schema, is_read_only=spec.is_read_only)
    return compose_dsn(username, password, host, schema, spec.parameters)
