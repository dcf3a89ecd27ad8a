"""Named registry of pooled MySQL handles.

A registry is built once from a `MySQLConfig`, used for the lifetime of the
process and closed once at shutdown::

    config = load_config("mysql.json")
    with ConnectionRegistry.from_config(config) as registry:
        master = registry.get("master")
        replica = registry.get("replica")
        ...

Construction validates the configuration, then resolves, opens and tunes one
handle per declared connection, in declaration order. Any failure aborts the
whole construction: handles opened so far are closed and no registry is
returned.

The driver is injected. ``from_config`` takes any `HandleOpener` (default
`MySQLPool`), so an instrumented or fake handle is selected by the caller
rather than by global driver registration.
"""

from __future__ import annotations

import time
from types import MappingProxyType
from typing import TYPE_CHECKING, Self

from .dsn import redact_dsn
from .exceptions import CloseError, ConnectError, NotFoundError
from .health import ConnectionHealthResult, RegistryHealthResult
from .logger import get_logger
from .pool import MySQLPool
from .resolver import resolve_dsn
from .validator import validate_config

if TYPE_CHECKING:
    import types
    from collections.abc import Mapping, Sequence

    from structlog.stdlib import BoundLogger

    from .config import ConnectionPoolSettings, MySQLConfig
    from .handle import HandleOpener, PooledHandle

logger: BoundLogger = get_logger(__name__)


def apply_pool_settings(handle: PooledHandle, settings: ConnectionPoolSettings) -> None:
    """Apply the pool settings that are present; leave the rest at their defaults."""
    if settings.conn_max_lifetime is not None:
        handle.set_conn_max_lifetime(settings.conn_max_lifetime)

    if settings.max_idle_connections is not None:
        handle.set_max_idle_connections(settings.max_idle_connections)

    if settings.max_open_connections is not None:
        handle.set_max_open_connections(settings.max_open_connections)

    if settings.conn_max_idle_time is not None:
        handle.set_conn_max_idle_time(settings.conn_max_idle_time)


class ConnectionRegistry:
    """Immutable mapping from connection name to pooled handle.

    Lookups are safe from any number of threads. `close` is a single
    shutdown step and must not race with other use of the registry.

    Examples
    --------
    >>> registry = ConnectionRegistry.from_config(config)
    >>> registry.get("master").ping()
    >>> registry.health_check().status
    <HealthCheckStatus.HEALTHY: 'healthy'>
    >>> registry.close()
    """

    __slots__ = ("_handles",)

    def __init__(self, handles: Mapping[str, PooledHandle]) -> None:
        self._handles: Mapping[str, PooledHandle] = MappingProxyType(dict(handles))

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        if exc_type is not None and exc_val is not None:
            logger.error(
                "ConnectionRegistry exiting with exception",
                exc_type=exc_type.__name__,
                exc_val=str(exc_val),
            )
        self.close()

    def __contains__(self, name: object) -> bool:
        return name in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def __repr__(self) -> str:
        return f"ConnectionRegistry(names={list(self.names)!r})"

    @classmethod
    def from_config(
        cls,
        config: MySQLConfig,
        opener: HandleOpener = MySQLPool,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> Self:
        """Open every connection declared in ``config``.

        Parameters
        ----------
        config
            Registry configuration. It is validated before anything is opened.
        opener
            Creates a pooled handle from a DSN. Defaults to `MySQLPool`.
        environ
            Environment used to resolve cluster endpoints and passwords.
            Defaults to ``os.environ``.

        Returns
        -------
        Self
            A registry holding one handle per declared connection.

        Raises
        ------
        ConfigError
            If the configuration violates an invariant.
        ResolutionError
            If an endpoint or password variable is missing.
        ConnectError
            If the opener fails for any connection, or a handle rejects
            its pool settings.
        """
        validate_config(config)

        handles: dict[str, PooledHandle] = {}
        try:
            for spec in config.connections:
                dsn = resolve_dsn(config, spec, environ)
                redacted = redact_dsn(dsn)
                try:
                    handle = opener(dsn)
                except Exception as e:
                    logger.error("Failed to open MySQL connection", connection=spec.name, dsn=redacted, error=str(e))
                    msg = f"failed to open MySQL connection {spec.name!r}: {e}"
                    raise ConnectError(msg, name=spec.name) from e

                handles[spec.name] = handle
                try:
                    apply_pool_settings(handle, spec.connection_pool)
                except Exception as e:
                    logger.error("Failed to apply MySQL pool settings", connection=spec.name, error=str(e))
                    msg = f"failed to apply pool settings to MySQL connection {spec.name!r}: {e}"
                    raise ConnectError(msg, name=spec.name) from e

                logger.info(
                    "MySQL connection opened",
                    connection=spec.name,
                    mode=str(config.mode),
                    dsn=redacted,
                )
        except Exception as e:
            _abandon(handles, e)
            raise

        return cls(handles)

    @property
    def names(self) -> tuple[str, ...]:
        """Registered connection names in ascending order."""
        return tuple(sorted(self._handles))

    def get(self, name: str) -> PooledHandle:
        """Return the handle registered under ``name``.

        Raises
        ------
        NotFoundError
            If no connection has that name.
        """
        try:
            return self._handles[name]
        except KeyError:
            raise NotFoundError(name) from None

    def list(self) -> Sequence[PooledHandle]:
        """Return every registered handle, in no particular order.

        Commonly used to ping all connections at start-up.
        """
        return tuple(self._handles.values())

    def health_check(self) -> RegistryHealthResult:
        """Ping every connection and report the outcome.

        Ping failures are reported in the result rather than raised.
        """
        results: list[ConnectionHealthResult] = []
        for name in self.names:
            started = time.perf_counter()
            try:
                self._handles[name].ping()
            except Exception as e:
                logger.warning("MySQL connection health check failed", connection=name, error=str(e))
                results.append(ConnectionHealthResult.unhealthy(name, str(e)))
            else:
                results.append(ConnectionHealthResult.healthy(name, time.perf_counter() - started))
        return RegistryHealthResult.from_results(tuple(results))

    def close(self) -> None:
        """Close every handle in ascending name order.

        All handles are attempted even if some fail.

        Raises
        ------
        CloseError
            Listing every ``name: error`` failure, if there was any.
        """
        failures: list[tuple[str, Exception]] = []
        for name in self.names:
            try:
                self._handles[name].close()
            except Exception as e:
                logger.warning("Failed to close MySQL connection", connection=name, error=str(e))
                failures.append((name, e))
            else:
                logger.info("MySQL connection closed", connection=name)

        if failures:
            raise CloseError(failures)


def _abandon(handles: Mapping[str, PooledHandle], error: BaseException) -> None:
    for name in sorted(handles):
        try:
            handles[name].close()
        except Exception as e:
            logger.warning("Failed to close MySQL connection after open failure", connection=name, error=str(e))
            error.add_note(f"while closing {name!r}: {e}")


def open_registry(
    config: MySQLConfig,
    opener: HandleOpener = MySQLPool,
    *,
    environ: Mapping[str, str] | None = None,
) -> ConnectionRegistry:
    """Shorthand for `ConnectionRegistry.from_config`."""
    return ConnectionRegistry.from_config(config, opener, environ=environ)
