"""Capability interfaces the registry depends on.

The registry never selects a driver itself. Callers inject a `HandleOpener`,
typically `mysqlconnect.pool.MySQLPool`, or an instrumented or fake variant.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import timedelta


@runtime_checkable
class PooledHandle(Protocol):
    """A pooled database handle, safe for concurrent use."""

    def set_conn_max_lifetime(self, lifetime: timedelta) -> None: ...
    def set_max_idle_connections(self, n: int) -> None: ...
    def set_max_open_connections(self, n: int) -> None: ...
    def set_conn_max_idle_time(self, idle_time: timedelta) -> None: ...
    def ping(self) -> None: ...
    def close(self) -> None: ...


class HandleOpener(Protocol):
    """Opens a pooled handle for a connection string."""

    def __call__(self, dsn: str) -> PooledHandle: ...
