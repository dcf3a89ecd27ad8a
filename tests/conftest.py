"""Shared fixtures for unit tests.

Provides:
- FakeHandle / FakeOpener: in-memory stand-ins for pooled handles
- FakeConnection / FakeConnect: PyMySQL connection doubles for MySQLPool
- FakeClock: manually advanced monotonic clock
- default_structlog: structlog reset to its default configuration
- cluster_environ: environment for the ``desaenv08`` / ``bar`` cluster
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
import structlog

from mysqlconnect.config import MySQLConfig

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import timedelta


class FakeHandle:
    """Records pool settings and lifecycle calls."""

    def __init__(self, dsn: str, *, close_error: Exception | None = None, ping_error: Exception | None = None) -> None:
        self.dsn = dsn
        self.close_error = close_error
        self.ping_error = ping_error
        self.settings: dict[str, Any] = {}
        self.ping_count = 0
        self.close_count = 0

    def set_conn_max_lifetime(self, lifetime: timedelta) -> None:
        self.settings["conn_max_lifetime"] = lifetime

    def set_max_idle_connections(self, n: int) -> None:
        self.settings["max_idle_connections"] = n

    def set_max_open_connections(self, n: int) -> None:
        self.settings["max_open_connections"] = n

    def set_conn_max_idle_time(self, idle_time: timedelta) -> None:
        self.settings["conn_max_idle_time"] = idle_time

    def ping(self) -> None:
        self.ping_count += 1
        if self.ping_error is not None:
            raise self.ping_error

    def close(self) -> None:
        self.close_count += 1
        if self.close_error is not None:
            raise self.close_error


class FakeOpener:
    """HandleOpener that hands out FakeHandles and remembers them."""

    def __init__(self, *, fail_on: int | None = None, close_errors: dict[int, Exception] | None = None) -> None:
        self.fail_on = fail_on
        self.close_errors = close_errors or {}
        self.dsns: list[str] = []
        self.handles: list[FakeHandle] = []

    def __call__(self, dsn: str) -> FakeHandle:
        index = len(self.dsns)
        self.dsns.append(dsn)
        if self.fail_on == index:
            msg = "dial tcp: connection refused"
            raise OSError(msg)
        handle = FakeHandle(dsn, close_error=self.close_errors.get(index))
        self.handles.append(handle)
        return handle


class FakeConnection:
    """Minimal PyMySQL connection double."""

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.open = True
        self.ping_count = 0
        self.close_count = 0

    def ping(self, reconnect: bool = True) -> None:
        assert reconnect is False
        self.ping_count += 1

    def close(self) -> None:
        self.close_count += 1
        self.open = False


class FakeConnect:
    """Connection factory passed to MySQLPool in place of pymysql.connect."""

    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.connections: list[FakeConnection] = []

    def __call__(self, **kwargs: Any) -> FakeConnection:
        if self.error is not None:
            raise self.error
        conn = FakeConnection(**kwargs)
        self.connections.append(conn)
        return conn


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_opener() -> FakeOpener:
    return FakeOpener()


@pytest.fixture
def make_opener() -> type[FakeOpener]:
    return FakeOpener


@pytest.fixture
def make_handle() -> type[FakeHandle]:
    return FakeHandle


@pytest.fixture
def fake_connect() -> FakeConnect:
    return FakeConnect()


@pytest.fixture
def make_connect() -> type[FakeConnect]:
    return FakeConnect


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def default_structlog() -> Iterator[None]:
    """Run with structlog's out-of-the-box configuration, printing to stdout."""
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    yield
    structlog.reset_defaults()


@pytest.fixture
def cluster_environ() -> dict[str, str]:
    """Endpoints and passwords for cluster ``desaenv08``, schema ``bar``."""
    return {
        "DB_MYSQL_DESAENV08_BAR_BAR_ENDPOINT": "localhost:3306",
        "DB_MYSQL_DESAENV08_BAR_BAR_LOCAL_REPLICA_ENDPOINT": "replica.local:3306",
        "DB_MYSQL_DESAENV08_BAR_BAR_WPROD": "password",
        "DB_MYSQL_DESAENV08_BAR_BAR_RPROD": "ro-password",
    }


@pytest.fixture
def cluster_config() -> MySQLConfig:
    return MySQLConfig.model_validate(
        {
            "cluster": "desaenv08",
            "schema": "bar",
            "connections": [
                {
                    "name": "master",
                    "is_master": True,
                    "parameters": "parseTime=true&timeout=100ms",
                    "connection_pool": {"conn_max_lifetime": "10m", "max_open_connections": 50},
                },
                {"name": "replica", "is_read_only": True},
            ],
        }
    )
