"""Thread-safe MySQL connection pool built on PyMySQL.

`MySQLPool` is the default `HandleOpener` of the registry. It follows the
semantics of Go's ``database/sql`` pool, which the configuration format was
designed around:

- Opening parses the DSN but does not dial; connections are created on use.
- Max idle defaults to 2; max open, lifetime and idle time default to
  unlimited. Zero or negative values mean unlimited (or, for max idle, that
  no idle connections are kept).
- Expired connections are closed when they are next checked out or returned.

Examples
--------
>>> pool = MySQLPool("app:secret@tcp(localhost:3306)/app?timeout=1s")
>>> pool.set_max_open_connections(10)
>>> with pool.acquire() as conn, conn.cursor() as cursor:
...     cursor.execute("SELECT 1")
>>> pool.close()
"""

from __future__ import annotations

import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

import pymysql
from pydantic import BaseModel, ConfigDict

from .dsn import parse_dsn, redact_dsn
from .exceptions import HandleClosedError
from .logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from datetime import timedelta
    from types import TracebackType

    from pymysql.connections import Connection
    from structlog.stdlib import BoundLogger

logger: BoundLogger = get_logger(__name__)

DEFAULT_MAX_IDLE_CONNECTIONS = 2


class PoolStats(BaseModel):
    """Point-in-time pool counters."""

    model_config = ConfigDict(frozen=True)

    open_connections: int
    in_use: int
    idle: int
    max_open_connections: int
    max_idle_connections: int


@dataclass(slots=True)
class _PooledConnection:
    conn: Connection
    created_at: float
    returned_at: float = 0.0


class MySQLPool:
    """Pool of PyMySQL connections for a single DSN.

    Parameters
    ----------
    dsn
        Go MySQL driver DSN, see `mysqlconnect.dsn`.
    connect
        Connection factory, called with the keyword arguments derived from
        the DSN. Defaults to ``pymysql.connect``.
    clock
        Monotonic clock used for lifetime and idle-time accounting.

    Raises
    ------
    ValueError
        If the DSN or one of its parameters is malformed.
    """

    __slots__ = (
        "_clock",
        "_closed",
        "_cond",
        "_connect",
        "_connect_kwargs",
        "_dsn",
        "_idle",
        "_max_idle",
        "_max_idle_time",
        "_max_lifetime",
        "_max_open",
        "_open_count",
        "_redacted_dsn",
    )

    def __init__(
        self,
        dsn: str,
        *,
        connect: Callable[..., Connection] = pymysql.connect,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._dsn = dsn
        self._redacted_dsn = redact_dsn(dsn)
        self._connect_kwargs = parse_dsn(dsn).to_connect_kwargs()
        self._connect = connect
        self._clock = clock
        self._cond = threading.Condition()
        self._idle: deque[_PooledConnection] = deque()
        self._open_count = 0
        self._closed = False
        self._max_idle = DEFAULT_MAX_IDLE_CONNECTIONS
        self._max_open = 0
        self._max_lifetime = 0.0
        self._max_idle_time = 0.0

    def __repr__(self) -> str:
        return f"MySQLPool(dsn={self._redacted_dsn!r}, closed={self._closed})"

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def dsn(self) -> str:
        """The DSN this pool connects with."""
        return self._dsn

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Pool settings
    # ------------------------------------------------------------------

    def set_max_idle_connections(self, n: int) -> None:
        """Limit the idle connections kept for reuse.

        ``n <= 0`` keeps none. The limit is capped at max open connections
        when that is bounded.
        """
        with self._cond:
            limit = max(n, 0)
            if self._max_open > 0:
                limit = min(limit, self._max_open)
            self._max_idle = limit
            surplus = self._trim_idle()
        self._close_quietly(surplus)

    def set_max_open_connections(self, n: int) -> None:
        """Limit open connections; ``n <= 0`` means unlimited.

        Checkouts block while the limit is reached. Lowers max idle
        connections if it would exceed the new limit.
        """
        with self._cond:
            self._max_open = max(n, 0)
            if self._max_open > 0 and self._max_idle > self._max_open:
                self._max_idle = self._max_open
            surplus = self._trim_idle()
            self._cond.notify_all()
        self._close_quietly(surplus)

    def set_conn_max_lifetime(self, lifetime: timedelta) -> None:
        """Close connections once they are older than ``lifetime``."""
        with self._cond:
            self._max_lifetime = max(lifetime.total_seconds(), 0.0)
            stale = self._evict_expired()
        self._close_quietly(stale)

    def set_conn_max_idle_time(self, idle_time: timedelta) -> None:
        """Close connections that sat idle for longer than ``idle_time``."""
        with self._cond:
            self._max_idle_time = max(idle_time.total_seconds(), 0.0)
            stale = self._evict_expired()
        self._close_quietly(stale)

    # ------------------------------------------------------------------
    # Connection use
    # ------------------------------------------------------------------

    @contextmanager
    def acquire(self) -> Iterator[Connection]:
        """Check a connection out of the pool.

        Yields
        ------
        Connection
            A PyMySQL connection, returned to the pool on exit.

        Raises
        ------
        HandleClosedError
            If the pool has been closed.
        """
        pooled = self._checkout()
        try:
            yield pooled.conn
        finally:
            self._release(pooled)

    def ping(self) -> None:
        """Verify that a connection to the server can be used."""
        with self.acquire() as conn:
            conn.ping(reconnect=False)

    def stats(self) -> PoolStats:
        with self._cond:
            idle = len(self._idle)
            return PoolStats(
                open_connections=self._open_count,
                in_use=self._open_count - idle,
                idle=idle,
                max_open_connections=self._max_open,
                max_idle_connections=self._max_idle,
            )

    def close(self) -> None:
        """Close the pool and its idle connections.

        Connections in use are closed when they are returned. Every idle
        connection is closed before the first failure, if any, is raised.
        Closing a closed pool does nothing.
        """
        with self._cond:
            if self._closed:
                return
            self._closed = True
            idle = list(self._idle)
            self._idle.clear()
            self._open_count -= len(idle)
            self._cond.notify_all()

        first_error: Exception | None = None
        for pooled in idle:
            try:
                pooled.conn.close()
            except Exception as e:
                logger.warning("Failed to close MySQL connection", dsn=self._redacted_dsn, error=str(e))
                if first_error is None:
                    first_error = e

        logger.debug("MySQLPool closed", dsn=self._redacted_dsn, idle_closed=len(idle))
        if first_error is not None:
            raise first_error

    # ------------------------------------------------------------------
    # Internals (callers of the underscore helpers below hold self._cond)
    # ------------------------------------------------------------------

    def _expired(self, pooled: _PooledConnection, now: float) -> bool:
        if self._max_lifetime > 0 and now - pooled.created_at >= self._max_lifetime:
            return True
        return self._max_idle_time > 0 and now - pooled.returned_at >= self._max_idle_time

    def _trim_idle(self) -> list[_PooledConnection]:
        surplus: list[_PooledConnection] = []
        while len(self._idle) > self._max_idle:
            surplus.append(self._idle.popleft())
        self._open_count -= len(surplus)
        if surplus:
            self._cond.notify_all()
        return surplus

    def _evict_expired(self) -> list[_PooledConnection]:
        now = self._clock()
        stale = [pooled for pooled in self._idle if self._expired(pooled, now)]
        if stale:
            self._idle = deque(pooled for pooled in self._idle if not self._expired(pooled, now))
            self._open_count -= len(stale)
            self._cond.notify_all()
        return stale

    def _checkout(self) -> _PooledConnection:
        stale: list[_PooledConnection] = []
        try:
            with self._cond:
                while True:
                    if self._closed:
                        raise HandleClosedError
                    now = self._clock()
                    while self._idle:
                        pooled = self._idle.pop()
                        if not self._expired(pooled, now):
                            return pooled
                        self._open_count -= 1
                        stale.append(pooled)
                    if self._max_open == 0 or self._open_count < self._max_open:
                        self._open_count += 1
                        break
                    self._cond.wait()
        finally:
            self._close_quietly(stale)
        return self._dial()

    def _dial(self) -> _PooledConnection:
        try:
            conn = self._connect(**self._connect_kwargs)
        except BaseException:
            with self._cond:
                self._open_count -= 1
                self._cond.notify()
            raise
        logger.debug("Opened MySQL connection", dsn=self._redacted_dsn)
        return _PooledConnection(conn=conn, created_at=self._clock())

    def _release(self, pooled: _PooledConnection) -> None:
        with self._cond:
            pooled.returned_at = self._clock()
            reusable = (
                not self._closed
                and pooled.conn.open
                and not self._expired(pooled, pooled.returned_at)
                and len(self._idle) < self._max_idle
            )
            if reusable:
                self._idle.append(pooled)
            else:
                self._open_count -= 1
            self._cond.notify()
        if not reusable:
            self._close_quietly([pooled])

    def _close_quietly(self, connections: Iterable[_PooledConnection]) -> None:
        for pooled in connections:
            if not pooled.conn.open:
                continue
            try:
                pooled.conn.close()
            except Exception as e:
                logger.debug("Discarded MySQL connection did not close cleanly", dsn=self._redacted_dsn, error=str(e))
