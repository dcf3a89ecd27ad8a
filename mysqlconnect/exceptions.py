"""Exceptions raised by the connection registry and the default MySQL pool."""

from __future__ import annotations

from collections.abc import Sequence


class MySQLConnectError(Exception):
    """Base exception for mysqlconnect."""


class ConfigError(MySQLConnectError):
    """The configuration violates an invariant or cannot be loaded.

    Attributes
    ----------
    value
        The offending value (e.g. a duplicated connection name), if any.
    """

    def __init__(self, message: str, *, value: str | None = None) -> None:
        super().__init__(message)
        self.value = value


class ResolutionError(MySQLConnectError):
    """A connection string could not be derived from the environment."""

    def __init__(self, message: str, *, variable: str | None = None) -> None:
        super().__init__(message)
        self.variable = variable


class ConnectError(MySQLConnectError):
    """The handle opener failed for a declared connection."""

    def __init__(self, message: str, *, name: str) -> None:
        super().__init__(message)
        self.name = name


class NotFoundError(MySQLConnectError):
    """No connection is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"unknown connection name {name}")
        self.name = name


class CloseError(MySQLConnectError):
    """One or more handles failed to close.

    Attributes
    ----------
    failures
        ``(name, exception)`` pairs in the order the closes were attempted.
    """

    def __init__(self, failures: Sequence[tuple[str, BaseException]]) -> None:
        self.failures = tuple(failures)
        details = ", ".join(f"{name}: {error}" for name, error in self.failures)
        super().__init__(f"failed to close connections: {details}")


class HandleClosedError(MySQLConnectError):
    """A pooled handle was used after it was closed."""

    def __init__(self) -> None:
        super().__init__("database is closed")
