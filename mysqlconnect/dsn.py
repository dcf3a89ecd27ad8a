"""Parsing of Go MySQL driver DSNs into PyMySQL connection arguments.

DSN format::

    [username[:password]@][protocol[(address)]]/dbname[?param1=value1&...&paramN=valueN]

Examples
--------
>>> dsn = parse_dsn("bar_WPROD:secret@tcp(db.internal:3307)/bar?timeout=100ms&parseTime=true")
>>> dsn.host, dsn.port, dsn.database
('db.internal', 3307, 'bar')
>>> dsn.to_connect_kwargs()["connect_timeout"]
0.1
>>> redact_dsn("bar_WPROD:secret@tcp(db.internal:3307)/bar")
'bar_WPROD:****@tcp(db.internal:3307)/bar'
"""

from __future__ import annotations

import ssl
from typing import Any
from urllib.parse import parse_qsl

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from .duration import parse_duration

_DEFAULT_PORT = 3306
_DEFAULT_TCP_ADDRESS = f"127.0.0.1:{_DEFAULT_PORT}"
_DEFAULT_UNIX_ADDRESS = "/tmp/mysql.sock"

_DURATION_PARAMS = {
    "timeout": "connect_timeout",
    "readTimeout": "read_timeout",
    "writeTimeout": "write_timeout",
}

# Go driver options with no PyMySQL counterpart. PyMySQL always converts
# DATE/DATETIME columns, so parseTime and loc are implied.
_IGNORED_PARAMS = frozenset(
    {
        "allowAllFiles",
        "allowCleartextPasswords",
        "allowFallbackToPlaintext",
        "allowNativePasswords",
        "allowOldPasswords",
        "checkConnLiveness",
        "clientFoundRows",
        "collation",
        "columnsWithAlias",
        "connectionAttributes",
        "interpolateParams",
        "loc",
        "maxAllowedPacket",
        "multiStatements",
        "parseTime",
        "rejectReadOnly",
        "serverPubKey",
        "timeTruncate",
    }
)

_MASK = "****"


class DataSourceName(BaseModel):
    """A parsed DSN."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    user: str = Field(default="")
    password: SecretStr = Field(default=SecretStr(""))
    net: str = Field(default="tcp")
    address: str = Field(default=_DEFAULT_TCP_ADDRESS)
    database: str = Field(default="")
    params: dict[str, str] = Field(default_factory=dict)

    @property
    def host(self) -> str:
        return _split_address(self.address)[0]

    @property
    def port(self) -> int:
        return _split_address(self.address)[1]

    def to_connect_kwargs(self) -> dict[str, Any]:
        """Translate into keyword arguments for ``pymysql.connect``.

        Durations (``timeout``, ``readTimeout``, ``writeTimeout``) become
        seconds, ``charset``, ``autocommit`` and ``tls`` map onto their PyMySQL
        options, known Go-only options are dropped and anything else is set
        as a session system variable through ``init_command``.

        Raises
        ------
        ValueError
            If a parameter value is invalid.
        """
        kwargs: dict[str, Any] = {
            "user": self.user,
            "password": self.password.get_secret_value(),
            "database": self.database or None,
        }
        if self.net == "unix":
            kwargs["unix_socket"] = self.address
        else:
            kwargs["host"], kwargs["port"] = _split_address(self.address)

        system_variables: list[str] = []
        for key, value in self.params.items():
            if key in _DURATION_PARAMS:
                seconds = parse_duration(value).total_seconds()
                if seconds > 0:
                    kwargs[_DURATION_PARAMS[key]] = seconds
            elif key == "charset":
                kwargs["charset"] = value.split(",")[0]
            elif key == "autocommit":
                kwargs["autocommit"] = _parse_bool(key, value)
            elif key == "tls":
                context = _tls_context(value)
                if context is not None:
                    kwargs["ssl"] = context
            elif key not in _IGNORED_PARAMS:
                system_variables.append(f"{key}={value}")

        if system_variables:
            kwargs["init_command"] = "SET " + ", ".join(system_variables)
        return kwargs


def _split_address(address: str) -> tuple[str, int]:
    if address.startswith("["):
        host, _, rest = address[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else ""
    elif ":" in address:
        host, _, port = address.rpartition(":")
    else:
        host, port = address, ""

    if not port:
        return host, _DEFAULT_PORT
    try:
        return host, int(port)
    except ValueError:
        msg = f"invalid DSN: invalid port in address {address!r}"
        raise ValueError(msg) from None


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    msg = f"invalid bool value for {key}: {value!r}"
    raise ValueError(msg)


def _tls_context(value: str) -> ssl.SSLContext | None:
    lowered = value.lower()
    if lowered in ("false", "0"):
        return None
    context = ssl.create_default_context()
    if lowered in ("true", "1"):
        return context
    if lowered in ("skip-verify", "preferred"):
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context
    msg = f"unsupported tls value: {value!r}"
    raise ValueError(msg)


def parse_dsn(dsn: str) -> DataSourceName:
    """Parse a Go MySQL driver DSN.

    The database name follows the last ``/``; credentials precede the last
    ``@`` before it, so passwords may contain ``:`` or ``@``.

    Raises
    ------
    ValueError
        If the DSN is malformed.
    """
    slash = dsn.rfind("/")
    if slash < 0:
        msg = "invalid DSN: missing the slash separating the database name"
        raise ValueError(msg)

    head, tail = dsn[:slash], dsn[slash + 1 :]
    database, _, query = tail.partition("?")

    credentials, _, location = head.rpartition("@")
    user, _, password = credentials.partition(":")

    net, paren, rest = location.partition("(")
    address = ""
    if paren:
        if not rest.endswith(")"):
            msg = "invalid DSN: network address not terminated (missing closing brace)"
            raise ValueError(msg)
        address = rest[:-1]

    net = net or "tcp"
    if not address:
        address = _DEFAULT_UNIX_ADDRESS if net == "unix" else _DEFAULT_TCP_ADDRESS

    return DataSourceName(
        user=user,
        password=SecretStr(password),
        net=net,
        address=address,
        database=database,
        params=dict(parse_qsl(query, keep_blank_values=True)),
    )


def redact_dsn(dsn: str) -> str:
    """Return ``dsn`` with its password replaced by ``****``."""
    slash = dsn.rfind("/")
    head = dsn if slash < 0 else dsn[:slash]
    at = head.rfind("@")
    if at < 0:
        return dsn
    user, sep, _ = dsn[:at].partition(":")
    if not sep:
        return dsn
    return f"{user}:{_MASK}{dsn[at:]}"
