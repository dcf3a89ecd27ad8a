"""Configuration invariant tests."""

from __future__ import annotations

from typing import Any

import pytest

from mysqlconnect.config import MySQLConfig
from mysqlconnect.exceptions import ConfigError
from mysqlconnect.validator import validate_config

MASTER = {"name": "master", "is_master": True}
REPLICA = {"name": "replica", "is_read_only": True}


def _config(**fields: Any) -> MySQLConfig:
    return MySQLConfig.model_validate(fields)


class TestValidConfigs:
    """Configurations that pass validation."""

    @pytest.mark.parametrize(
        "fields",
        [
            {"dsn": "u:p@tcp(localhost:3306)/db", "connections": [{"name": "default"}]},
            {"cluster": "c", "schema": "s", "connections": [MASTER, REPLICA]},
            {"ha_cluster": "h", "schema": "s", "connections": [MASTER, REPLICA]},
            {"cluster": "c", "schema": "s", "connections": [{"name": "both", "is_master": True, "is_read_only": True}]},
        ],
    )
    def test_valid(self, fields: dict[str, Any]) -> None:
        """Test accepted configurations return without raising."""
        validate_config(_config(**fields))

    def test_direct_mode_allows_neither_role(self) -> None:
        """Test role flags are not checked when a DSN is configured."""
        validate_config(_config(dsn="u:p@/db", connections=[{"name": "plain"}]))

    def test_repeatable(self) -> None:
        """Test validation has no side effects on the configuration."""
        config = _config(cluster="c", schema="s", connections=[MASTER])
        before = config.model_dump()

        validate_config(config)
        validate_config(config)

        assert config.model_dump() == before


class TestInvalidConfigs:
    """Each invariant reported with its message."""

    @pytest.mark.parametrize(
        ("fields", "message"),
        [
            (
                {"connections": [MASTER]},
                "invalid MySQL config: DSN, Cluster and HACluster are empty",
            ),
            (
                {"dsn": "u:p@/db", "cluster": "c", "connections": [MASTER]},
                "invalid MySQL config: DSN is mutually exclusive with Cluster and HACluster",
            ),
            (
                {"dsn": "u:p@/db", "ha_cluster": "h", "connections": [MASTER]},
                "invalid MySQL config: DSN is mutually exclusive with Cluster and HACluster",
            ),
            (
                {"cluster": "c", "ha_cluster": "h", "schema": "s", "connections": [MASTER]},
                "invalid MySQL config: Cluster is mutually exclusive with HACluster",
            ),
            (
                {"dsn": "u:p@/db", "schema": "s", "connections": [MASTER]},
                "invalid MySQL config: DSN is mutually exclusive with Schema "
                "since the schema is already defined in the DSN",
            ),
            (
                {"cluster": "c", "connections": [MASTER]},
                "invalid MySQL config: when DSN is empty the Schema must be defined",
            ),
            (
                {"ha_cluster": "h", "connections": [MASTER]},
                "invalid MySQL config: when DSN is empty the Schema must be defined",
            ),
            (
                {"cluster": "c", "schema": "s", "connections": []},
                "invalid MySQL config: no connections defined",
            ),
            (
                {"dsn": "u:p@/db"},
                "invalid MySQL config: no connections defined",
            ),
            (
                {"cluster": "c", "schema": "s", "connections": [{"name": "foo", "is_master": True}] * 2},
                'invalid MySQL config: duplicated connection name "foo"',
            ),
            (
                {"cluster": "c", "schema": "s", "connections": [MASTER, {"name": "foo"}]},
                'invalid MySQL config: cannot write to a replica: connection "foo"',
            ),
        ],
    )
    def test_invalid(self, fields: dict[str, Any], message: str) -> None:
        """Test the violated invariant is reported with a stable message."""
        with pytest.raises(ConfigError) as exc_info:
            validate_config(_config(**fields))

        assert str(exc_info.value) == message

    def test_duplicate_reports_value(self) -> None:
        """Test the duplicated name is exposed on the error."""
        config = _config(dsn="u:p@/db", connections=[{"name": "a"}, {"name": "b"}, {"name": "a"}])

        with pytest.raises(ConfigError) as exc_info:
            validate_config(config)

        assert exc_info.value.value == "a"

    def test_replica_write_reports_value(self) -> None:
        """Test the offending connection name is exposed on the error."""
        config = _config(ha_cluster="h", schema="s", connections=[REPLICA, {"name": "writer"}])

        with pytest.raises(ConfigError) as exc_info:
            validate_config(config)

        assert exc_info.value.value == "writer"


class TestPriority:
    """Only the first violated invariant is reported."""

    @pytest.mark.parametrize(
        ("fields", "expected"),
        [
            # topology before schema, connections, names and roles
            ({"dsn": "u:p@/db", "cluster": "c", "schema": "s"}, "DSN is mutually exclusive with Cluster"),
            ({}, "DSN, Cluster and HACluster are empty"),
            # schema before connections
            ({"cluster": "c"}, "the Schema must be defined"),
            # names before roles
            (
                {"cluster": "c", "schema": "s", "connections": [{"name": "x"}, {"name": "x"}]},
                'duplicated connection name "x"',
            ),
        ],
    )
    def test_first_violation_wins(self, fields: dict[str, Any], expected: str) -> None:
        """Test configurations breaking several invariants report the earliest."""
        with pytest.raises(ConfigError) as exc_info:
            validate_config(_config(**fields))

        assert expected in str(exc_info.value)
