from __future__ import annotations

from enum import StrEnum


class HealthCheckStatus(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class TopologyMode(StrEnum):
    DIRECT = "direct"
    SINGLE_CLUSTER = "cluster"
    HA_CLUSTER = "ha_cluster"
