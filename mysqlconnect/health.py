from __future__ import annotations

from datetime import UTC, datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .core.enums import HealthCheckStatus


class ConnectionHealthResult(BaseModel):
    """Outcome of pinging one registered connection."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: HealthCheckStatus
    latency_s: float | None = None
    message: str | None = None

    @classmethod
    def healthy(cls: type[Self], name: str, latency_s: float) -> Self:
        return cls(name=name, status=HealthCheckStatus.HEALTHY, latency_s=latency_s, message="Connection is healthy")

    @classmethod
    def unhealthy(cls: type[Self], name: str, error: str) -> Self:
        return cls(name=name, status=HealthCheckStatus.UNHEALTHY, message=error)

    def is_healthy(self) -> bool:
        return self.status == HealthCheckStatus.HEALTHY


class RegistryHealthResult(BaseModel):
    """Health of every connection in a registry.

    ``healthy`` when all connections answer, ``unhealthy`` when none do and
    ``degraded`` otherwise.
    """

    model_config = ConfigDict(frozen=True)

    status: HealthCheckStatus
    connections: tuple[ConnectionHealthResult, ...]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_results(cls: type[Self], results: tuple[ConnectionHealthResult, ...]) -> Self:
        healthy_count = sum(1 for result in results if result.is_healthy())
        if healthy_count == len(results):
            status = HealthCheckStatus.HEALTHY
        elif healthy_count == 0:
            status = HealthCheckStatus.UNHEALTHY
        else:
            status = HealthCheckStatus.DEGRADED
        return cls(status=status, connections=results)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def healthy_count(self) -> int:
        return sum(1 for result in self.connections if result.is_healthy())

    @property
    def is_healthy(self) -> bool:
        return self.status == HealthCheckStatus.HEALTHY

    def get(self, name: str) -> ConnectionHealthResult | None:
        return next((result for result in self.connections if result.name == name), None)
