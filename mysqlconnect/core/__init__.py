"""Core module exports."""

from __future__ import annotations

from .enums import HealthCheckStatus, TopologyMode

__all__ = [
    "HealthCheckStatus",
    "TopologyMode",
]
