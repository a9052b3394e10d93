"""Monitoring layer - Métricas y observabilidad."""

from .health import HealthStatus
from .stats import PublisherStats

__all__ = ["HealthStatus", "PublisherStats"]
