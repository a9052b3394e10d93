"""Estado de salud del publisher."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class HealthStatus:
    healthy: bool
    state: str
    configured: bool
    scheduler_running: bool
    queue_depth: int
    known_assets: int
    known_channels: int

    def to_dict(self) -> dict:
        return {
            "healthy": self.healthy,
            "state": self.state,
            "configured": self.configured,
            "scheduler_running": self.scheduler_running,
            "queue_depth": self.queue_depth,
            "known_assets": self.known_assets,
            "known_channels": self.known_channels,
        }
