"""Estadísticas del publisher."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PublisherStats:
    """Contadores de ingesta y entrega."""

    batches_received: int = 0
    batches_rejected: int = 0
    snapshots_delivered: int = 0
    metadata_announcements: int = 0
    transport_errors: int = 0
    rejected_responses: int = 0
    ping_failures: int = 0
    last_delivery_at: float = 0
    started_at: datetime = field(default_factory=_utcnow)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __str__(self) -> str:
        return (
            f"Stats: received={self.batches_received} delivered={self.snapshots_delivered} "
            f"transport_errors={self.transport_errors} rejected={self.rejected_responses}"
        )

    def increment(self, counter: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self, counter, getattr(self, counter) + amount)

    def to_dict(self) -> dict:
        """Convierte a diccionario."""
        with self._lock:
            return {
                "batches_received": self.batches_received,
                "batches_rejected": self.batches_rejected,
                "snapshots_delivered": self.snapshots_delivered,
                "metadata_announcements": self.metadata_announcements,
                "transport_errors": self.transport_errors,
                "rejected_responses": self.rejected_responses,
                "ping_failures": self.ping_failures,
                "last_delivery_at": self.last_delivery_at,
                "started_at": self.started_at.isoformat(),
                "success_rate": self._success_rate(),
            }

    def _success_rate(self) -> float:
        """Calcula tasa de éxito de entregas."""
        total = self.snapshots_delivered + self.transport_errors + self.rejected_responses
        if total == 0:
            return 1.0
        return self.snapshots_delivered / total

