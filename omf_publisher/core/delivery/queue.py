"""Cola in-flight de snapshots pendientes de envío.

FIFO estricta, sin límite de tamaño, protegida por un único lock compartido
entre el productor (ingesta) y el consumidor (tick del scheduler).
Las entradas solo se eliminan tras un envío de Data exitoso; nunca se
reordenan ni se drenan parcialmente.
"""

from __future__ import annotations

import logging
import os
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DeliveryQueueStats:
    """Estadísticas de la cola in-flight."""
    enqueued: int = 0
    delivered: int = 0
    cleared: int = 0
    max_depth: int = 0


class DeliveryQueue(Generic[T]):
    """Cola FIFO thread-safe de entradas pendientes.

    Uso:
        queue = DeliveryQueue[SchemaSnapshot]()

        # Productor
        queue.put(snapshot)

        # Consumidor
        head = queue.peek()
        if send(head):
            queue.pop_head(head)
    """

    def __init__(self, warn_threshold: Optional[int] = None):
        self._queue: Deque[T] = deque()
        self._lock = threading.Lock()
        self._stats = DeliveryQueueStats()
        self._warn_threshold = (
            warn_threshold
            if warn_threshold is not None
            else int(os.getenv("OMF_QUEUE_WARN_THRESHOLD", "1000"))
        )

    def put(self, item: T) -> int:
        """Agrega al final de la cola.

        Returns:
            Profundidad tras agregar
        """
        with self._lock:
            self._queue.append(item)
            depth = len(self._queue)
            self._stats.enqueued += 1
            self._stats.max_depth = max(self._stats.max_depth, depth)

        if self._warn_threshold > 0 and depth % self._warn_threshold == 0:
            logger.warning(
                "[QUEUE] In-flight queue depth reached %d; the receiver is not keeping up "
                "and memory usage grows without bound",
                depth,
            )
        return depth

    def peek(self) -> Optional[T]:
        """Cabeza de la cola sin quitarla, o None si está vacía."""
        with self._lock:
            if not self._queue:
                return None
            return self._queue[0]

    def pop_head(self, expected: T) -> bool:
        """Quita la cabeza solo si sigue siendo ``expected``.

        Returns:
            True si se quitó
        """
        with self._lock:
            if not self._queue or self._queue[0] is not expected:
                return False
            self._queue.popleft()
            self._stats.delivered += 1
            return True

    def clear(self) -> int:
        """Vacía la cola.

        Returns:
            Número de entradas eliminadas
        """
        with self._lock:
            count = len(self._queue)
            self._queue.clear()
            self._stats.cleared += count
            return count

    def items(self) -> List[T]:
        """Copia de las entradas en orden."""
        with self._lock:
            return list(self._queue)

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._queue)

    def __len__(self) -> int:
        return self.size

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return not self._queue

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "enqueued": self._stats.enqueued,
                "delivered": self._stats.delivered,
                "cleared": self._stats.cleared,
                "current_size": len(self._queue),
                "max_depth": self._stats.max_depth,
            }
