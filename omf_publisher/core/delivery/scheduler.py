"""Scheduler periódico de reintentos.

Un único hilo ejecuta ``tick`` con retardo fijo: el siguiente tick empieza
``interval_ms`` después de que termina el anterior, incluidas sus llamadas
HTTP bloqueantes. Nunca es reentrante.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_DELAY_MS = 100


class RetryScheduler:
    """Hilo daemon con evento de parada.

    Un scheduler detenido no se reinicia: se crea uno nuevo.
    """

    def __init__(
        self,
        tick: Callable[[], object],
        interval_ms: int = 50,
        initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS,
        name: str = "omf-inflight",
    ):
        self._tick = tick
        self._interval = max(interval_ms, 1) / 1000.0
        self._initial_delay = max(initial_delay_ms, 0) / 1000.0
        self._name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self._ticks = 0
        self._errors = 0
        self._lock = threading.Lock()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"Scheduler {self._name} already started")
        self._thread = threading.Thread(target=self._run, daemon=True, name=self._name)
        self._thread.start()
        logger.info(
            "[SCHED] Started %s interval=%.0fms", self._name, self._interval * 1000,
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        """Detiene el hilo y espera a que termine el tick en curso."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("[SCHED] %s did not stop within %.1fs", self._name, timeout or 0)
        logger.info("[SCHED] Stopped %s. %s", self._name, self.metrics)

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop_event.is_set()

    def _run(self) -> None:
        if self._stop_event.wait(self._initial_delay):
            return

        while not self._stop_event.is_set():
            try:
                self._tick()
            except Exception:
                with self._lock:
                    self._errors += 1
                logger.exception("[SCHED] Error during in-flight tick")
            finally:
                with self._lock:
                    self._ticks += 1

            if self._stop_event.wait(self._interval):
                break

    @property
    def metrics(self) -> dict:
        with self._lock:
            return {"ticks": self._ticks, "errors": self._errors}
