"""Orquestador del publisher OMF.

Flujo:
    on_batch(records) → RecordNormalizer → DeliveryQueue
    tick()            → ping → diff con el esquema conocido
                      → [Type → Container → Links] si cambió el esquema
                      → Data values → pop de la cabeza

Estados: UNCONFIGURED → CONFIGURED ⇄ DELIVERING.

La ingesta nunca hace I/O de red; solo normaliza y encola. Todas las
llamadas HTTP ocurren en el tick del scheduler (un único hilo).
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Callable, Iterable, Optional

from ..config import PublisherSettings
from .delivery.queue import DeliveryQueue
from .delivery.scheduler import RetryScheduler
from .domain.errors import ConfigurationIncomplete, RejectedByReceiver, TransportError
from .domain.schema import SchemaSnapshot
from .encoding.encoder import OmfMessageEncoder
from .monitoring.health import HealthStatus
from .monitoring.stats import PublisherStats
from .normalization.record_normalizer import Record, RecordNormalizer
from .schema.state_tracker import KnownSchemaRegistry
from .transport.http_status import (
    ACCEPTED_STATUSES,
    LEGACY_ACCEPTED_STATUSES,
    http_status_to_error_log,
    is_accepted,
)
from .transport.omf_client import MessageType, OmfClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[PublisherSettings], OmfClient]


class PublisherState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    DELIVERING = "delivering"


class TickOutcome(str, Enum):
    """Resultado de un tick del scheduler."""
    NOT_CONFIGURED = "not_configured"
    IDLE = "idle"
    UNREACHABLE = "unreachable"
    METADATA_FAILED = "metadata_failed"
    DATA_FAILED = "data_failed"
    DELIVERED = "delivered"


def default_client_factory(settings: PublisherSettings) -> OmfClient:
    accepted = LEGACY_ACCEPTED_STATUSES if settings.accept_bad_request else ACCEPTED_STATUSES
    return OmfClient(
        target_url=settings.target_url,
        producer_token=settings.producer_token,
        timeout_seconds=settings.connection_timeout_seconds,
        verify=settings.ssl_verify,
        accepted_statuses=accepted,
    )


class OmfPublisher:
    """Publica lotes de telemetría a un receptor OMF.

    Uso:
        publisher = OmfPublisher()
        publisher.start(get_settings())

        # Framework de ingesta
        publisher.on_batch(records)

        publisher.stop()

    ``run_scheduler=False`` no arranca el hilo; el llamador invoca ``tick``.
    """

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        normalizer: Optional[RecordNormalizer] = None,
        queue: Optional[DeliveryQueue[SchemaSnapshot]] = None,
        run_scheduler: bool = True,
    ):
        self._client_factory = client_factory or default_client_factory
        self._normalizer = normalizer or RecordNormalizer()
        self._queue: DeliveryQueue[SchemaSnapshot] = queue if queue is not None else DeliveryQueue()
        self._registry = KnownSchemaRegistry()
        self._run_scheduler = run_scheduler

        self._settings: Optional[PublisherSettings] = None
        self._client: Optional[OmfClient] = None
        self._encoder: Optional[OmfMessageEncoder] = None
        self._scheduler: Optional[RetryScheduler] = None

        self._state = PublisherState.UNCONFIGURED
        self._state_lock = threading.Lock()
        # Serializa start/reconfigure/stop
        self._lifecycle_lock = threading.Lock()

        self.stats = PublisherStats()

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def start(self, settings: PublisherSettings) -> bool:
        logger.info("[PUBLISHER] Activating OMF publisher...")
        return self.reconfigure(settings)

    def reconfigure(self, settings: PublisherSettings) -> bool:
        """Aplica nuevos settings.

        Detiene el scheduler previo antes de arrancar uno nuevo y borra el
        esquema conocido para forzar un nuevo anuncio.

        Returns:
            True si la configuración está completa y el publisher quedó activo
        """
        with self._lifecycle_lock:
            self._shutdown_delivery()
            self._settings = settings

            try:
                settings.validate()
            except ConfigurationIncomplete as e:
                logger.error("[PUBLISHER] %s. Batches will not be published.", e)
                self._set_state(PublisherState.UNCONFIGURED)
                return False

            self._registry.clear()
            self._client = self._client_factory(settings)
            self._encoder = OmfMessageEncoder(settings.device_name)
            self._set_state(PublisherState.CONFIGURED)

            if self._run_scheduler:
                self._scheduler = RetryScheduler(
                    self.tick, interval_ms=settings.in_flight_interval_ms,
                )
                self._scheduler.start()

            logger.info(
                "[PUBLISHER] Configured target=%s device=%s (%d in-flight)",
                settings.target_url, settings.device_name, self._queue.size,
            )
            return True

    def stop(self) -> None:
        """Detiene el scheduler y cierra el cliente. La cola se conserva."""
        logger.info("[PUBLISHER] Deactivating OMF publisher...")
        with self._lifecycle_lock:
            self._shutdown_delivery()
            self._set_state(PublisherState.UNCONFIGURED)
        logger.info("[PUBLISHER] Deactivated. %s", self.stats)

    def _shutdown_delivery(self) -> None:
        if self._scheduler is not None:
            self._scheduler.stop()
            self._scheduler = None
        if self._client is not None:
            self._client.close()
            self._client = None
        self._encoder = None

    # ------------------------------------------------------------------
    # Ingesta
    # ------------------------------------------------------------------

    def on_batch(self, records: Iterable[Record]) -> bool:
        """Normaliza un lote y lo encola. Nunca bloquea en red.

        Returns:
            True si se encoló un snapshot
        """
        self.stats.increment("batches_received")

        if self.state == PublisherState.UNCONFIGURED:
            missing = self._settings.missing_fields() if self._settings else ["settings"]
            if missing:
                logger.error(
                    "[PUBLISHER] %s. Message will not be published.",
                    ConfigurationIncomplete(missing),
                )
            else:
                logger.error("[PUBLISHER] Publisher is stopped. Message will not be published.")
            self.stats.increment("batches_rejected")
            return False

        snapshot = self._normalizer.normalize(records)
        if snapshot.is_empty:
            logger.debug("[PUBLISHER] Batch produced no channels, nothing to enqueue")
            return False

        depth = self._queue.put(snapshot)
        logger.info(
            "[PUBLISHER] Added %d assets / %d channels to in-flight queue (%d remaining)",
            len(snapshot), snapshot.channel_count, depth,
        )
        return True

    # ------------------------------------------------------------------
    # Entrega
    # ------------------------------------------------------------------

    def tick(self) -> TickOutcome:
        """Intenta entregar la cabeza de la cola (como máximo una por tick)."""
        client, encoder = self._client, self._encoder
        if client is None or encoder is None:
            return TickOutcome.NOT_CONFIGURED

        head = self._queue.peek()
        if head is None:
            self._set_state(PublisherState.CONFIGURED)
            return TickOutcome.IDLE

        if not self._receiver_is_live(client):
            self._set_state(PublisherState.CONFIGURED)
            return TickOutcome.UNREACHABLE

        self._set_state(PublisherState.DELIVERING)
        logger.info(
            "[PUBLISHER] Trying to send next in-flight message (%d remaining)", self._queue.size,
        )

        modified, candidate = self._registry.plan(head)
        if modified:
            if not self._announce(client, encoder, candidate):
                return TickOutcome.METADATA_FAILED
            self._registry.commit(candidate)
            self.stats.increment("metadata_announcements")

        try:
            client.send_checked(MessageType.DATA, encoder.data_values_message(head))
        except TransportError as e:
            self.stats.increment("transport_errors")
            logger.warning("[PUBLISHER] <Data> not sent, will retry: %s", e)
            return TickOutcome.DATA_FAILED
        except RejectedByReceiver as e:
            self.stats.increment("rejected_responses")
            logger.error(
                "[PUBLISHER] Connection to OMF target established, but the target did not "
                "accept the data. Message kept for retry: %s\n%s",
                e, head.describe(),
            )
            return TickOutcome.DATA_FAILED

        self._queue.pop_head(head)
        self.stats.increment("snapshots_delivered")
        self.stats.last_delivery_at = time.time()
        logger.info("[PUBLISHER] Sent in-flight <Data> correctly")

        if self._queue.is_empty:
            self._set_state(PublisherState.CONFIGURED)
        return TickOutcome.DELIVERED

    def _receiver_is_live(self, client: OmfClient) -> bool:
        try:
            status = client.ping()
        except TransportError as e:
            self.stats.increment("ping_failures")
            logger.warning("[PUBLISHER] OMF target unreachable: %s", e)
            return False

        if not is_accepted(status, client.accepted_statuses):
            self.stats.increment("ping_failures")
            http_status_to_error_log(status, logger)
            return False
        return True

    def _announce(
        self,
        client: OmfClient,
        encoder: OmfMessageEncoder,
        known: SchemaSnapshot,
    ) -> bool:
        """Envía Type → Container → Links; cada uno debe ser aceptado."""
        steps = (
            (MessageType.TYPE, "Type", encoder.type_message),
            (MessageType.CONTAINER, "Container", encoder.container_message),
            (MessageType.DATA, "Data Links", encoder.links_message),
        )
        for message_type, label, build in steps:
            try:
                client.send_checked(message_type, build(known))
            except TransportError as e:
                self.stats.increment("transport_errors")
                logger.warning("[PUBLISHER] <%s> not sent, will retry: %s", label, e)
                return False
            except RejectedByReceiver as e:
                self.stats.increment("rejected_responses")
                logger.error("[PUBLISHER] <%s> rejected, will retry: %s", label, e)
                return False
            logger.info("[PUBLISHER] Sent <%s> correctly", label)
        return True

    # ------------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------------

    def _set_state(self, state: PublisherState) -> None:
        with self._state_lock:
            if self._state != state:
                logger.debug("[PUBLISHER] %s -> %s", self._state.value, state.value)
            self._state = state

    @property
    def state(self) -> PublisherState:
        with self._state_lock:
            return self._state

    @property
    def queue(self) -> DeliveryQueue[SchemaSnapshot]:
        return self._queue

    @property
    def registry(self) -> KnownSchemaRegistry:
        return self._registry

    @property
    def settings(self) -> Optional[PublisherSettings]:
        return self._settings

    def health(self) -> HealthStatus:
        state = self.state
        scheduler = self._scheduler
        scheduler_running = scheduler is not None and scheduler.is_running
        configured = state != PublisherState.UNCONFIGURED
        known = self._registry.get_stats()
        return HealthStatus(
            healthy=configured and (scheduler_running or not self._run_scheduler),
            state=state.value,
            configured=configured,
            scheduler_running=scheduler_running,
            queue_depth=self._queue.size,
            known_assets=known["assets"],
            known_channels=known["channels"],
        )

    def get_stats(self) -> dict:
        scheduler = self._scheduler
        return {
            "publisher": self.stats.to_dict(),
            "queue": self._queue.get_stats(),
            "known_schema": self._registry.get_stats(),
            "scheduler": scheduler.metrics if scheduler is not None else None,
        }
