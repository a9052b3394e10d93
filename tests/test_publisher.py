"""Tests end-to-end del OmfPublisher contra una sesión HTTP falsa."""

import dataclasses
import time

import pytest

from omf_publisher.config import PublisherSettings
from omf_publisher.core.publisher import OmfPublisher, PublisherState, TickOutcome
from omf_publisher.core.transport.omf_client import OmfClient

from conftest import T0_MS, FakeSession, raise_connection_error


def pump_batch(temp=21.5, ts=T0_MS):
    return [{"assetName": "Pump#1", "assetTimestamp": ts, "Temp": temp}]


def is_data_values(message):
    return message.message_type == "data" and not any(
        e.get("typeid") == "__Link" for e in message.body
    )


# =============================================================================
# ENTREGA NORMAL
# =============================================================================

class TestDelivery:

    def test_first_delivery_announces_metadata_then_data(self, publisher, fake_session):
        assert publisher.on_batch(pump_batch()) is True
        assert publisher.queue.size == 1

        assert publisher.tick() == TickOutcome.DELIVERED

        assert fake_session.kinds() == ["type", "container", "links", "data"]
        assert publisher.queue.is_empty
        assert publisher.state == PublisherState.CONFIGURED

        data = fake_session.payload_messages()[-1].body
        assert data == [{
            "containerid": "Device_Pump1_Temp_DOUBLE",
            "values": [{"IndexedDateTime": "2024-01-31T08:00:00.123Z", "Temp_DOUBLE": 21.5}],
        }]

    def test_ping_precedes_every_attempt(self, publisher, fake_session):
        publisher.on_batch(pump_batch())
        publisher.tick()

        first = fake_session.sent[0]
        assert first.message_type == "type"
        assert first.body == []

    def test_value_only_change_sends_data_only(self, publisher, fake_session):
        publisher.on_batch(pump_batch())
        publisher.tick()

        publisher.on_batch(pump_batch(temp=22.0, ts=T0_MS + 1000))
        assert publisher.tick() == TickOutcome.DELIVERED

        assert fake_session.kinds() == ["type", "container", "links", "data", "data"]
        assert publisher.stats.metadata_announcements == 1

    def test_type_change_reannounces(self, publisher, fake_session):
        publisher.on_batch(pump_batch())
        publisher.tick()

        publisher.on_batch(pump_batch(temp="hot"))
        publisher.tick()

        assert fake_session.kinds()[4:] == ["type", "container", "links", "data"]
        last_type = [m for m in fake_session.payload_messages() if m.message_type == "type"][-1]
        assert "Device_Pump1_Temp_STRING" in [e["id"] for e in last_type.body]

    def test_one_snapshot_per_tick_in_order(self, publisher, fake_session):
        publisher.on_batch(pump_batch(temp=1.0))
        publisher.on_batch(pump_batch(temp=2.0))
        publisher.on_batch(pump_batch(temp=3.0))

        for _ in range(3):
            assert publisher.tick() == TickOutcome.DELIVERED

        sent = [m.body[0]["values"][0]["Temp_DOUBLE"] for m in fake_session.payload_messages() if is_data_values(m)]
        assert sent == [1.0, 2.0, 3.0]

    def test_idle_tick_sends_nothing(self, publisher, fake_session):
        assert publisher.tick() == TickOutcome.IDLE
        assert fake_session.sent == []

    def test_out_of_range_timestamp_does_not_escape_ingestion(self, publisher, fake_session):
        assert publisher.on_batch([
            {"assetName": "A", "assetTimestamp": 10 ** 300, "x": 1.0},
            {"assetName": "B", "assetTimestamp": T0_MS, "y": 2.0},
        ]) is True

        assert publisher.tick() == TickOutcome.DELIVERED
        data = [m for m in fake_session.payload_messages() if is_data_values(m)][-1]
        assert [e["containerid"] for e in data.body] == ["Device_B_y_DOUBLE"]

    def test_batch_without_channels_is_not_enqueued(self, publisher):
        assert publisher.on_batch([{"assetTimestamp": T0_MS, "x": 1}]) is False
        assert publisher.queue.is_empty


# =============================================================================
# FALLOS Y REINTENTOS
# =============================================================================

class TestRetries:

    def test_rejected_data_keeps_head_and_retries_data_only(self, publisher, fake_session):
        fake_session.responder = lambda m: 503 if is_data_values(m) else 204
        publisher.on_batch(pump_batch())

        assert publisher.tick() == TickOutcome.DATA_FAILED
        assert publisher.queue.size == 1
        assert not publisher.registry.is_empty

        fake_session.responder = lambda m: 204
        assert publisher.tick() == TickOutcome.DELIVERED

        assert fake_session.kinds() == ["type", "container", "links", "data", "data"]
        assert publisher.queue.is_empty

    def test_rejected_container_retries_whole_announcement(self, publisher, fake_session):
        fake_session.responder = lambda m: 500 if m.message_type == "container" else 204
        publisher.on_batch(pump_batch())

        assert publisher.tick() == TickOutcome.METADATA_FAILED
        assert publisher.registry.is_empty
        assert publisher.queue.size == 1

        fake_session.responder = lambda m: 204
        assert publisher.tick() == TickOutcome.DELIVERED
        assert fake_session.kinds() == ["type", "container", "type", "container", "links", "data"]

    def test_rejected_type_stops_announcement(self, publisher, fake_session):
        fake_session.responder = lambda m: 500 if m.message_type == "type" and m.body != [] else 204
        publisher.on_batch(pump_batch())

        assert publisher.tick() == TickOutcome.METADATA_FAILED

        assert fake_session.kinds() == ["type"]
        assert publisher.registry.is_empty
        assert publisher.queue.size == 1

    def test_rejected_links_retries_whole_announcement(self, publisher, fake_session):
        fake_session.responder = lambda m: 503 if m.message_type == "data" and not is_data_values(m) else 204
        publisher.on_batch(pump_batch())

        assert publisher.tick() == TickOutcome.METADATA_FAILED
        assert fake_session.kinds() == ["type", "container", "links"]
        assert publisher.registry.is_empty
        assert publisher.queue.size == 1

        fake_session.responder = lambda m: 204
        assert publisher.tick() == TickOutcome.DELIVERED
        assert fake_session.kinds() == [
            "type", "container", "links", "type", "container", "links", "data",
        ]

    def test_unreachable_links_keeps_head(self, publisher, fake_session):
        def responder(message):
            if message.message_type == "data" and not is_data_values(message):
                return raise_connection_error(message)
            return 204

        fake_session.responder = responder
        publisher.on_batch(pump_batch())

        assert publisher.tick() == TickOutcome.METADATA_FAILED
        assert "data" not in fake_session.kinds()
        assert publisher.registry.is_empty
        assert publisher.stats.transport_errors == 1

    def test_unreachable_receiver_keeps_queue(self, publisher, fake_session):
        fake_session.responder = raise_connection_error
        publisher.on_batch(pump_batch())

        assert publisher.tick() == TickOutcome.UNREACHABLE
        assert publisher.tick() == TickOutcome.UNREACHABLE

        assert publisher.queue.size == 1
        assert publisher.stats.ping_failures == 2
        assert fake_session.kinds() == []

    def test_ping_rejection_skips_attempt(self, publisher, fake_session):
        fake_session.responder = lambda m: 401
        publisher.on_batch(pump_batch())

        assert publisher.tick() == TickOutcome.UNREACHABLE
        assert fake_session.kinds() == []

    def test_transport_error_after_ping_keeps_head(self, publisher, fake_session):
        def responder(message):
            if is_data_values(message):
                return raise_connection_error(message)
            return 204

        fake_session.responder = responder
        publisher.on_batch(pump_batch())

        assert publisher.tick() == TickOutcome.DATA_FAILED
        assert publisher.queue.size == 1
        assert publisher.stats.transport_errors == 1

    def test_bad_request_is_a_failure_by_default(self, publisher, fake_session):
        fake_session.responder = lambda m: 400 if is_data_values(m) else 204
        publisher.on_batch(pump_batch())

        assert publisher.tick() == TickOutcome.DATA_FAILED
        assert publisher.stats.rejected_responses == 1


# =============================================================================
# CONFIGURACIÓN Y CICLO DE VIDA
# =============================================================================

class TestLifecycle:

    def test_unconfigured_publisher_rejects_batches(self):
        publisher = OmfPublisher(run_scheduler=False)

        assert publisher.on_batch(pump_batch()) is False
        assert publisher.queue.is_empty
        assert publisher.stats.batches_rejected == 1
        assert publisher.tick() == TickOutcome.NOT_CONFIGURED

    def test_incomplete_settings_leave_publisher_unconfigured(self, settings):
        publisher = OmfPublisher(run_scheduler=False)

        assert publisher.start(dataclasses.replace(settings, producer_token="")) is False
        assert publisher.state == PublisherState.UNCONFIGURED
        assert publisher.on_batch(pump_batch()) is False

    def test_reconfigure_clears_known_schema(self, publisher, fake_session, settings):
        publisher.on_batch(pump_batch())
        publisher.tick()
        assert not publisher.registry.is_empty

        assert publisher.reconfigure(dataclasses.replace(settings, device_name="Device2")) is True
        assert publisher.registry.is_empty

        publisher.on_batch(pump_batch())
        publisher.tick()

        assert fake_session.kinds()[4:] == ["type", "container", "links", "data"]
        assert fake_session.payload_messages()[-1].body[0]["containerid"] == "Device2_Pump1_Temp_DOUBLE"

    def test_queue_survives_reconfiguration(self, publisher, fake_session, settings):
        fake_session.responder = raise_connection_error
        publisher.on_batch(pump_batch())
        publisher.tick()

        fake_session.responder = lambda m: 204
        publisher.reconfigure(settings)

        assert publisher.tick() == TickOutcome.DELIVERED

    def test_stopped_publisher_rejects_batches_without_missing_fields(self, publisher, caplog):
        publisher.stop()

        assert publisher.on_batch(pump_batch()) is False

        assert "Publisher is stopped" in caplog.text
        assert "configuration incomplete" not in caplog.text
        assert publisher.stats.batches_rejected == 1

    def test_stop_keeps_queue(self, publisher):
        publisher.on_batch(pump_batch())
        publisher.stop()

        assert publisher.state == PublisherState.UNCONFIGURED
        assert publisher.queue.size == 1

    def test_health_and_stats(self, publisher):
        publisher.on_batch(pump_batch())

        health = publisher.health().to_dict()
        assert health["healthy"] is True
        assert health["state"] == "configured"
        assert health["queue_depth"] == 1

        publisher.tick()
        stats = publisher.get_stats()
        assert stats["publisher"]["snapshots_delivered"] == 1
        assert stats["known_schema"] == {"assets": 1, "channels": 1}
        assert stats["scheduler"] is None


# =============================================================================
# SCHEDULER REAL
# =============================================================================

def test_background_scheduler_drains_queue(settings):
    session = FakeSession()

    def factory(s: PublisherSettings) -> OmfClient:
        return OmfClient(s.target_url, s.producer_token, session=session)

    publisher = OmfPublisher(client_factory=factory)
    assert publisher.start(settings) is True
    try:
        publisher.on_batch(pump_batch(temp=1.0))
        publisher.on_batch(pump_batch(temp=2.0))

        deadline = time.monotonic() + 5.0
        while not publisher.queue.is_empty and time.monotonic() < deadline:
            time.sleep(0.02)

        assert publisher.queue.is_empty
        assert publisher.health().scheduler_running
    finally:
        publisher.stop()

    assert session.kinds() == ["type", "container", "links", "data", "data"]


@pytest.mark.parametrize("accept_bad_request, outcome", [
    (True, TickOutcome.DELIVERED),
    (False, TickOutcome.DATA_FAILED),
])
def test_default_client_factory_honours_bad_request_flag(monkeypatch, settings, accept_bad_request, outcome):
    session = FakeSession(lambda m: 400 if is_data_values(m) else 204)
    monkeypatch.setattr("omf_publisher.core.transport.omf_client.requests.Session", lambda: session)

    publisher = OmfPublisher(run_scheduler=False)
    publisher.start(dataclasses.replace(settings, accept_bad_request=accept_bad_request))
    try:
        publisher.on_batch(pump_batch())
        assert publisher.tick() == outcome
    finally:
        publisher.stop()
