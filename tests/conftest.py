"""Fixtures compartidas: sesión HTTP falsa que registra los envíos OMF."""

import gzip
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import requests

from omf_publisher.config import PublisherSettings
from omf_publisher.core.publisher import OmfPublisher
from omf_publisher.core.transport.omf_client import OmfClient


T0_MS = 1706688000123  # 2024-01-31T08:00:00.123Z
T0 = datetime(2024, 1, 31, 8, 0, 0, 123000, tzinfo=timezone.utc)


@dataclass
class SentMessage:
    message_type: str
    action: str
    headers: Dict[str, str]
    body: Any
    raw: bytes


class FakeSession:
    """Sustituto de requests.Session.

    ``responder(message)`` devuelve un status int o lanza una excepción.
    """

    def __init__(self, responder: Optional[Callable[[SentMessage], int]] = None):
        self.responder = responder or (lambda message: 204)
        self.sent: List[SentMessage] = []
        self.closed = False

    def post(self, url, data=None, headers=None, timeout=None, verify=None):
        text = gzip.decompress(data).decode("utf-8")
        message = SentMessage(
            message_type=headers["messagetype"],
            action=headers["action"],
            headers=dict(headers),
            body=json.loads(text),
            raw=data,
        )
        self.sent.append(message)
        status = self.responder(message)
        response = MagicMock()
        response.status_code = status
        response.reason = "Reason"
        response.text = "" if status < 300 else "error body"
        return response

    def close(self):
        self.closed = True

    def payload_messages(self) -> List[SentMessage]:
        """Mensajes enviados excluyendo los pings ``[]``."""
        return [m for m in self.sent if not (m.message_type == "type" and m.body == [])]

    def kinds(self) -> List[str]:
        """Secuencia abreviada de envíos que no son ping: type/container/links/data."""
        result = []
        for m in self.payload_messages():
            if m.message_type == "data":
                is_links = any(e.get("typeid") == "__Link" for e in m.body)
                result.append("links" if is_links else "data")
            else:
                result.append(m.message_type)
        return result


@pytest.fixture
def settings() -> PublisherSettings:
    return PublisherSettings(
        producer_token="token-123",
        target_url="https://relay.example:5460/ingress/messages",
        device_name="Device",
        in_flight_interval_ms=10,
    )


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def publisher(settings, fake_session) -> OmfPublisher:
    """Publisher configurado sin hilo; los tests llaman ``tick`` a mano."""
    def factory(s: PublisherSettings) -> OmfClient:
        return OmfClient(
            target_url=s.target_url,
            producer_token=s.producer_token,
            timeout_seconds=s.connection_timeout_seconds,
            session=fake_session,
        )

    pub = OmfPublisher(client_factory=factory, run_scheduler=False)
    assert pub.start(settings) is True
    yield pub
    pub.stop()


def raise_connection_error(message: SentMessage) -> int:
    raise requests.ConnectionError("connection refused")
