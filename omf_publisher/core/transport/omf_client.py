"""Cliente HTTPS para un receptor OMF.

Responsabilidades:
- Comprimir el cuerpo JSON con gzip
- POST con los headers OMF (producertoken, messagetype, action, ...)
- Distinguir fallo de red (TransportError) de respuesta HTTP recibida

No reintenta: la política de reintentos vive en el orquestador.
"""

from __future__ import annotations

import gzip
import logging
from enum import Enum
from typing import FrozenSet, Optional, Union

import requests

from ..domain.errors import RejectedByReceiver, TransportError
from ..encoding.encoder import OMF_MAX_MESSAGE_SIZE_BYTES, is_larger_than_max_message_size
from .http_status import ACCEPTED_STATUSES, http_status_to_error_log, is_accepted

logger = logging.getLogger(__name__)

OMF_VERSION = "1.0"
MESSAGE_FORMAT = "JSON"
COMPRESSION = "gzip"

# Límite de caracteres del cuerpo/respuesta en logs de error
LOG_BODY_LIMIT = 2000


class MessageType(str, Enum):
    TYPE = "type"
    CONTAINER = "container"
    DATA = "data"


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def compress_message(message: str) -> bytes:
    """Comprime el mensaje UTF-8 con gzip.

    Raises:
        ValueError: si el mensaje está vacío
    """
    if not message:
        raise ValueError("Cannot zip null or empty string")
    return gzip.compress(message.encode("utf-8"))


def _truncate(text: str, limit: int = LOG_BODY_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + f"... ({len(text) - limit} more chars)"


class OmfClient:
    """Envía mensajes OMF a un target URL.

    Uso:
        client = OmfClient("https://relay:5460/ingress/messages", "token")
        status = client.send(Action.CREATE, MessageType.TYPE, "[...]")
    """

    def __init__(
        self,
        target_url: str,
        producer_token: str,
        timeout_seconds: float = 5.0,
        verify: Union[bool, str] = True,
        session: Optional[requests.Session] = None,
        accepted_statuses: FrozenSet[int] = ACCEPTED_STATUSES,
    ):
        self._target_url = target_url
        self._producer_token = producer_token
        self._timeout = timeout_seconds
        self._verify = verify
        self._session = session or requests.Session()
        self._accepted = accepted_statuses

        if verify is False:
            logger.warning("[OMF] SSL certificate verification disabled for %s", target_url)

    @property
    def target_url(self) -> str:
        return self._target_url

    @property
    def accepted_statuses(self) -> FrozenSet[int]:
        return self._accepted

    def build_headers(self, action: Union[Action, str], message_type: Union[MessageType, str]) -> dict:
        return {
            "producertoken": self._producer_token,
            "messagetype": MessageType(message_type).value,
            "action": Action(action).value,
            "messageformat": MESSAGE_FORMAT,
            "omfversion": OMF_VERSION,
            "compression": COMPRESSION,
        }

    def send(
        self,
        action: Union[Action, str],
        message_type: Union[MessageType, str],
        message_json: str,
    ) -> int:
        """Envía un mensaje y devuelve el status HTTP.

        Raises:
            TransportError: DNS, conexión, timeout o error de socket
            ValueError: cuerpo vacío
        """
        message_type = MessageType(message_type)

        if is_larger_than_max_message_size(message_json):
            logger.warning(
                "[OMF] <%s> message is %d bytes, above the %d byte OMF limit; "
                "the receiver is expected to reject it",
                message_type.value, len(message_json.encode("utf-8")), OMF_MAX_MESSAGE_SIZE_BYTES,
            )

        body = compress_message(message_json)
        logger.debug("[OMF] Size after compression: %d bytes", len(body))

        try:
            response = self._session.post(
                self._target_url,
                data=body,
                headers=self.build_headers(action, message_type),
                timeout=self._timeout,
                verify=self._verify,
            )
        except requests.RequestException as e:
            raise TransportError(
                f"Error during web request <{message_type.value}> to {self._target_url}: {e}",
                cause=e,
            ) from e

        status = response.status_code
        logger.debug(
            "[OMF] <%s> response: %d %s", message_type.value, status, response.reason,
        )

        if not is_accepted(status, self._accepted):
            logger.error(
                "[OMF] Relay returned error code %d for <%s>. Response was: %s. Message was: %s",
                status,
                message_type.value,
                _truncate(response.text or ""),
                _truncate(message_json),
            )

        return status

    def send_checked(
        self,
        message_type: Union[MessageType, str],
        message_json: str,
        action: Union[Action, str] = Action.CREATE,
    ) -> int:
        """Como ``send`` pero eleva RejectedByReceiver si el status no es aceptado."""
        status = self.send(action, message_type, message_json)
        if not is_accepted(status, self._accepted):
            classification = http_status_to_error_log(status, logger)
            raise RejectedByReceiver(status, MessageType(message_type).value, classification)
        return status

    def ping(self) -> int:
        """Chequeo de alcance: un mensaje Type vacío ``[]``.

        Raises:
            TransportError: si el receptor no es alcanzable
        """
        logger.debug("[OMF] Checking the connection to the OMF target")
        status = self.send(Action.CREATE, MessageType.TYPE, "[]")
        logger.debug("[OMF] Connection check http code result: %d", status)
        return status

    def close(self) -> None:
        self._session.close()
