"""Clasificación de respuestas HTTP del receptor OMF."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import FrozenSet

logger = logging.getLogger(__name__)


class HttpStatusCode(IntEnum):
    """Status codes relevantes para OMF."""
    OK = 200
    ACCEPTED = 202
    NO_CONTENT = 204
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    PAYLOAD_TOO_LARGE = 413
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503


ACCEPTED_STATUSES: FrozenSet[int] = frozenset({
    HttpStatusCode.OK,
    HttpStatusCode.ACCEPTED,
    HttpStatusCode.NO_CONTENT,
})

# Conjunto histórico, que también aceptaba 400
LEGACY_ACCEPTED_STATUSES: FrozenSet[int] = ACCEPTED_STATUSES | {HttpStatusCode.BAD_REQUEST}

_CLASSIFICATIONS = {
    HttpStatusCode.BAD_REQUEST: (
        "The OMF message was malformed or not understood. The client should "
        "not retry sending the message without modifications."
    ),
    HttpStatusCode.UNAUTHORIZED: "Authentication failed.",
    HttpStatusCode.FORBIDDEN: "Authentication succeeded, but not authorized.",
    HttpStatusCode.PAYLOAD_TOO_LARGE: "Payload size exceeds OMF body size limit of 192kb.",
    HttpStatusCode.INTERNAL_SERVER_ERROR: "The server encountered an unexpected condition.",
    HttpStatusCode.SERVICE_UNAVAILABLE: "The server is currently unavailable, retry later.",
}

UNKNOWN_CLASSIFICATION = "An unknown HTTP-Response-Code was returned."


def is_accepted(status: int, accepted: FrozenSet[int] = ACCEPTED_STATUSES) -> bool:
    """True si el receptor aceptó el mensaje."""
    return status in accepted


def classify_status(status: int) -> str:
    """Mensaje para el operador según el status recibido."""
    try:
        return _CLASSIFICATIONS[HttpStatusCode(status)]
    except (ValueError, KeyError):
        return UNKNOWN_CLASSIFICATION


def http_status_to_error_log(status: int, log: logging.Logger = logger) -> str:
    """Registra la clasificación de un status rechazado y la devuelve."""
    classification = classify_status(status)
    log.error("[OMF] HTTP %d: %s", status, classification)
    return classification
