"""Excepciones del pipeline de publicación OMF.

Ninguna de estas excepciones termina el proceso: cada capa las contiene
y las reporta por logging.
"""

from __future__ import annotations

from typing import Iterable, Optional


class OmfPublisherError(Exception):
    """Base de todos los errores del publisher."""


class MissingAssetName(OmfPublisherError):
    """El registro no contiene la propiedad con el nombre del asset."""

    def __init__(self, property_name: str):
        self.property_name = property_name
        super().__init__(
            f"Record does not contain asset name property '{property_name}'"
        )


class UnsupportedValueType(OmfPublisherError):
    """Tipo de valor que OMF no puede serializar (p.ej. byte array)."""

    def __init__(self, property_name: str, type_name: str):
        self.property_name = property_name
        self.type_name = type_name
        super().__init__(
            f"Property '{property_name}' has unsupported value type {type_name}"
        )


class TransportError(OmfPublisherError):
    """Fallo de red: DNS, conexión, timeout o socket.

    El receptor se considera inalcanzable; no hubo respuesta HTTP.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class RejectedByReceiver(OmfPublisherError):
    """El receptor respondió con un status fuera del conjunto aceptado."""

    def __init__(self, status: int, message_type: str, classification: str):
        self.status = status
        self.message_type = message_type
        self.classification = classification
        super().__init__(
            f"OMF target rejected <{message_type}> with HTTP {status}: {classification}"
        )


class ConfigurationIncomplete(OmfPublisherError):
    """Faltan ajustes obligatorios (producer token, target URL, device name)."""

    def __init__(self, missing: Iterable[str]):
        self.missing = tuple(missing)
        super().__init__(
            "Publisher configuration incomplete, missing: " + ", ".join(self.missing)
        )
