from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Union

from dotenv import load_dotenv

from .core.domain.errors import ConfigurationIncomplete

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION_TIMEOUT_SECONDS = 5
DEFAULT_IN_FLIGHT_INTERVAL_MS = 50

# Claves de propiedades usadas por el framework host
PRODUCER_TOKEN_KEY = "producerToken"
TARGET_URL_KEY = "targetURL"
DEVICE_NAME_KEY = "devicename"
SSL_VERIFY_KEY = "sslVerify"
CONNECTION_TIMEOUT_KEY = "connectionTimeout"
IN_FLIGHT_INTERVAL_KEY = "inFlightInterval"


def _default_env_file() -> str:
    return str(Path.cwd() / ".env")


def _as_bool(raw: str) -> bool:
    return raw.strip().lower() in ("true", "1", "yes", "on")


@dataclass(frozen=True)
class PublisherSettings:
    producer_token: str = ""
    target_url: str = ""
    device_name: str = ""

    # True/False, o ruta a un CA bundle provisto por el host
    ssl_verify: Union[bool, str] = True
    connection_timeout_seconds: float = DEFAULT_CONNECTION_TIMEOUT_SECONDS
    in_flight_interval_ms: int = DEFAULT_IN_FLIGHT_INTERVAL_MS

    # Acepta HTTP 400 como éxito (comportamiento histórico)
    accept_bad_request: bool = False

    def missing_fields(self) -> List[str]:
        missing = []
        if not self.producer_token.strip():
            missing.append("producer_token")
        if not self.target_url.strip():
            missing.append("target_url")
        if not self.device_name.strip():
            missing.append("device_name")
        return missing

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    def validate(self) -> "PublisherSettings":
        """Raises ConfigurationIncomplete si falta token, URL o device name."""
        missing = self.missing_fields()
        if missing:
            for name in missing:
                logger.error("[CONFIG] PublisherSettings: %s empty.", name)
            raise ConfigurationIncomplete(missing)
        return self

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> "PublisherSettings":
        """Construye settings desde el mapa de propiedades del host.

        Valores con tipo incorrecto se ignoran y se usa el default.
        """
        def _get(key: str, kind: type, default: Any) -> Any:
            value = properties.get(key)
            if isinstance(value, kind) and not (kind is int and isinstance(value, bool)):
                return value
            return default

        ssl_verify = properties.get(SSL_VERIFY_KEY, True)
        if not isinstance(ssl_verify, (bool, str)):
            ssl_verify = True

        return cls(
            producer_token=_get(PRODUCER_TOKEN_KEY, str, ""),
            target_url=_get(TARGET_URL_KEY, str, ""),
            device_name=_get(DEVICE_NAME_KEY, str, ""),
            ssl_verify=ssl_verify,
            connection_timeout_seconds=_get(
                CONNECTION_TIMEOUT_KEY, int, DEFAULT_CONNECTION_TIMEOUT_SECONDS
            ),
            in_flight_interval_ms=_get(IN_FLIGHT_INTERVAL_KEY, int, DEFAULT_IN_FLIGHT_INTERVAL_MS),
        )


def get_settings() -> PublisherSettings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("OMF_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    ssl_raw = os.getenv("OMF_SSL_VERIFY", "true")
    # Una ruta se usa como CA bundle
    ssl_verify: Union[bool, str] = (
        ssl_raw if os.path.sep in ssl_raw or ssl_raw.endswith(".pem") else _as_bool(ssl_raw)
    )

    return PublisherSettings(
        producer_token=os.getenv("OMF_PRODUCER_TOKEN", ""),
        target_url=os.getenv("OMF_TARGET_URL", ""),
        device_name=os.getenv("OMF_DEVICE_NAME", ""),
        ssl_verify=ssl_verify,
        connection_timeout_seconds=float(
            os.getenv("OMF_CONNECTION_TIMEOUT", str(DEFAULT_CONNECTION_TIMEOUT_SECONDS))
        ),
        in_flight_interval_ms=int(
            os.getenv("OMF_IN_FLIGHT_INTERVAL_MS", str(DEFAULT_IN_FLIGHT_INTERVAL_MS))
        ),
        accept_bad_request=_as_bool(os.getenv("OMF_ACCEPT_BAD_REQUEST", "false")),
    )
