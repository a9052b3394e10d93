"""Seguimiento del esquema conocido por el receptor OMF.

FUENTE ÚNICA DE VERDAD sobre qué assets y canales ya fueron anunciados
(Type + Container). Solo cambios de identidad o de tipo obligan a reanunciar;
los cambios de valor no.
"""

from __future__ import annotations

import logging
import threading
from typing import Tuple

from ..domain.schema import SchemaSnapshot

logger = logging.getLogger(__name__)


def diff(current: SchemaSnapshot, known: SchemaSnapshot) -> Tuple[bool, SchemaSnapshot]:
    """Compara ``current`` contra ``known`` y actualiza ``known`` in place.

    - Asset ausente en known → modificado, se agrega una copia sin canales.
    - Canal ausente, o presente con otro tipo → modificado, se hace upsert
      de la identidad y el tipo.

    Returns:
        (modified, known actualizado)
    """
    modified = False

    for asset in current:
        known_asset = known.get_asset(asset.name)
        if known_asset is None:
            modified = True
            logger.debug("[SCHEMA] New asset %s detected", asset.name)
            known_asset = known.add_asset(asset.bare_copy())

        for channel_name, channel in asset.channels.items():
            known_channel = known_asset.channels.get(channel_name)
            if known_channel is not None and known_channel.data_type == channel.data_type:
                continue

            modified = True
            if known_channel is None:
                logger.debug("[SCHEMA] New channel %s/%s detected", asset.name, channel_name)
            else:
                logger.debug(
                    "[SCHEMA] Channel %s/%s changed type %s -> %s",
                    asset.name, channel_name,
                    known_channel.data_type.value, channel.data_type.value,
                )
            known_asset.channels[channel_name] = channel.structural_copy()

    return modified, known


class KnownSchemaRegistry:
    """Baseline del esquema anunciado, protegido por un lock.

    El orquestador calcula un candidato con ``plan`` y solo lo confirma con
    ``commit`` cuando Type y Container fueron aceptados. Así un anuncio
    fallido se repite en el siguiente tick.
    """

    def __init__(self) -> None:
        self._known = SchemaSnapshot()
        self._lock = threading.Lock()

    def plan(self, current: SchemaSnapshot) -> Tuple[bool, SchemaSnapshot]:
        """Diff contra una copia del baseline, sin mutarlo."""
        with self._lock:
            candidate = self._known.copy_structure()
        return diff(current, candidate)

    def commit(self, candidate: SchemaSnapshot) -> None:
        with self._lock:
            self._known = candidate.copy_structure()

    def clear(self) -> None:
        """Olvida todo lo anunciado (cambio de target o de device name)."""
        with self._lock:
            self._known = SchemaSnapshot()
        logger.info("[SCHEMA] Known schema cleared")

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return self._known.is_empty

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "assets": len(self._known),
                "channels": self._known.channel_count,
            }
