"""Normalización de lotes de registros a SchemaSnapshot.

Cada registro es un mapa nombre de propiedad → valor (TypedValue o valor
Python). Se soportan dos convenciones de timestamp:

- Timestamp único: la propiedad ``assetTimestamp`` aplica a todas las demás.
- Timestamp por propiedad: ``<propiedad>_timestamp`` acompaña a ``<propiedad>``.

Reglas:
- Sin ``assetName`` → MissingAssetName (se descarta ese registro).
- Alguna propiedad BYTE_ARRAY → se descarta el registro completo (log info).
- Valores NaN / ±inf → se omite la propiedad (log info).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from ..domain.errors import MissingAssetName, UnsupportedValueType
from ..domain.naming import sanitize_name
from ..domain.schema import Asset, SchemaSnapshot
from ..domain.typed_value import DataType, TypedValue, new_typed_value

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]

FORBIDDEN_TYPES = frozenset({DataType.BYTE_ARRAY})


@dataclass(frozen=True)
class NormalizerConfig:
    """Nombres reservados de propiedades en los registros."""
    asset_name_property: str = "assetName"
    single_timestamp_property: str = "assetTimestamp"
    timestamp_suffix: str = "_timestamp"


def to_utc_datetime(raw: Any) -> datetime:
    """Convierte un timestamp (epoch ms o datetime) a datetime UTC.

    Raises:
        ValueError: si el valor no es interpretable como timestamp
    """
    if isinstance(raw, TypedValue):
        raw = raw.value
    if isinstance(raw, datetime):
        if raw.tzinfo is None:
            return raw.replace(tzinfo=timezone.utc)
        return raw.astimezone(timezone.utc)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        try:
            return datetime.fromtimestamp(raw / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {raw!r}") from e
    raise ValueError(f"Invalid timestamp value: {raw!r}")


class RecordNormalizer:
    """Construye un SchemaSnapshot a partir de un lote de registros.

    No tiene estado entre lotes: cada llamada crea objetos nuevos.
    """

    def __init__(self, config: Optional[NormalizerConfig] = None):
        self._config = config or NormalizerConfig()

    @property
    def config(self) -> NormalizerConfig:
        return self._config

    def normalize(self, records: Iterable[Record]) -> SchemaSnapshot:
        """Normaliza un lote completo.

        Los registros inválidos se descartan con log; el resto del lote sigue.
        """
        snapshot = SchemaSnapshot()

        for index, record in enumerate(records):
            try:
                self.add_record(snapshot, record)
            except MissingAssetName as e:
                logger.warning("[NORMALIZE] Record %d skipped: %s", index, e)
            except UnsupportedValueType as e:
                if e.type_name == DataType.BYTE_ARRAY.value:
                    logger.info(
                        "[NORMALIZE] Record %d skipped, %s. Byte arrays are not supported.",
                        index, e,
                    )
                else:
                    logger.info("[NORMALIZE] Record %d skipped, %s", index, e)

        return snapshot

    def add_record(self, snapshot: SchemaSnapshot, record: Record) -> Optional[Asset]:
        """Agrega un registro al snapshot.

        Returns:
            El asset afectado

        Raises:
            MissingAssetName: si falta el nombre del asset o queda vacío al sanear
            UnsupportedValueType: si alguna propiedad tiene un tipo no soportado
        """
        cfg = self._config

        if cfg.asset_name_property not in record:
            raise MissingAssetName(cfg.asset_name_property)

        raw_name = record[cfg.asset_name_property]
        if isinstance(raw_name, TypedValue):
            raw_name = raw_name.value
        asset_name = sanitize_name(str(raw_name)) if raw_name is not None else ""
        if not asset_name:
            raise MissingAssetName(cfg.asset_name_property)

        single = cfg.single_timestamp_property in record
        typed = self._typed_properties(record, skip_timestamps=not single)

        asset = snapshot.get_or_create_asset(asset_name)

        if single:
            self._extract_with_single_timestamp(asset, record, typed)
        else:
            self._extract_with_channel_timestamps(asset, record, typed)

        return asset

    def _typed_properties(
        self,
        record: Record,
        skip_timestamps: bool = False,
    ) -> dict[str, TypedValue]:
        """Tipa las propiedades no reservadas y rechaza tipos prohibidos.

        Con ``skip_timestamps`` las propiedades <nombre>_timestamp no se tipan:
        son timestamps, no canales.
        """
        cfg = self._config
        reserved = (cfg.asset_name_property, cfg.single_timestamp_property)
        typed: dict[str, TypedValue] = {}

        for key, raw in record.items():
            if key in reserved:
                continue
            if skip_timestamps and self._is_timestamp_key(key):
                continue
            value = new_typed_value(raw, key)
            if value.type in FORBIDDEN_TYPES:
                raise UnsupportedValueType(key, value.type.value)
            typed[key] = value

        return typed

    def _extract_with_single_timestamp(
        self,
        asset: Asset,
        record: Record,
        typed: Mapping[str, TypedValue],
    ) -> None:
        try:
            timestamp = to_utc_datetime(record[self._config.single_timestamp_property])
        except ValueError as e:
            logger.warning("[NORMALIZE] Asset %s skipped: %s", asset.name, e)
            return

        for key, value in typed.items():
            self._set_channel(asset, key, value, timestamp)

    def _extract_with_channel_timestamps(
        self,
        asset: Asset,
        record: Record,
        typed: Mapping[str, TypedValue],
    ) -> None:
        suffix = self._config.timestamp_suffix

        for key in record:
            if not self._is_timestamp_key(key):
                continue

            value_key = key[: -len(suffix)]
            value = typed.get(value_key)
            if value is None:
                logger.debug("[NORMALIZE] Timestamp %s has no value property", key)
                continue

            try:
                timestamp = to_utc_datetime(record[key])
            except ValueError as e:
                logger.warning("[NORMALIZE] Channel %s skipped: %s", value_key, e)
                continue

            self._set_channel(asset, value_key, value, timestamp)

    def _is_timestamp_key(self, key: str) -> bool:
        suffix = self._config.timestamp_suffix
        return key.endswith(suffix) and key != suffix

    @staticmethod
    def _set_channel(
        asset: Asset,
        raw_name: str,
        value: TypedValue,
        timestamp: datetime,
    ) -> None:
        if value.is_special_floating_point():
            logger.info(
                "[NORMALIZE] Value (%s) of %s is not a real number and won't be published",
                value.type.value, raw_name,
            )
            return

        channel_name = sanitize_name(raw_name)
        if not channel_name:
            logger.warning("[NORMALIZE] Property %r has an empty name after sanitizing", raw_name)
            return

        channel = asset.get_or_create_channel(channel_name, value)
        channel.set_value(value, timestamp)
