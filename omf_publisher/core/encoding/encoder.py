"""Codificador de mensajes OMF a partir de un SchemaSnapshot.

Genera los cuatro arrays JSON del protocolo:

1. Type       → tipo raíz del dispositivo + un tipo estático por asset
                + un tipo dinámico por canal
2. Container  → un container por canal
3. Links      → elemento raíz + link _ROOT + por asset su elemento, el link
                padre y un link asset → container por canal
4. Data       → un valor + IndexedDateTime por canal

La salida es determinista: el mismo snapshot produce siempre el mismo JSON.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from pydantic import BaseModel

from ..domain.errors import UnsupportedValueType
from ..domain.schema import Asset, Channel, SchemaSnapshot
from ..domain.typed_value import DataType
from .models import (
    AssetElement,
    ContainerDefinition,
    DataValuesMessage,
    LinkEndpoint,
    LinkMessage,
    LinkValue,
    TypeDefinition,
    TypeProperty,
)

DEVICE_TYPE_ID = "OmfIoTDevice"
ASSET_TYPE_DESCRIPTION = "IoT Asset"
LINK_TYPE_ID = "__Link"
ROOT_INDEX = "_ROOT"
NAME_PROPERTY = "Name"
INDEX_PROPERTY = "IndexedDateTime"

OMF_MAX_MESSAGE_SIZE_BYTES = 192 * 1024

# Tipo OMF de la propiedad de valor para cada etiqueta soportada
OMF_PROPERTY_TYPES: Dict[DataType, str] = {
    DataType.BOOLEAN: "integer",
    DataType.INTEGER: "integer",
    DataType.LONG: "integer",
    DataType.FLOAT: "number",
    DataType.DOUBLE: "number",
    DataType.STRING: "string",
}


def omf_property_type(channel: Channel) -> str:
    try:
        return OMF_PROPERTY_TYPES[channel.data_type]
    except KeyError:
        raise UnsupportedValueType(channel.name, channel.data_type.value) from None


def omf_value(channel: Channel) -> Any:
    """Valor tal como se envía: bool → 1/0, números tal cual, str como string JSON."""
    data_type = channel.data_type
    value = channel.typed_value.value

    if data_type == DataType.BOOLEAN:
        return 1 if value else 0
    if data_type in (DataType.INTEGER, DataType.LONG):
        return int(value)
    if data_type in (DataType.FLOAT, DataType.DOUBLE):
        return float(value)
    if data_type == DataType.STRING:
        return str(value)
    raise UnsupportedValueType(channel.name, data_type.value)


def format_timestamp(timestamp: datetime) -> str:
    """ISO-8601 UTC con milisegundos: 2024-01-31T08:00:00.123Z."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    ts = timestamp.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def to_json(entries: Iterable[BaseModel]) -> str:
    return json.dumps(
        [e.model_dump(by_alias=True, exclude_none=True) for e in entries],
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def is_larger_than_max_message_size(message: str) -> bool:
    """True si el cuerpo (antes de comprimir) supera el límite OMF de 192 KB."""
    return len(message.encode("utf-8")) > OMF_MAX_MESSAGE_SIZE_BYTES


class OmfMessageEncoder:
    """Genera los mensajes OMF de un dispositivo."""

    def __init__(self, device_name: str):
        self._device = device_name

    @property
    def device_name(self) -> str:
        return self._device

    # ------------------------------------------------------------------
    # Type
    # ------------------------------------------------------------------

    def device_type(self) -> TypeDefinition:
        return TypeDefinition(
            id=DEVICE_TYPE_ID,
            classification="static",
            properties={NAME_PROPERTY: TypeProperty(type="string", isindex=True)},
        )

    def asset_type(self, asset: Asset) -> TypeDefinition:
        return TypeDefinition(
            id=asset.type_id(self._device),
            description=ASSET_TYPE_DESCRIPTION,
            classification="static",
            properties={NAME_PROPERTY: TypeProperty(type="string", isindex=True)},
        )

    def channel_type(self, channel: Channel) -> TypeDefinition:
        return TypeDefinition(
            id=channel.container_id(self._device),
            classification="dynamic",
            properties={
                channel.property_name: TypeProperty(type=omf_property_type(channel)),
                INDEX_PROPERTY: TypeProperty(type="string", format="date-time", isindex=True),
            },
        )

    def type_entries(self, snapshot: SchemaSnapshot) -> List[TypeDefinition]:
        entries = [self.device_type()]
        for asset in snapshot:
            entries.append(self.asset_type(asset))
            for channel in asset.channels.values():
                entries.append(self.channel_type(channel))
        return entries

    def type_message(self, snapshot: SchemaSnapshot) -> str:
        return to_json(self.type_entries(snapshot))

    # ------------------------------------------------------------------
    # Container
    # ------------------------------------------------------------------

    def container_entries(self, snapshot: SchemaSnapshot) -> List[ContainerDefinition]:
        entries = []
        for asset in snapshot:
            for channel in asset.channels.values():
                container_id = channel.container_id(self._device)
                entries.append(ContainerDefinition(id=container_id, typeid=container_id))
        return entries

    def container_message(self, snapshot: SchemaSnapshot) -> str:
        return to_json(self.container_entries(snapshot))

    # ------------------------------------------------------------------
    # Data: elementos y links
    # ------------------------------------------------------------------

    def root_entries(self) -> List[BaseModel]:
        """Elemento del dispositivo y su link bajo _ROOT."""
        element = AssetElement(
            typeid=DEVICE_TYPE_ID,
            values=[{NAME_PROPERTY: self._device}],
        )
        link = LinkMessage(
            typeid=LINK_TYPE_ID,
            values=[
                LinkValue(
                    source=LinkEndpoint(typeid=DEVICE_TYPE_ID, index=ROOT_INDEX),
                    target=LinkEndpoint(typeid=DEVICE_TYPE_ID, index=self._device),
                )
            ],
        )
        return [element, link]

    def asset_link_entries(self, asset: Asset) -> List[BaseModel]:
        """Elemento del asset, link al dispositivo y links a sus containers."""
        type_id = asset.type_id(self._device)
        element = AssetElement(typeid=type_id, values=[{NAME_PROPERTY: type_id}])

        values = [
            LinkValue(
                source=LinkEndpoint(typeid=DEVICE_TYPE_ID, index=self._device),
                target=LinkEndpoint(typeid=type_id, index=type_id),
            )
        ]
        asset_endpoint = LinkEndpoint(typeid=type_id, index=type_id)
        for channel in asset.channels.values():
            values.append(
                LinkValue(
                    source=asset_endpoint,
                    target=LinkEndpoint(containerid=channel.container_id(self._device)),
                )
            )

        return [element, LinkMessage(typeid=LINK_TYPE_ID, values=values)]

    def link_entries(self, snapshot: SchemaSnapshot) -> List[BaseModel]:
        entries = self.root_entries()
        for asset in snapshot:
            entries.extend(self.asset_link_entries(asset))
        return entries

    def links_message(self, snapshot: SchemaSnapshot) -> str:
        return to_json(self.link_entries(snapshot))

    # ------------------------------------------------------------------
    # Data: valores
    # ------------------------------------------------------------------

    def data_entry(self, channel: Channel) -> DataValuesMessage:
        return DataValuesMessage(
            containerid=channel.container_id(self._device),
            values=[
                {
                    INDEX_PROPERTY: format_timestamp(channel.timestamp),
                    channel.property_name: omf_value(channel),
                }
            ],
        )

    def data_entries(self, snapshot: SchemaSnapshot) -> List[DataValuesMessage]:
        entries = []
        for asset in snapshot:
            for channel in asset.channels.values():
                if channel.typed_value.is_special_floating_point():
                    continue
                entries.append(self.data_entry(channel))
        return entries

    def data_values_message(self, snapshot: SchemaSnapshot) -> str:
        return to_json(self.data_entries(snapshot))
