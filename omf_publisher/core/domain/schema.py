"""Modelo de esquema: Channel, Asset y SchemaSnapshot.

Un SchemaSnapshot es un mapa ordenado nombre de asset → Asset, y cada Asset
es dueño exclusivo de su mapa ordenado nombre de canal → Channel. Las claves
son siempre nombres ya saneados.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional

from .typed_value import DataType, TypedValue


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Channel:
    """Señal temporal de un asset.

    La identidad es (asset_name, name). El container id se calcula, no se
    almacena.
    """

    name: str
    asset_name: str
    typed_value: TypedValue
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def data_type(self) -> DataType:
        return self.typed_value.type

    @property
    def property_name(self) -> str:
        """Nombre de propiedad visible en el protocolo: <canal>_<TIPO>."""
        return f"{self.name}_{self.data_type.value}"

    def container_id(self, device_name: str) -> str:
        """<device>_<asset>_<canal>_<TIPO>; también es el type id dinámico."""
        return f"{device_name}_{self.asset_name}_{self.name}_{self.data_type.value}"

    def set_value(self, typed_value: TypedValue, timestamp: datetime) -> None:
        self.typed_value = typed_value
        self.timestamp = timestamp

    def structural_copy(self) -> "Channel":
        """Copia de identidad + tipo, para el registro de esquema conocido."""
        return Channel(
            name=self.name,
            asset_name=self.asset_name,
            typed_value=self.typed_value,
            timestamp=self.timestamp,
        )


@dataclass
class Asset:
    """Agrupación de canales de una entidad física o lógica."""

    name: str
    channels: Dict[str, Channel] = field(default_factory=dict)

    def type_id(self, device_name: str) -> str:
        return f"{device_name}_{self.name}"

    def get_or_create_channel(self, channel_name: str, typed_value: TypedValue) -> Channel:
        channel = self.channels.get(channel_name)
        if channel is None:
            channel = Channel(name=channel_name, asset_name=self.name, typed_value=typed_value)
            self.channels[channel_name] = channel
        return channel

    def bare_copy(self) -> "Asset":
        """Copia sin canales."""
        return Asset(name=self.name)


class SchemaSnapshot:
    """Mapa ordenado nombre de asset → Asset de un lote (o del baseline)."""

    def __init__(self, assets: Optional[Dict[str, Asset]] = None):
        self._assets: Dict[str, Asset] = dict(assets or {})

    def __iter__(self) -> Iterator[Asset]:
        return iter(self._assets.values())

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, asset_name: object) -> bool:
        return asset_name in self._assets

    def __eq__(self, other: object) -> bool:
        """Igualdad estructural: assets, canales y tipos. Ignora valores y timestamps."""
        if not isinstance(other, SchemaSnapshot):
            return NotImplemented
        return self.structure() == other.structure()

    def __repr__(self) -> str:
        return f"SchemaSnapshot(assets={len(self._assets)}, channels={self.channel_count})"

    @property
    def is_empty(self) -> bool:
        return not self._assets

    @property
    def channel_count(self) -> int:
        return sum(len(a.channels) for a in self._assets.values())

    def get_asset(self, asset_name: str) -> Optional[Asset]:
        return self._assets.get(asset_name)

    def add_asset(self, asset: Asset) -> Asset:
        self._assets[asset.name] = asset
        return asset

    def get_or_create_asset(self, asset_name: str) -> Asset:
        asset = self._assets.get(asset_name)
        if asset is None:
            asset = self.add_asset(Asset(name=asset_name))
        return asset

    def copy_structure(self) -> "SchemaSnapshot":
        """Copia profunda de assets y canales (identidad + tipo)."""
        copy = SchemaSnapshot()
        for asset in self._assets.values():
            new_asset = copy.add_asset(asset.bare_copy())
            for name, channel in asset.channels.items():
                new_asset.channels[name] = channel.structural_copy()
        return copy

    def structure(self) -> Dict[str, Dict[str, DataType]]:
        """Vista comparable: asset → canal → tipo. Ignora valores y timestamps."""
        return {
            asset.name: {name: ch.data_type for name, ch in asset.channels.items()}
            for asset in self._assets.values()
        }

    def describe(self) -> str:
        """Resumen legible para logs de error."""
        lines = []
        for index, asset in enumerate(self._assets.values(), start=1):
            lines.append(f"Asset {index}: {asset.name}")
            for channel in asset.channels.values():
                lines.append(
                    f"  {channel.name} [{channel.data_type.value}] = "
                    f"{channel.typed_value.value!r} @ {channel.timestamp.isoformat()}"
                )
        return "\n".join(lines)
