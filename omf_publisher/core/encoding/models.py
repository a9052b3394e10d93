"""Modelos de mensajes OMF 1.0 (Type, Container, Data/Link).

Los campos opcionales en None no se serializan (exclude_none).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TypeProperty(BaseModel):
    """Una propiedad dentro de una definición de Type."""

    type: str
    format: Optional[str] = None
    isindex: Optional[bool] = None
    isname: Optional[bool] = None
    items: Optional["TypeProperty"] = None
    maxItems: Optional[int] = None


class TypeDefinition(BaseModel):
    """Entrada de un mensaje ``messagetype: type``."""

    id: str
    description: Optional[str] = None
    type: str = "object"
    classification: str
    properties: Dict[str, TypeProperty]
    version: Optional[str] = None


class ContainerDefinition(BaseModel):
    """Entrada de un mensaje ``messagetype: container``."""

    id: str
    typeid: str
    typeVersion: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, str]] = None
    indexes: Optional[List[str]] = None


class LinkEndpoint(BaseModel):
    """Source o Target de un link: (typeid, index) o containerid."""

    typeid: Optional[str] = None
    index: Optional[str] = None
    containerid: Optional[str] = None
    typeversion: Optional[str] = None


class LinkValue(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: LinkEndpoint = Field(alias="Source")
    target: LinkEndpoint = Field(alias="Target")


class LinkMessage(BaseModel):
    """Mensaje de datos ``__Link``: jerarquía de assets y containers."""

    typeid: str = "__Link"
    values: List[LinkValue]


class AssetElement(BaseModel):
    """Instancia de un Type estático (elemento de asset)."""

    typeid: str
    values: List[Dict[str, str]]


class DataValuesMessage(BaseModel):
    """Valores de un container dinámico."""

    containerid: str
    values: List[Dict[str, Any]]


TypeProperty.model_rebuild()
