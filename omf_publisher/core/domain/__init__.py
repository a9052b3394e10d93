"""Domain layer - Valores tipados, nombres, esquema y errores."""

from .errors import (
    ConfigurationIncomplete,
    MissingAssetName,
    OmfPublisherError,
    RejectedByReceiver,
    TransportError,
    UnsupportedValueType,
)
from .naming import MAX_OMF_NAME_LENGTH, sanitize_name
from .schema import Asset, Channel, SchemaSnapshot
from .typed_value import DataType, TypedValue, new_typed_value

__all__ = [
    "Asset",
    "Channel",
    "ConfigurationIncomplete",
    "DataType",
    "MAX_OMF_NAME_LENGTH",
    "MissingAssetName",
    "OmfPublisherError",
    "RejectedByReceiver",
    "SchemaSnapshot",
    "TransportError",
    "TypedValue",
    "UnsupportedValueType",
    "new_typed_value",
    "sanitize_name",
]
