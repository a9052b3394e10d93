"""Encoding layer - Mensajes OMF Type / Container / Data."""

from .encoder import (
    DEVICE_TYPE_ID,
    OMF_MAX_MESSAGE_SIZE_BYTES,
    OmfMessageEncoder,
    format_timestamp,
    is_larger_than_max_message_size,
    omf_value,
)

__all__ = [
    "DEVICE_TYPE_ID",
    "OMF_MAX_MESSAGE_SIZE_BYTES",
    "OmfMessageEncoder",
    "format_timestamp",
    "is_larger_than_max_message_size",
    "omf_value",
]
