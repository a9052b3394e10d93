"""Transport layer - Cliente HTTPS OMF."""

from .http_status import (
    ACCEPTED_STATUSES,
    LEGACY_ACCEPTED_STATUSES,
    HttpStatusCode,
    classify_status,
    http_status_to_error_log,
    is_accepted,
)
from .omf_client import Action, MessageType, OmfClient, compress_message

__all__ = [
    "ACCEPTED_STATUSES",
    "Action",
    "HttpStatusCode",
    "LEGACY_ACCEPTED_STATUSES",
    "MessageType",
    "OmfClient",
    "classify_status",
    "compress_message",
    "http_status_to_error_log",
    "is_accepted",
]
