from .connection_ids import (
    AUTO_CONNECTION_ID_PREFIX,
    MANUAL_CONNECTION_ID_PREFIX,
    is_auto_connection_id,
    make_auto_connection_id,
    make_manual_connection_id,
)
from .signature import compute_model_signature, compute_structure_signature

__all__ = [
    "AUTO_CONNECTION_ID_PREFIX",
    "MANUAL_CONNECTION_ID_PREFIX",
    "is_auto_connection_id",
    "make_auto_connection_id",
    "make_manual_connection_id",
    "compute_model_signature",
    "compute_structure_signature",
]
