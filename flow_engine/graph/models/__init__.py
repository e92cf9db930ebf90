from .graph_model import (
    ConnectionModel,
    ConnectionProvenance,
    ConnectionRejectedError,
    GraphEditRejectedError,
    GraphModel,
    NodeModel,
    PortDirection,
    PortInfo,
    ValidationState,
    RUNTIME_STATE_DEPLOYED_STOPPED,
    RUNTIME_STATE_ERROR,
    RUNTIME_STATE_NOT_DEPLOYED,
    RUNTIME_STATE_RUNNING,
)

__all__ = [
    "ConnectionModel",
    "ConnectionProvenance",
    "ConnectionRejectedError",
    "GraphEditRejectedError",
    "GraphModel",
    "NodeModel",
    "PortDirection",
    "PortInfo",
    "ValidationState",
    "RUNTIME_STATE_DEPLOYED_STOPPED",
    "RUNTIME_STATE_ERROR",
    "RUNTIME_STATE_NOT_DEPLOYED",
    "RUNTIME_STATE_RUNNING",
]
