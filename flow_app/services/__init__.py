from .flow_api_client import (
    DeploymentOperation,
    FlowApiClient,
    FlowApiError,
    FlowApiUnavailableError,
    FlowSaveResponse,
    FlowValidationFailedError,
    RuntimeTransition,
    normalize_flow_payload,
)

__all__ = [
    "DeploymentOperation",
    "FlowApiClient",
    "FlowApiError",
    "FlowApiUnavailableError",
    "FlowSaveResponse",
    "FlowValidationFailedError",
    "RuntimeTransition",
    "normalize_flow_payload",
]
