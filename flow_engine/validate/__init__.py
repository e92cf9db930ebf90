from .validation_result import (
    DiscoveredConnection,
    IssueSeverity,
    ValidatedNode,
    ValidatedPort,
    ValidationIssue,
    ValidationResult,
    ValidationStatus,
    format_error_count,
)
from .auto_connection_reconciler import reconcile_auto_connections
from .validation_applier import ValidationApplyReport, apply_validation_result

__all__ = [
    "DiscoveredConnection",
    "IssueSeverity",
    "ValidatedNode",
    "ValidatedPort",
    "ValidationIssue",
    "ValidationResult",
    "ValidationStatus",
    "format_error_count",
    "reconcile_auto_connections",
    "ValidationApplyReport",
    "apply_validation_result",
]
