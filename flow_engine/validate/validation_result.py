"""校验服务返回的结果对象（值对象，只读）。

校验服务与本客户端独立演进，因此反序列化边界上所有字段都可缺省：
- 缺失或为 null 的列表一律按空列表处理；
- 未知的状态值按 errors / warnings 是否非空推导；
- 缺失 discovered_connections 视为"没有自动连线"。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from flow_engine.graph.models.graph_model import PortDirection


class ValidationStatus(str, Enum):
    VALID = "valid"
    WARNINGS = "warnings"
    ERRORS = "errors"


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


def _as_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    return []


def _as_mapping(value: Any) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value
    return {}


@dataclass(frozen=True)
class ValidationIssue:
    severity: IssueSeverity
    component_name: str
    message: str
    port_name: Optional[str] = None
    issue_type: str = ""
    suggestions: Tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], default_severity: IssueSeverity) -> "ValidationIssue":
        severity_text = str(payload.get("severity") or "").lower()
        severity = IssueSeverity(severity_text) if severity_text in ("error", "warning") else default_severity
        port_name = payload.get("port_name")
        return cls(
            severity=severity,
            component_name=str(payload.get("component_name") or ""),
            message=str(payload.get("message") or ""),
            port_name=str(port_name) if port_name else None,
            issue_type=str(payload.get("type") or ""),
            suggestions=tuple(str(item) for item in _as_list(payload.get("suggestions"))),
        )


@dataclass(frozen=True)
class ValidatedPort:
    name: str
    direction: PortDirection
    required: bool = False
    port_type: str = ""
    pattern: str = ""
    description: str = ""
    connection_id: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], default_direction: PortDirection) -> "ValidatedPort":
        direction_text = str(payload.get("direction") or "").lower()
        direction = PortDirection(direction_text) if direction_text in ("input", "output") else default_direction
        return cls(
            name=str(payload.get("name") or ""),
            direction=direction,
            required=bool(payload.get("required", False)),
            port_type=str(payload.get("type") or ""),
            pattern=str(payload.get("pattern") or ""),
            description=str(payload.get("description") or ""),
            connection_id=str(payload.get("connection_id") or ""),
        )


@dataclass(frozen=True)
class ValidatedNode:
    id: str
    input_ports: Tuple[ValidatedPort, ...] = ()
    output_ports: Tuple[ValidatedPort, ...] = ()
    name: str = ""
    component_type: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ValidatedNode":
        return cls(
            id=str(payload.get("id") or ""),
            input_ports=tuple(
                ValidatedPort.from_payload(_as_mapping(item), PortDirection.INPUT)
                for item in _as_list(payload.get("input_ports"))
            ),
            output_ports=tuple(
                ValidatedPort.from_payload(_as_mapping(item), PortDirection.OUTPUT)
                for item in _as_list(payload.get("output_ports"))
            ),
            name=str(payload.get("name") or ""),
            component_type=str(payload.get("type") or ""),
        )


@dataclass(frozen=True)
class DiscoveredConnection:
    source_node_id: str
    source_port: str
    target_node_id: str
    target_port: str
    pattern: str = ""

    @property
    def endpoint_key(self) -> Tuple[str, str, str, str]:
        return (self.source_node_id, self.source_port, self.target_node_id, self.target_port)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DiscoveredConnection":
        return cls(
            source_node_id=str(payload.get("source_node_id") or ""),
            source_port=str(payload.get("source_port") or ""),
            target_node_id=str(payload.get("target_node_id") or ""),
            target_port=str(payload.get("target_port") or ""),
            pattern=str(payload.get("pattern") or ""),
        )

    @property
    def is_complete(self) -> bool:
        return all(self.endpoint_key)


@dataclass(frozen=True)
class ValidationResult:
    status: ValidationStatus = ValidationStatus.VALID
    errors: Tuple[ValidationIssue, ...] = ()
    warnings: Tuple[ValidationIssue, ...] = ()
    nodes: Tuple[ValidatedNode, ...] = ()
    discovered_connections: Tuple[DiscoveredConnection, ...] = ()

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def has_errors(self) -> bool:
        return self.status == ValidationStatus.ERRORS

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "ValidationResult":
        data = _as_mapping(payload)
        errors = tuple(
            ValidationIssue.from_payload(_as_mapping(item), IssueSeverity.ERROR)
            for item in _as_list(data.get("errors"))
        )
        warnings = tuple(
            ValidationIssue.from_payload(_as_mapping(item), IssueSeverity.WARNING)
            for item in _as_list(data.get("warnings"))
        )
        status_text = str(data.get("validation_status") or data.get("status") or "").lower()
        if status_text in {status.value for status in ValidationStatus}:
            status = ValidationStatus(status_text)
        elif errors:
            status = ValidationStatus.ERRORS
        elif warnings:
            status = ValidationStatus.WARNINGS
        else:
            status = ValidationStatus.VALID
        return cls(
            status=status,
            errors=errors,
            warnings=warnings,
            nodes=tuple(ValidatedNode.from_payload(_as_mapping(item)) for item in _as_list(data.get("nodes"))),
            discovered_connections=tuple(
                DiscoveredConnection.from_payload(_as_mapping(item))
                for item in _as_list(data.get("discovered_connections"))
            ),
        )

    def to_payload(self) -> Dict[str, Any]:
        """序列化回后端字段命名（用于日志与测试夹具）。"""
        return {
            "validation_status": self.status.value,
            "errors": [_issue_to_payload(issue) for issue in self.errors],
            "warnings": [_issue_to_payload(issue) for issue in self.warnings],
            "nodes": [
                {
                    "id": node.id,
                    "name": node.name,
                    "type": node.component_type,
                    "input_ports": [_port_to_payload(port) for port in node.input_ports],
                    "output_ports": [_port_to_payload(port) for port in node.output_ports],
                }
                for node in self.nodes
            ],
            "discovered_connections": [
                {
                    "source_node_id": connection.source_node_id,
                    "source_port": connection.source_port,
                    "target_node_id": connection.target_node_id,
                    "target_port": connection.target_port,
                    "pattern": connection.pattern,
                }
                for connection in self.discovered_connections
            ],
        }


def _issue_to_payload(issue: ValidationIssue) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "type": issue.issue_type,
        "severity": issue.severity.value,
        "component_name": issue.component_name,
        "message": issue.message,
        "suggestions": list(issue.suggestions),
    }
    if issue.port_name:
        payload["port_name"] = issue.port_name
    return payload


def _port_to_payload(port: ValidatedPort) -> Dict[str, Any]:
    return {
        "name": port.name,
        "direction": port.direction.value,
        "type": port.port_type,
        "required": port.required,
        "pattern": port.pattern,
        "description": port.description,
        "connection_id": port.connection_id,
    }


def format_error_count(count: int) -> str:
    """错误数文本：1 error / 3 errors。"""
    return f"{int(count)} error" if int(count) == 1 else f"{int(count)} errors"


__all__: List[str] = [
    "ValidationStatus",
    "IssueSeverity",
    "ValidationIssue",
    "ValidatedPort",
    "ValidatedNode",
    "DiscoveredConnection",
    "ValidationResult",
    "format_error_count",
]
