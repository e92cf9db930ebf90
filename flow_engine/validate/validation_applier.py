"""把一次校验结果合并进图模型。

合并而非替换：结果中未提到的节点与连线保持原状，避免覆盖用户在请求发出后、
响应落地前做出的编辑。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from flow_engine.graph.models.graph_model import (
    ConnectionModel,
    GraphModel,
    NodeModel,
    PortInfo,
    ValidationState,
)
from flow_engine.utils.logging.logger import log_debug
from flow_engine.validate.validation_result import (
    ValidatedPort,
    ValidationIssue,
    ValidationResult,
)


@dataclass(frozen=True, slots=True)
class ValidationApplyReport:
    updated_node_ids: tuple[str, ...]
    skipped_node_ids: tuple[str, ...]
    error_connection_ids: tuple[str, ...]
    warning_connection_ids: tuple[str, ...]


def _issue_matches_node(issue: ValidationIssue, node: Optional[NodeModel], node_id: str) -> bool:
    component_name = issue.component_name
    if not component_name:
        return False
    if component_name == node_id:
        return True
    return node is not None and component_name == node.name


def _issue_matches_port(issue: ValidationIssue, node: Optional[NodeModel], node_id: str, port_name: str) -> bool:
    if not _issue_matches_node(issue, node, node_id):
        return False
    return issue.port_name is None or issue.port_name == port_name


def _first_matching_issue(
    issues: Sequence[ValidationIssue],
    node: Optional[NodeModel],
    node_id: str,
    port_name: str,
) -> Optional[ValidationIssue]:
    for issue in issues:
        if _issue_matches_port(issue, node, node_id, port_name):
            return issue
    return None


def _build_ports(
    ports: Iterable[ValidatedPort],
    node: NodeModel,
    result: ValidationResult,
) -> List[PortInfo]:
    built: List[PortInfo] = []
    for port in ports:
        if _first_matching_issue(result.errors, node, node.id, port.name) is not None:
            state = ValidationState.ERROR
        elif _first_matching_issue(result.warnings, node, node.id, port.name) is not None:
            state = ValidationState.WARNING
        else:
            state = ValidationState.VALID
        built.append(
            PortInfo(
                name=port.name,
                direction=port.direction,
                required=port.required,
                validation_state=state,
                port_type=port.port_type,
                pattern=port.pattern,
                description=port.description,
            )
        )
    return built


def _match_connection(
    connection: ConnectionModel,
    issues: Sequence[ValidationIssue],
    model: GraphModel,
) -> Optional[ValidationIssue]:
    endpoints = (
        (connection.source_node_id, connection.source_port),
        (connection.target_node_id, connection.target_port),
    )
    for node_id, port_name in endpoints:
        issue = _first_matching_issue(issues, model.nodes.get(node_id), node_id, port_name)
        if issue is not None:
            return issue
    return None


def apply_validation_result(model: GraphModel, result: ValidationResult) -> ValidationApplyReport:
    updated_node_ids: List[str] = []
    skipped_node_ids: List[str] = []
    for validated_node in result.nodes:
        node = model.nodes.get(validated_node.id)
        if node is None:
            # 请求发出后节点已被用户删除
            skipped_node_ids.append(validated_node.id)
            continue
        node.input_ports = _build_ports(
            validated_node.input_ports,
            node,
            result,
        )
        node.output_ports = _build_ports(
            validated_node.output_ports,
            node,
            result,
        )
        updated_node_ids.append(node.id)

    error_connection_ids: List[str] = []
    warning_connection_ids: List[str] = []
    for connection in model.connections.values():
        error_issue = _match_connection(connection, result.errors, model)
        if error_issue is not None:
            connection.validation_state = ValidationState.ERROR
            connection.validation_message = error_issue.message
            error_connection_ids.append(connection.id)
            continue
        warning_issue = _match_connection(connection, result.warnings, model)
        if warning_issue is not None:
            connection.validation_state = ValidationState.WARNING
            connection.validation_message = warning_issue.message
            warning_connection_ids.append(connection.id)

    log_debug(
        "VALIDATOR_VERBOSE",
        "[VALIDATE][Applier] status={} updated_nodes={} skipped_nodes={} error_edges={} warning_edges={}",
        result.status.value,
        len(updated_node_ids),
        len(skipped_node_ids),
        len(error_connection_ids),
        len(warning_connection_ids),
    )
    return ValidationApplyReport(
        updated_node_ids=tuple(updated_node_ids),
        skipped_node_ids=tuple(skipped_node_ids),
        error_connection_ids=tuple(error_connection_ids),
        warning_connection_ids=tuple(warning_connection_ids),
    )


__all__ = ["ValidationApplyReport", "apply_validation_result"]
