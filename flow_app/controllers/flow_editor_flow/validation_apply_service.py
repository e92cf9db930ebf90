from __future__ import annotations

from flow_engine.graph.models.graph_model import GraphModel
from flow_engine.utils.logging.logger import log_debug
from flow_engine.validate.auto_connection_reconciler import reconcile_auto_connections
from flow_engine.validate.validation_applier import ValidationApplyReport, apply_validation_result
from flow_engine.validate.validation_result import ValidationResult


class FlowEditorValidationApplyService:
    """把校验结果落到图模型：先对账自动连线，再合并端口/连线状态。"""

    def apply(self, *, model: GraphModel, result: ValidationResult) -> ValidationApplyReport:
        # 请求发出后被删除的节点不能再出现在推断连线里，否则会随下一次保存写回后端
        discovered = [
            connection
            for connection in result.discovered_connections
            if connection.source_node_id in model.nodes and connection.target_node_id in model.nodes
        ]
        dropped_count = len(result.discovered_connections) - len(discovered)
        if dropped_count:
            log_debug(
                "VALIDATOR_VERBOSE",
                "[VALIDATE][Apply] 忽略 {} 条端点已不存在的推断连线",
                dropped_count,
            )
        model.replace_connections(reconcile_auto_connections(model.connections.values(), discovered))
        return apply_validation_result(model, result)
