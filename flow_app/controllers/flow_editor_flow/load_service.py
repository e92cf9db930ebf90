from __future__ import annotations

from dataclasses import dataclass

from flow_app.services.flow_api_client import FlowApiClient, FlowApiError, FlowApiUnavailableError
from flow_engine.graph.models.graph_model import GraphModel


@dataclass(frozen=True, slots=True)
class FlowEditorLoadResult:
    success: bool
    model: GraphModel | None = None
    error_message: str | None = None
    error_code: str | None = None


class FlowEditorLoadService:
    """流程加载服务：从流程服务读取定义并反序列化为图模型（不发射 UI 信号）。"""

    def load_flow(self, *, api: FlowApiClient, flow_id: str) -> FlowEditorLoadResult:
        if not str(flow_id or "").strip():
            return FlowEditorLoadResult(success=False, error_code="incomplete_data", error_message="流程ID为空，取消加载")
        try:
            flow_data = api.get_flow(str(flow_id))
        except FlowApiUnavailableError as exc:
            return FlowEditorLoadResult(success=False, error_code="unavailable", error_message=exc.message)
        except FlowApiError as exc:
            return FlowEditorLoadResult(success=False, error_code="load_failed", error_message=exc.message)
        return FlowEditorLoadResult(success=True, model=GraphModel.deserialize(flow_data))
