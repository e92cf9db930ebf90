from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from flow_app.services.flow_api_client import (
    FlowApiClient,
    FlowApiError,
    FlowApiUnavailableError,
    FlowSaveResponse,
)
from flow_engine.graph.models.graph_model import GraphModel
from flow_engine.utils.logging.logger import log_warn
from flow_engine.validate.validation_result import ValidationResult


@dataclass(frozen=True, slots=True)
class FlowEditorSaveResult:
    success: bool
    validation_result: ValidationResult | None = None
    response: FlowSaveResponse | None = None
    error_message: str | None = None
    error_code: str | None = None


class FlowEditorSaveService:
    """流程保存服务：先校验、再持久化（不发射 UI 信号）。

    - 校验失败（服务不可用等）不阻止保存，仅视为"无校验结果"；
    - 校验存在错误同样允许保存（草稿），由保存状态投影器呈现为 draft；
    - 保存成功后把服务端返回的版本号与运行状态回写到模型。

    `save_definition` 只接触流程定义快照，可在后台线程执行；
    `apply_to_model` 修改图模型，必须在 UI 线程执行。
    """

    def save_definition(self, *, api: FlowApiClient, definition: Dict[str, Any]) -> FlowEditorSaveResult:
        flow_id = str(definition.get("id") or "")
        if not flow_id:
            return FlowEditorSaveResult(
                success=False,
                error_code="incomplete_data",
                error_message=f"流程数据不完整，取消保存：id={definition.get('id')!r}, name={definition.get('name')!r}",
            )

        validation_result: ValidationResult | None
        try:
            validation_result = api.validate_flow(flow_id, definition)
        except FlowApiError as exc:
            log_warn("[SAVE] 保存前校验失败，继续保存（无校验结果）: flow_id={} error={}", flow_id, exc.message)
            validation_result = None

        try:
            response = api.save_flow(flow_id, definition)
        except FlowApiUnavailableError as exc:
            return FlowEditorSaveResult(
                success=False,
                validation_result=validation_result,
                error_code="unavailable",
                error_message=exc.message,
            )
        except FlowApiError as exc:
            return FlowEditorSaveResult(
                success=False,
                validation_result=validation_result,
                error_code="conflict" if exc.status_code == 409 else "save_failed",
                error_message=exc.message,
            )

        return FlowEditorSaveResult(success=True, validation_result=validation_result, response=response)

    def apply_to_model(self, *, model: GraphModel, result: FlowEditorSaveResult) -> None:
        if not result.success or result.response is None:
            return
        model.version = int(result.response.version)
        model.runtime_state = result.response.runtime_state

    def save_flow(self, *, api: FlowApiClient, model: GraphModel) -> FlowEditorSaveResult:
        """同步保存（脚本/测试场景）。"""
        result = self.save_definition(api=api, definition=model.serialize())
        self.apply_to_model(model=model, result=result)
        return result
