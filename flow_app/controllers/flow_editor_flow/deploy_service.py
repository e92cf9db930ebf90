from __future__ import annotations

from dataclasses import dataclass

from flow_app.models.runtime_state import RuntimeStateInfo
from flow_app.services.flow_api_client import (
    DeploymentOperation,
    FlowApiClient,
    FlowApiError,
    FlowValidationFailedError,
)
from flow_engine.utils.logging.logger import log_info, log_warn
from flow_engine.validate.validation_result import ValidationResult


@dataclass(frozen=True, slots=True)
class FlowEditorDeployResult:
    success: bool
    operation: str
    runtime: RuntimeStateInfo
    validation_result: ValidationResult | None = None
    error_message: str | None = None
    error_code: str | None = None


class FlowEditorDeployService:
    """部署生命周期服务（deploy / start / stop / undeploy，不发射 UI 信号）。

    - 部署因结构校验失败被拒绝：原样返回服务端校验结果，运行状态回到 not_deployed；
    - 其他失败：运行状态进入 error，并携带错误信息；
    - 成功：按服务端返回的 runtime_state 迁移。

    只返回新的运行状态，不修改图模型，可在后台线程执行。
    """

    def run_operation(
        self,
        *,
        api: FlowApiClient,
        flow_id: str,
        operation: DeploymentOperation,
        runtime: RuntimeStateInfo,
    ) -> FlowEditorDeployResult:
        if not runtime.can_run_operation(operation):
            return FlowEditorDeployResult(
                success=False,
                operation=operation,
                runtime=runtime,
                error_code="invalid_runtime_state",
                error_message=f"当前运行状态 {runtime.state} 不允许执行 {operation}",
            )

        try:
            transition = api.run_deployment_operation(flow_id, operation)
        except FlowValidationFailedError as exc:
            log_warn("[DEPLOY] {} 被校验拒绝: flow_id={} errors={}", operation, flow_id, exc.validation_result.error_count)
            return FlowEditorDeployResult(
                success=False,
                operation=operation,
                runtime=runtime.transitioned("not_deployed", message=exc.message),
                validation_result=exc.validation_result,
                error_code="validation_failed",
                error_message=exc.message,
            )
        except FlowApiError as exc:
            log_warn("[DEPLOY] {} 失败: flow_id={} error={}", operation, flow_id, exc.message)
            return FlowEditorDeployResult(
                success=False,
                operation=operation,
                runtime=runtime.transitioned("error", message=exc.message),
                error_code="operation_failed",
                error_message=exc.message,
            )

        log_info("[DEPLOY] {} 完成: flow_id={} runtime_state={}", operation, flow_id, transition.runtime_state)
        return FlowEditorDeployResult(
            success=True,
            operation=operation,
            runtime=runtime.transitioned(transition.runtime_state),
        )
