"""流程编辑控制器 - 管理流程图的编辑、校验、保存与部署

治理约束（重要）：
- 本文件仅负责：依赖注入、Qt 信号转发、调用流程服务；
- 跨域链路（load/save/deploy/validation apply）下沉到 `flow_app.controllers.flow_editor_flow`；
- 保存状态统一由投影器收敛为单一真源；远端校验调度统一由调度桥接负责；
- 图模型只在 UI 线程被修改（校验、保存与部署请求在后台线程执行，结果经信号回到 UI 线程）。
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from PyQt6 import QtCore

from flow_app.controllers.background_task import BackgroundTaskRunner
from flow_app.controllers.flow_editor_flow import (
    FlowEditorDeployResult,
    FlowEditorDeployService,
    FlowEditorLoadService,
    FlowEditorSaveResult,
    FlowEditorSaveService,
    FlowEditorValidationApplyService,
    FlowSaveStateProjector,
)
from flow_app.controllers.validation_scheduler import ValidationSchedulerBridge
from flow_app.models.runtime_state import RuntimeStateInfo, normalize_runtime_state
from flow_app.models.save_state import SaveState
from flow_app.services.flow_api_client import DeploymentOperation, FlowApiClient
from flow_engine.configs.settings import settings
from flow_engine.graph.models.graph_model import ConnectionModel, GraphEditRejectedError, GraphModel, NodeModel
from flow_engine.graph.signature import compute_model_signature
from flow_engine.history.flow_history import FlowHistory
from flow_engine.layout import LayoutConfig, LayoutResult, LayoutService
from flow_engine.utils.logging.logger import log_debug, log_info, log_warn
from flow_engine.validate.validation_result import ValidationResult


class FlowEditorController(QtCore.QObject):
    """流程编辑管理控制器"""

    # 信号定义
    flow_loaded = QtCore.pyqtSignal(str)  # flow_id
    graph_changed = QtCore.pyqtSignal()
    save_state_changed = QtCore.pyqtSignal(object)  # SaveState
    validation_applied = QtCore.pyqtSignal(object)  # ValidationApplyReport
    runtime_state_changed = QtCore.pyqtSignal(object)  # RuntimeStateInfo
    deploy_validation_failed = QtCore.pyqtSignal(object)  # ValidationResult
    save_finished = QtCore.pyqtSignal(object)  # FlowEditorSaveResult
    deployment_finished = QtCore.pyqtSignal(object)  # FlowEditorDeployResult

    def __init__(
        self,
        api: FlowApiClient,
        *,
        model: GraphModel | None = None,
        debounce_ms: Optional[int] = None,
        parent: Optional[QtCore.QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._api = api
        self.model: GraphModel = model if model is not None else GraphModel()

        self._load_service = FlowEditorLoadService()
        self._save_service = FlowEditorSaveService()
        self._deploy_service = FlowEditorDeployService()
        self._validation_apply_service = FlowEditorValidationApplyService()

        self._save_state_projector = FlowSaveStateProjector()
        self._history = FlowHistory(int(getattr(settings, "FLOW_HISTORY_MAX_SIZE", 10)))
        self.runtime = RuntimeStateInfo(state=normalize_runtime_state(self.model.runtime_state))
        self._save_in_progress: bool = False
        self._deployment_in_progress: bool = False
        self._deploy_after_save: bool = False
        self._task_sequence: int = 0
        self._last_validation_result: ValidationResult | None = None

        self._validation_scheduler = ValidationSchedulerBridge(
            signature_provider=self.current_signature,
            payload_provider=self.model_payload,
            validator=self._validate_payload,
            debounce_ms=debounce_ms,
            parent=self,
        )
        self._validation_scheduler.validation_result_ready.connect(self._on_validation_result_ready)
        # 保存与部署生命周期的网络往返
        self._task_runner = BackgroundTaskRunner(self)

    # === 只读访问 ===

    @property
    def save_state(self) -> SaveState:
        return self._save_state_projector.derive()

    @property
    def history(self) -> FlowHistory:
        return self._history

    @property
    def validation_scheduler(self) -> ValidationSchedulerBridge:
        return self._validation_scheduler

    @property
    def last_validation_result(self) -> ValidationResult | None:
        return self._last_validation_result

    def current_signature(self) -> str:
        return compute_model_signature(self.model)

    def model_payload(self) -> Dict[str, Any]:
        return self.model.serialize()

    def _validate_payload(self, payload: Dict[str, Any]) -> ValidationResult:
        # 在后台线程调用：只使用请求体快照，不访问图模型
        return self._api.validate_flow(str(payload.get("id") or ""), payload)

    # === 加载 ===

    def load_flow(self, model: GraphModel) -> None:
        self.model = model
        self.runtime = RuntimeStateInfo(state=normalize_runtime_state(model.runtime_state))
        self._last_validation_result = None
        self._history.clear()
        self._history.push(model.serialize())
        self._validation_scheduler.reset()
        self._validation_scheduler.set_enabled(bool(getattr(settings, "VALIDATION_AUTO_ENABLED", True)))

        log_info("[FLOW] 加载流程: flow_id={} nodes={} connections={}", model.flow_id, len(model.nodes), len(model.connections))
        self.flow_loaded.emit(model.flow_id)
        self.save_state_changed.emit(self._save_state_projector.on_flow_loaded())
        self.runtime_state_changed.emit(self.runtime)
        self.graph_changed.emit()
        # 加载后立即调度一次校验，以获得端口元数据与自动连线
        self._validation_scheduler.notify_graph_mutated()

    def open_flow(self, flow_id: str) -> bool:
        result = self._load_service.load_flow(api=self._api, flow_id=flow_id)
        if not result.success or result.model is None:
            log_warn("[FLOW] 加载流程失败: flow_id={} error={}", flow_id, result.error_message)
            return False
        self.load_flow(result.model)
        return True

    # === 编辑 ===

    def _after_edit(self) -> None:
        self._history.push(self.model.serialize())
        self.save_state_changed.emit(self._save_state_projector.on_modified())
        self.graph_changed.emit()
        self._validation_scheduler.notify_graph_mutated()

    def add_node(
        self,
        component_type: str,
        name: str,
        position: Tuple[float, float] = (0.0, 0.0),
        config: Optional[Dict[str, Any]] = None,
        *,
        category: str = "",
    ) -> NodeModel:
        node = self.model.add_node(component_type, name, position, config, category=category)
        self._after_edit()
        return node

    def move_node(self, node_id: str, position: Tuple[float, float]) -> None:
        self.model.move_node(node_id, position)
        self._after_edit()

    def update_node_config(self, node_id: str, config: Dict[str, Any]) -> None:
        self.model.update_node_config(node_id, config)
        self._after_edit()

    def rename_node(self, node_id: str, name: str) -> None:
        self.model.rename_node(node_id, name)
        self._after_edit()

    def remove_node(self, node_id: str) -> list[str]:
        removed_connection_ids = self.model.remove_node(node_id)
        self._after_edit()
        return removed_connection_ids

    def connect_ports(
        self,
        source_node_id: str,
        source_port: str,
        target_node_id: str,
        target_port: str,
    ) -> ConnectionModel:
        connection = self.model.add_manual_connection(source_node_id, source_port, target_node_id, target_port)
        self._after_edit()
        return connection

    def disconnect(self, connection_id: str) -> bool:
        removed = self.model.remove_connection(connection_id)
        if removed:
            self._after_edit()
        return removed

    def _restore_snapshot(self, snapshot: Optional[Dict[str, Any]]) -> bool:
        if snapshot is None:
            return False
        self.model.restore_structure(snapshot)
        self.save_state_changed.emit(self._save_state_projector.on_modified())
        self.graph_changed.emit()
        self._validation_scheduler.notify_graph_mutated()
        return True

    def undo(self) -> bool:
        if self.model.is_structure_locked:
            raise GraphEditRejectedError("流程运行中，禁止撤销")
        return self._restore_snapshot(self._history.undo())

    def redo(self) -> bool:
        if self.model.is_structure_locked:
            raise GraphEditRejectedError("流程运行中，禁止重做")
        return self._restore_snapshot(self._history.redo())

    # === 布局 ===

    def compute_layout(self, config: Optional[LayoutConfig] = None) -> LayoutResult:
        return LayoutService.compute_model_layout(self.model, config)

    def apply_auto_layout(self, config: Optional[LayoutConfig] = None) -> LayoutResult:
        """自动排版：把布局坐标回写到节点位置（作为一次可撤销编辑）。"""
        result = self.compute_layout(config)
        for layout_node in result.nodes:
            self.model.move_node(layout_node.id, layout_node.position)
        if result.nodes:
            self._after_edit()
        return result

    # === 校验结果 ===

    def _apply_validation_result(self, result: ValidationResult) -> None:
        self._last_validation_result = result
        report = self._validation_apply_service.apply(model=self.model, result=result)
        self.validation_applied.emit(report)
        self.graph_changed.emit()
        # 自动连线不计入签名，此处通知不会再次调度校验
        self._validation_scheduler.notify_graph_mutated()

    def _on_validation_result_ready(self, result: object) -> None:
        if not isinstance(result, ValidationResult):
            log_warn("[VALIDATE] 忽略非预期的校验结果类型: {}", type(result).__name__)
            return
        self._apply_validation_result(result)

    # === 后台任务 ===

    def _next_task_id(self, kind: str) -> str:
        self._task_sequence += 1
        return f"{kind}-{self._task_sequence}"

    # === 保存 ===

    @property
    def is_saving(self) -> bool:
        return self._save_in_progress

    def save(self) -> bool:
        """在后台线程保存当前流程；返回是否已发起。结果经 save_finished 信号送达。"""
        if self._save_in_progress:
            log_info("[SAVE] 保存进行中，忽略重复请求: flow_id={}", self.model.flow_id)
            return False
        self._save_in_progress = True

        # 快照在 UI 线程完成，工作线程只接触请求体
        model = self.model
        definition = model.serialize()
        signature = self.current_signature()
        self.save_state_changed.emit(self._save_state_projector.on_save_started())

        api = self._api
        save_service = self._save_service
        self._task_runner.start(
            self._next_task_id("save"),
            lambda: save_service.save_definition(api=api, definition=definition),
            on_succeeded=lambda result: self._on_save_finished(model, signature, result),
            on_failed=lambda message: self._on_save_finished(
                model,
                signature,
                FlowEditorSaveResult(success=False, error_code="save_failed", error_message=message),
            ),
        )
        return True

    def _on_save_finished(self, model: GraphModel, signature: str, result: FlowEditorSaveResult) -> None:
        self._save_in_progress = False
        if model is not self.model:
            # 保存期间切换了流程：结果只对旧流程有效
            log_info("[SAVE] 流程已切换，丢弃保存结果的回写: flow_id={}", model.flow_id)
            self._deploy_after_save = False
            self.save_finished.emit(result)
            return

        if result.success:
            self._save_service.apply_to_model(model=self.model, result=result)
            if result.validation_result is not None:
                if signature == self.current_signature():
                    self._apply_validation_result(result.validation_result)
                else:
                    log_debug("VALIDATOR_VERBOSE", "[SAVE] 保存期间结构已变化，保存时的校验结果不落到图上")
            state = self._save_state_projector.on_save_succeeded(result.validation_result)
            if result.response is not None:
                self._set_runtime(self.runtime.transitioned(result.response.runtime_state))
        else:
            state = self._save_state_projector.on_save_failed(result.error_message or "Save failed")
        self.save_state_changed.emit(state)
        self.save_finished.emit(result)

        if self._deploy_after_save:
            self._continue_deploy_after_save(result)

    # === 部署生命周期 ===

    @property
    def is_deployment_in_progress(self) -> bool:
        return self._deployment_in_progress or self._deploy_after_save

    def _set_runtime(self, runtime: RuntimeStateInfo) -> None:
        changed = runtime.state != self.runtime.state or runtime.message != self.runtime.message
        self.runtime = runtime
        self.model.runtime_state = runtime.state
        if changed:
            self.runtime_state_changed.emit(runtime)

    def _start_deployment_operation(self, operation: DeploymentOperation) -> bool:
        if self._deployment_in_progress:
            log_info("[DEPLOY] 生命周期操作进行中，忽略: operation={}", operation)
            return False
        self._deployment_in_progress = True

        model = self.model
        runtime = self.runtime
        api = self._api
        deploy_service = self._deploy_service
        flow_id = model.flow_id
        self._task_runner.start(
            self._next_task_id(operation),
            lambda: deploy_service.run_operation(api=api, flow_id=flow_id, operation=operation, runtime=runtime),
            on_succeeded=lambda result: self._on_deployment_finished(model, result),
            on_failed=lambda message: self._on_deployment_finished(
                model,
                FlowEditorDeployResult(
                    success=False,
                    operation=operation,
                    runtime=runtime.transitioned("error", message=message),
                    error_code="operation_failed",
                    error_message=message,
                ),
            ),
        )
        return True

    def _on_deployment_finished(self, model: GraphModel, result: FlowEditorDeployResult) -> None:
        self._deployment_in_progress = False
        if model is self.model:
            self._set_runtime(result.runtime)
            if result.validation_result is not None:
                self.deploy_validation_failed.emit(result.validation_result)
        else:
            log_info("[DEPLOY] 流程已切换，丢弃运行状态回写: flow_id={}", model.flow_id)
        self.deployment_finished.emit(result)

    def _continue_deploy_after_save(self, save_result: FlowEditorSaveResult) -> None:
        if not save_result.success:
            self._deploy_after_save = False
            self.deployment_finished.emit(
                FlowEditorDeployResult(
                    success=False,
                    operation="deploy",
                    runtime=self.runtime,
                    error_code="save_failed",
                    error_message=save_result.error_message,
                )
            )
            return
        if self._save_state_projector.has_unsaved_changes:
            # 保存期间又有编辑：先把最新结构保存下来再部署
            self.save()
            return
        self._deploy_after_save = False
        self._start_deployment_operation("deploy")

    def deploy(self) -> bool:
        """部署；有未保存修改时先保存，保存成功后再部署。结果经 deployment_finished 信号送达。"""
        if self._deployment_in_progress or self._deploy_after_save:
            log_info("[DEPLOY] 部署进行中，忽略重复请求: flow_id={}", self.model.flow_id)
            return False
        if self._save_in_progress or self._save_state_projector.has_unsaved_changes:
            self._deploy_after_save = True
            if not self._save_in_progress:
                self.save()
            return True
        return self._start_deployment_operation("deploy")

    def start(self) -> bool:
        return self._start_deployment_operation("start")

    def stop(self) -> bool:
        return self._start_deployment_operation("stop")

    def undeploy(self) -> bool:
        return self._start_deployment_operation("undeploy")

    # === 清理 ===

    def cleanup(self) -> None:
        self._validation_scheduler.cleanup()
        self._task_runner.cleanup(int(getattr(settings, "VALIDATION_WORKER_WAIT_MS", 2000)))
