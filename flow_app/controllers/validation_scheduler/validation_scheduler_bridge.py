from __future__ import annotations

import copy
from functools import partial
from typing import Any, Callable, Dict, Optional

from PyQt6 import QtCore

from flow_app.controllers.background_task import BackgroundTaskRunner
from flow_app.controllers.validation_scheduler_state_machine import (
    ApplyValidationResultAction,
    DebounceTimerFiredEvent,
    GraphMutatedEvent,
    IssueValidationRequestAction,
    ResetEvent,
    ScheduleDebounceTimerAction,
    SetEnabledEvent,
    ValidationFailedEvent,
    ValidationSchedulerConfig,
    ValidationSchedulerStateMachine,
    ValidationSucceededEvent,
)
from flow_engine.configs.settings import settings
from flow_engine.utils.logging.logger import log_debug, log_warn
from flow_engine.validate.validation_result import ValidationResult

ValidatorCallable = Callable[[Dict[str, Any]], ValidationResult]


class ValidationSchedulerBridge(QtCore.QObject):
    """Qt 桥接：将校验调度状态机动作落到计时器/线程/信号。

    每个打开的流程持有一个实例；去抖计时器是实例字段，重新调度即 stop + start。
    """

    validation_result_ready = QtCore.pyqtSignal(object)
    validation_failed = QtCore.pyqtSignal(str)
    validation_request_issued = QtCore.pyqtSignal(str)

    def __init__(
        self,
        *,
        signature_provider: Callable[[], str],
        payload_provider: Callable[[], Dict[str, Any]],
        validator: ValidatorCallable,
        debounce_ms: Optional[int] = None,
        parent: Optional[QtCore.QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._signature_provider = signature_provider
        self._payload_provider = payload_provider
        self._validator = validator

        resolved_debounce_ms = (
            int(debounce_ms)
            if debounce_ms is not None
            else int(getattr(settings, "VALIDATION_DEBOUNCE_MS", 500))
        )
        self._state_machine = ValidationSchedulerStateMachine(
            ValidationSchedulerConfig(debounce_ms=resolved_debounce_ms)
        )

        self._enabled: bool = bool(getattr(settings, "VALIDATION_AUTO_ENABLED", True))
        self._state_machine.handle_event(SetEnabledEvent(enabled=bool(self._enabled)))

        self._debounce_timer: Optional[QtCore.QTimer] = None
        # 每个请求一个后台线程；在途请求不取消
        self._task_runner = BackgroundTaskRunner(self)

    @property
    def state_machine(self) -> ValidationSchedulerStateMachine:
        return self._state_machine

    @property
    def in_flight_count(self) -> int:
        return self._task_runner.running_count

    def set_enabled(self, enabled: bool) -> None:
        normalized = bool(enabled)
        self._enabled = normalized
        self._state_machine.handle_event(SetEnabledEvent(enabled=normalized))
        if not normalized and self._debounce_timer is not None:
            self._debounce_timer.stop()

    def reset(self) -> None:
        """切换流程时调用：取消待触发的计时器并遗忘已校验基线。"""
        if self._debounce_timer is not None:
            self._debounce_timer.stop()
        self._state_machine.handle_event(ResetEvent())

    def notify_graph_mutated(self) -> None:
        if not self._enabled:
            return
        self._handle_event(GraphMutatedEvent(signature=str(self._signature_provider())))

    # ===== 内部：状态机动作处理 =====

    def _ensure_debounce_timer(self) -> QtCore.QTimer:
        if self._debounce_timer is None:
            timer = QtCore.QTimer(self)
            timer.setSingleShot(True)
            timer.timeout.connect(self._on_debounce_timer_fired)
            self._debounce_timer = timer
        return self._debounce_timer

    def _on_debounce_timer_fired(self) -> None:
        self._handle_event(DebounceTimerFiredEvent(signature=str(self._signature_provider())))

    def _handle_event(self, event) -> None:
        actions = self._state_machine.handle_event(event)
        self._handle_actions(actions)

    def _handle_actions(self, actions) -> None:
        for action in actions:
            if isinstance(action, ScheduleDebounceTimerAction):
                timer = self._ensure_debounce_timer()
                timer.stop()
                timer.start(int(max(0, int(action.delay_ms))))
                continue
            if isinstance(action, IssueValidationRequestAction):
                self._start_request(action.request_id, action.signature)
                continue
            if isinstance(action, ApplyValidationResultAction):
                self.validation_result_ready.emit(action.result)
                continue

    def _start_request(self, request_id: str, signature: str) -> None:
        # 请求体在 UI 线程完成快照，工作线程不接触图模型
        payload = copy.deepcopy(self._payload_provider())
        log_debug(
            "VALIDATOR_VERBOSE",
            "[VALIDATE][Scheduler] 发出校验请求: request_id={} signature={}",
            request_id,
            signature,
        )
        self.validation_request_issued.emit(request_id)
        self._task_runner.start(
            request_id,
            partial(self._validator, payload),
            on_succeeded=partial(self._on_validation_succeeded, request_id),
            on_failed=partial(self._on_validation_failed, request_id),
        )

    def _on_validation_succeeded(self, request_id: str, result: object) -> None:
        current_signature = str(self._signature_provider())
        log_debug(
            "VALIDATOR_VERBOSE",
            "[VALIDATE][Scheduler] 校验响应落地: request_id={} current_signature={}",
            request_id,
            current_signature,
        )
        self._handle_event(
            ValidationSucceededEvent(
                request_id=str(request_id),
                result=result,
                current_signature=current_signature,
            )
        )

    def _on_validation_failed(self, request_id: str, message: str) -> None:
        log_warn("[VALIDATE][Scheduler] 校验请求失败（保留上次校验状态）: request_id={} error={}", request_id, message)
        self._handle_event(ValidationFailedEvent(request_id=str(request_id), message=str(message)))
        self.validation_failed.emit(str(message))

    # ===== 清理 =====

    def cleanup(self) -> None:
        if self._debounce_timer is not None:
            self._debounce_timer.stop()
            self._debounce_timer.deleteLater()
            self._debounce_timer = None

        self._task_runner.cleanup(int(getattr(settings, "VALIDATION_WORKER_WAIT_MS", 2000)))
        self._state_machine.handle_event(ResetEvent())
