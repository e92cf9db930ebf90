from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal

from flow_engine.validate.validation_result import ValidationResult


ValidationPhase = Literal["idle", "pending", "in_flight"]


@dataclass(frozen=True)
class ValidationSchedulerConfig:
    debounce_ms: int


@dataclass(frozen=True)
class GraphMutatedEvent:
    signature: str


@dataclass(frozen=True)
class DebounceTimerFiredEvent:
    # 计时器触发时重新计算的当前签名
    signature: str


@dataclass(frozen=True)
class ValidationSucceededEvent:
    request_id: str
    result: ValidationResult
    # 响应落地时图的当前签名
    current_signature: str


@dataclass(frozen=True)
class ValidationFailedEvent:
    request_id: str
    message: str


@dataclass(frozen=True)
class SetEnabledEvent:
    enabled: bool


@dataclass(frozen=True)
class ResetEvent:
    pass


@dataclass(frozen=True)
class ScheduleDebounceTimerAction:
    delay_ms: int


@dataclass(frozen=True)
class IssueValidationRequestAction:
    request_id: str
    signature: str


@dataclass(frozen=True)
class ApplyValidationResultAction:
    request_id: str
    result: ValidationResult


ValidationSchedulerEvent = (
    GraphMutatedEvent
    | DebounceTimerFiredEvent
    | ValidationSucceededEvent
    | ValidationFailedEvent
    | SetEnabledEvent
    | ResetEvent
)

ValidationSchedulerAction = ScheduleDebounceTimerAction | IssueValidationRequestAction | ApplyValidationResultAction


class ValidationSchedulerStateMachine:
    """远端结构校验调度状态机（事件→状态→动作）。

    设计边界：
    - 纯逻辑：不依赖 Qt，不启动线程，不直接发请求；计时器/线程/请求由外层桥接；
    - 去重键是结构签名（节点ID + 手动连线ID）：签名与已校验基线相同的变更不调度校验，
      应用校验结果引起的自动连线变化因此不会再次触发校验；
    - 去抖：静默期内的多次变更只在计时器到点时发出一次请求；
    - 已发出的请求不取消，其响应始终交给外层应用（端口/连线是合并而非按版本替换）；
    - 基线只通过 compare-and-set 推进：响应对应的"发出时签名"等于"落地时签名"才推进，
      否则保留旧基线，避免吞掉仍在等待的后续校验。
    """

    def __init__(self, config: ValidationSchedulerConfig) -> None:
        self._config = config
        self._enabled: bool = True
        self._timer_pending: bool = False
        self._last_validated_signature: str | None = None
        # request_id -> 发出请求时捕获的签名
        self._in_flight: Dict[str, str] = {}
        self._request_counter: int = 0

    @property
    def enabled(self) -> bool:
        return bool(self._enabled)

    @property
    def phase(self) -> ValidationPhase:
        if self._timer_pending:
            return "pending"
        if self._in_flight:
            return "in_flight"
        return "idle"

    @property
    def last_validated_signature(self) -> str | None:
        return self._last_validated_signature

    @property
    def in_flight_request_ids(self) -> list[str]:
        return list(self._in_flight.keys())

    def _next_request_id(self) -> str:
        self._request_counter += 1
        return f"validate-{self._request_counter}"

    def handle_event(self, event: ValidationSchedulerEvent) -> list[ValidationSchedulerAction]:
        if isinstance(event, SetEnabledEvent):
            self._enabled = bool(event.enabled)
            if not self._enabled:
                self._timer_pending = False
            return []

        if isinstance(event, ResetEvent):
            # 切换流程：旧请求的响应不再属于当前图，一并遗忘
            self._timer_pending = False
            self._last_validated_signature = None
            self._in_flight.clear()
            return []

        if isinstance(event, ValidationSucceededEvent):
            issued_signature = self._in_flight.pop(event.request_id, None)
            if issued_signature is None:
                return []
            if issued_signature == str(event.current_signature):
                self._last_validated_signature = issued_signature
            return [ApplyValidationResultAction(request_id=event.request_id, result=event.result)]

        if isinstance(event, ValidationFailedEvent):
            # 不推进基线、不改动已有校验状态；下一次真实变更会重新调度
            self._in_flight.pop(event.request_id, None)
            return []

        if not self._enabled:
            return []

        if isinstance(event, GraphMutatedEvent):
            if str(event.signature) == self._last_validated_signature:
                return []
            self._timer_pending = True
            return [ScheduleDebounceTimerAction(delay_ms=int(max(0, int(self._config.debounce_ms))))]

        if isinstance(event, DebounceTimerFiredEvent):
            self._timer_pending = False
            signature = str(event.signature)
            if signature == self._last_validated_signature:
                return []
            if signature in self._in_flight.values():
                # 同一签名的请求已在途，其响应会推进基线
                return []
            request_id = self._next_request_id()
            self._in_flight[request_id] = signature
            return [IssueValidationRequestAction(request_id=request_id, signature=signature)]

        return []
