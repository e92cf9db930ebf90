from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Literal, Optional


RuntimeState = Literal["not_deployed", "deployed_stopped", "running", "error"]

RUNTIME_STATES: tuple[RuntimeState, ...] = ("not_deployed", "deployed_stopped", "running", "error")

# 部署操作 -> 允许发起该操作的运行状态
RUNTIME_OPERATION_SOURCE_STATES: dict[str, tuple[RuntimeState, ...]] = {
    "deploy": ("not_deployed", "error"),
    "start": ("deployed_stopped",),
    "stop": ("running",),
    "undeploy": ("deployed_stopped", "error"),
}


def normalize_runtime_state(value: object) -> RuntimeState:
    text = str(value or "").strip().lower()
    if text in RUNTIME_STATES:
        return text  # type: ignore[return-value]
    return "not_deployed"


@dataclass(frozen=True, slots=True)
class RuntimeStateInfo:
    """流程运行状态（与后端 runtime_state 对应）。"""

    state: RuntimeState = "not_deployed"
    message: Optional[str] = None
    last_transition: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self.state == "running"

    def can_run_operation(self, operation: str) -> bool:
        return self.state in RUNTIME_OPERATION_SOURCE_STATES.get(str(operation), ())

    def transitioned(self, state: RuntimeState, *, message: Optional[str] = None, at: Optional[datetime] = None) -> "RuntimeStateInfo":
        return replace(
            self,
            state=state,
            message=message,
            last_transition=at if at is not None else datetime.now(),
        )
