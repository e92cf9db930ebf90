"""
编辑器会话模型模块
"""

from .save_state import SaveState, SaveStatus
from .runtime_state import (
    RUNTIME_OPERATION_SOURCE_STATES,
    RUNTIME_STATES,
    RuntimeState,
    RuntimeStateInfo,
    normalize_runtime_state,
)

__all__ = [
    "SaveState",
    "SaveStatus",
    "RUNTIME_OPERATION_SOURCE_STATES",
    "RUNTIME_STATES",
    "RuntimeState",
    "RuntimeStateInfo",
    "normalize_runtime_state",
]
