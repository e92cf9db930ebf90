from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

FlowSnapshot = Dict[str, Any]


class FlowHistory:
    """撤销/重做历史：保存流程定义快照（`GraphModel.serialize()` 的结果）。

    - push 会截断当前位置之后的"前进"历史（撤销后再编辑即产生新分支）；
    - 超出 max_size 时丢弃最旧的快照；
    - 存入与取出的都是深拷贝，调用方修改返回值不会污染历史。
    """

    def __init__(self, max_size: int = 10) -> None:
        if int(max_size) <= 0:
            raise ValueError(f"max_size 必须为正整数: {max_size}")
        self._max_size = int(max_size)
        self._stack: List[FlowSnapshot] = []
        self._index: int = -1

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def current_index(self) -> int:
        return self._index

    def push(self, snapshot: FlowSnapshot) -> None:
        del self._stack[self._index + 1:]
        self._stack.append(copy.deepcopy(snapshot))
        self._index += 1
        if len(self._stack) > self._max_size:
            self._stack.pop(0)
            self._index -= 1

    def undo(self) -> Optional[FlowSnapshot]:
        if self._index <= 0:
            return None
        self._index -= 1
        return copy.deepcopy(self._stack[self._index])

    def redo(self) -> Optional[FlowSnapshot]:
        if self._index >= len(self._stack) - 1:
            return None
        self._index += 1
        return copy.deepcopy(self._stack[self._index])

    def current(self) -> Optional[FlowSnapshot]:
        if self._index < 0 or self._index >= len(self._stack):
            return None
        return copy.deepcopy(self._stack[self._index])

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._stack) - 1

    def clear(self) -> None:
        self._stack = []
        self._index = -1

    def size(self) -> int:
        return len(self._stack)
