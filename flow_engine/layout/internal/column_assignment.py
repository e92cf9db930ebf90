from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from .layout_models import ColumnResolution, ColumnResolved, CycleBroken


def build_adjacency(
    node_ids: Sequence[str],
    edges: Iterable[tuple[str, str]],
) -> tuple[Dict[str, List[str]], Dict[str, List[str]]]:
    """构建 incoming / outgoing 邻接表；端点不在节点集中的边被忽略。"""
    incoming: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}
    outgoing: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}
    for source_id, target_id in edges:
        if source_id not in incoming or target_id not in incoming:
            continue
        incoming[target_id].append(source_id)
        outgoing[source_id].append(target_id)
    return incoming, outgoing


class ColumnAssigner:
    """列分配：column(n) = 0（无入边）或 1 + max(column(p))。

    带记忆化；`_resolving` 记录正在解析的节点，重入即视为环，
    该次出现返回 CycleBroken（按第 0 列参与 max）。
    采用显式栈实现，长链不受递归深度限制。
    """

    def __init__(self, incoming: Dict[str, List[str]]) -> None:
        self._incoming = incoming
        self._columns: Dict[str, int] = {}
        self._resolving: set[str] = set()
        self.cycle_broken_node_ids: List[str] = []

    @property
    def columns(self) -> Dict[str, int]:
        return dict(self._columns)

    def _lookup(self, node_id: str) -> ColumnResolution | None:
        if node_id in self._columns:
            return ColumnResolved(self._columns[node_id])
        if node_id in self._resolving:
            return CycleBroken(node_id)
        return None

    def _depth_of(self, resolution: ColumnResolution) -> int:
        if isinstance(resolution, CycleBroken):
            if resolution.node_id not in self.cycle_broken_node_ids:
                self.cycle_broken_node_ids.append(resolution.node_id)
            return 0
        return resolution.depth

    def resolve(self, node_id: str) -> ColumnResolution:
        known = self._lookup(node_id)
        if known is not None:
            return known

        # 栈帧：(节点, 下一个待处理的前驱下标, 目前的最大前驱列)
        stack: List[List] = [[node_id, 0, -1]]
        self._resolving.add(node_id)
        while stack:
            frame = stack[-1]
            current_id, next_index, max_parent = frame
            parents = self._incoming.get(current_id, [])
            if next_index < len(parents):
                parent_id = parents[next_index]
                frame[1] = next_index + 1
                parent_resolution = self._lookup(parent_id)
                if parent_resolution is None:
                    self._resolving.add(parent_id)
                    stack.append([parent_id, 0, -1])
                    continue
                frame[2] = max(max_parent, self._depth_of(parent_resolution))
                continue

            stack.pop()
            self._resolving.discard(current_id)
            depth = 0 if not parents else max_parent + 1
            self._columns[current_id] = depth
            if stack:
                stack[-1][2] = max(stack[-1][2], depth)
        return ColumnResolved(self._columns[node_id])


def assign_columns(
    node_ids: Sequence[str],
    incoming: Dict[str, List[str]],
) -> tuple[Dict[str, int], List[str]]:
    assigner = ColumnAssigner(incoming)
    for node_id in node_ids:
        assigner.resolve(node_id)
    return assigner.columns, list(assigner.cycle_broken_node_ids)
