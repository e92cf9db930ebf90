from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple, Union

from .constants import (
    CANVAS_PADDING_DEFAULT,
    HORIZONTAL_SPACING_DEFAULT,
    NODE_HEIGHT_DEFAULT,
    NODE_WIDTH_DEFAULT,
    VERTICAL_SPACING_DEFAULT,
)


@dataclass(frozen=True)
class LayoutConfig:
    """布局配置（全部可选，缺省即默认尺寸）。"""

    node_width: float = NODE_WIDTH_DEFAULT
    node_height: float = NODE_HEIGHT_DEFAULT
    horizontal_spacing: float = HORIZONTAL_SPACING_DEFAULT
    vertical_spacing: float = VERTICAL_SPACING_DEFAULT
    padding: float = CANVAS_PADDING_DEFAULT


@dataclass(frozen=True)
class ColumnResolved:
    depth: int


@dataclass(frozen=True)
class CycleBroken:
    """解析过程中再次遇到仍在解析的节点（存在环），该次出现按第 0 列计。"""

    node_id: str


ColumnResolution = Union[ColumnResolved, CycleBroken]


@dataclass
class LayoutNode:
    id: str
    component_type: str
    name: str
    x: float
    y: float
    width: float
    height: float
    column: int
    row: int
    config: Dict[str, Any] = field(default_factory=dict)

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass
class LayoutEdge:
    id: str
    source_node_id: str
    source_port: str
    target_node_id: str
    target_port: str
    # 源节点右侧中点 → 目标节点左侧中点
    source_x: float
    source_y: float
    target_x: float
    target_y: float
    is_auto: bool = False
    validation_state: str = "unknown"


@dataclass(frozen=True)
class CanvasBounds:
    width: float
    height: float


@dataclass(frozen=True)
class FitTransform:
    scale: float
    translate_x: float
    translate_y: float


@dataclass
class LayoutResult:
    """布局输出：纯数据结果，不修改调用方模型。

    - nodes: 按输入顺序的已定位节点
    - edges: 端点均存在的连线几何（引用缺失节点的连线被丢弃）
    - cycle_broken_node_ids: 列分配时因环被截断的节点
    """

    nodes: List[LayoutNode]
    edges: List[LayoutEdge]
    bounds: CanvasBounds
    columns: Dict[str, int] = field(default_factory=dict)
    cycle_broken_node_ids: List[str] = field(default_factory=list)
    dropped_connection_ids: List[str] = field(default_factory=list)

    @property
    def positions(self) -> Dict[str, Tuple[float, float]]:
        return {node.id: node.position for node in self.nodes}
