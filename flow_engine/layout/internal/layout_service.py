from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from flow_engine.graph.models.graph_model import ConnectionModel, GraphModel, NodeModel
from flow_engine.utils.logging.logger import log_debug, log_warn

from .column_assignment import assign_columns, build_adjacency
from .constants import (
    CANVAS_PADDING_DEFAULT,
    EMPTY_CANVAS_HEIGHT,
    EMPTY_CANVAS_WIDTH,
    FIT_MAX_SCALE,
)
from .layout_models import (
    CanvasBounds,
    FitTransform,
    LayoutConfig,
    LayoutEdge,
    LayoutNode,
    LayoutResult,
)


class LayoutService:
    """分层布局服务（纯计算）。

    说明：
    - 输入为节点/连线序列（核心数据结构，无 UI 依赖），返回 LayoutResult，不修改传入对象；
    - 列 = 从任一源节点出发的最长路径长度；同列节点按输入顺序自上而下排列；
    - 引用不存在节点的连线既不参与列分配，也不出现在连线几何中（校验服务可能引用
      客户端已删除的节点），不抛异常。
    """

    @staticmethod
    def compute_layout(
        nodes: Sequence[NodeModel],
        connections: Sequence[ConnectionModel],
        config: Optional[LayoutConfig] = None,
    ) -> LayoutResult:
        cfg = config or LayoutConfig()
        layout_nodes, columns, cycle_broken = LayoutService._layout_nodes_with_columns(nodes, connections, cfg)
        edges = LayoutService.layout_edges(connections, layout_nodes)
        edge_ids = {edge.id for edge in edges}
        dropped = [connection.id for connection in connections if connection.id not in edge_ids]
        if dropped:
            log_debug(
                "LAYOUT_DEBUG_PRINT",
                "[LAYOUT] 丢弃 {} 条端点缺失的连线: {}",
                len(dropped),
                dropped,
            )
        return LayoutResult(
            nodes=layout_nodes,
            edges=edges,
            bounds=LayoutService.calculate_canvas_bounds(layout_nodes, cfg.padding),
            columns=columns,
            cycle_broken_node_ids=cycle_broken,
            dropped_connection_ids=dropped,
        )

    @staticmethod
    def compute_model_layout(model: GraphModel, config: Optional[LayoutConfig] = None) -> LayoutResult:
        return LayoutService.compute_layout(
            list(model.nodes.values()),
            list(model.connections.values()),
            config,
        )

    @staticmethod
    def layout_nodes(
        nodes: Sequence[NodeModel],
        connections: Sequence[ConnectionModel],
        config: Optional[LayoutConfig] = None,
    ) -> List[LayoutNode]:
        layout_nodes, _, _ = LayoutService._layout_nodes_with_columns(nodes, connections, config or LayoutConfig())
        return layout_nodes

    @staticmethod
    def _layout_nodes_with_columns(
        nodes: Sequence[NodeModel],
        connections: Iterable[ConnectionModel],
        cfg: LayoutConfig,
    ) -> tuple[List[LayoutNode], Dict[str, int], List[str]]:
        if not nodes:
            return [], {}, []

        node_ids = [node.id for node in nodes]
        incoming, _ = build_adjacency(
            node_ids,
            ((connection.source_node_id, connection.target_node_id) for connection in connections),
        )
        columns, cycle_broken = assign_columns(node_ids, incoming)
        if cycle_broken:
            log_warn("[LAYOUT] 图中存在环，以下节点的列分配被截断为 0: {}", cycle_broken)

        rows_used: Dict[int, int] = {}
        layout_nodes: List[LayoutNode] = []
        for node in nodes:
            column = columns.get(node.id, 0)
            row = rows_used.get(column, 0)
            rows_used[column] = row + 1
            layout_nodes.append(
                LayoutNode(
                    id=node.id,
                    component_type=node.component_type,
                    name=node.name,
                    x=cfg.padding + column * (cfg.node_width + cfg.horizontal_spacing),
                    y=cfg.padding + row * (cfg.node_height + cfg.vertical_spacing),
                    width=cfg.node_width,
                    height=cfg.node_height,
                    column=column,
                    row=row,
                    config=node.config,
                )
            )

        log_debug("LAYOUT_DEBUG_PRINT", "[LAYOUT] 列分配: {}", columns)
        return layout_nodes, columns, cycle_broken

    @staticmethod
    def layout_edges(
        connections: Iterable[ConnectionModel],
        layout_nodes: Sequence[LayoutNode],
    ) -> List[LayoutEdge]:
        node_map = {node.id: node for node in layout_nodes}
        edges: List[LayoutEdge] = []
        for connection in connections:
            source_node = node_map.get(connection.source_node_id)
            target_node = node_map.get(connection.target_node_id)
            if source_node is None or target_node is None:
                continue
            edges.append(
                LayoutEdge(
                    id=connection.id,
                    source_node_id=connection.source_node_id,
                    source_port=connection.source_port,
                    target_node_id=connection.target_node_id,
                    target_port=connection.target_port,
                    source_x=source_node.x + source_node.width,
                    source_y=source_node.y + source_node.height / 2,
                    target_x=target_node.x,
                    target_y=target_node.y + target_node.height / 2,
                    is_auto=connection.is_auto,
                    validation_state=connection.validation_state.value,
                )
            )
        return edges

    @staticmethod
    def calculate_canvas_bounds(
        layout_nodes: Sequence[LayoutNode],
        padding: float = CANVAS_PADDING_DEFAULT,
    ) -> CanvasBounds:
        if not layout_nodes:
            return CanvasBounds(width=EMPTY_CANVAS_WIDTH, height=EMPTY_CANVAS_HEIGHT)
        max_x = 0.0
        max_y = 0.0
        for node in layout_nodes:
            max_x = max(max_x, node.x + node.width)
            max_y = max(max_y, node.y + node.height)
        return CanvasBounds(width=max_x + padding, height=max_y + padding)

    @staticmethod
    def compute_fit_transform(
        bounds: CanvasBounds,
        viewport_width: float,
        viewport_height: float,
        padding: float = CANVAS_PADDING_DEFAULT,
    ) -> FitTransform:
        """把画布整体缩放并居中到视口内（不放大超过 100%）。"""
        scale = min(
            (viewport_width - padding * 2) / bounds.width,
            (viewport_height - padding * 2) / bounds.height,
            FIT_MAX_SCALE,
        )
        return FitTransform(
            scale=scale,
            translate_x=(viewport_width - bounds.width * scale) / 2,
            translate_y=(viewport_height - bounds.height * scale) / 2,
        )
