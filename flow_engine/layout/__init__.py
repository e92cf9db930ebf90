from .internal.layout_models import (
    CanvasBounds,
    ColumnResolution,
    ColumnResolved,
    CycleBroken,
    FitTransform,
    LayoutConfig,
    LayoutEdge,
    LayoutNode,
    LayoutResult,
)
from .internal.layout_service import LayoutService
from .internal.column_assignment import ColumnAssigner, assign_columns, build_adjacency
from .internal.edge_geometry import (
    bezier_midpoint,
    bezier_path,
    bezier_point,
    edge_path,
    edge_style_key,
    is_point_near_edge,
)

__all__ = [
    "CanvasBounds",
    "ColumnResolution",
    "ColumnResolved",
    "CycleBroken",
    "FitTransform",
    "LayoutConfig",
    "LayoutEdge",
    "LayoutNode",
    "LayoutResult",
    "LayoutService",
    "ColumnAssigner",
    "assign_columns",
    "build_adjacency",
    "bezier_midpoint",
    "bezier_path",
    "bezier_point",
    "edge_path",
    "edge_style_key",
    "is_point_near_edge",
]
