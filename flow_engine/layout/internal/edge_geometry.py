"""连线几何：水平优先的三次贝塞尔曲线（适用于从左到右的流程图）。"""

from __future__ import annotations

import math
from typing import Tuple

from .constants import (
    BEZIER_CONTROL_OFFSET_MAX,
    BEZIER_CONTROL_OFFSET_RATIO,
    EDGE_HIT_SAMPLES,
    EDGE_HIT_THRESHOLD_DEFAULT,
)
from .layout_models import LayoutEdge

Point = Tuple[float, float]


def control_offset(source_x: float, target_x: float) -> float:
    return min(abs(target_x - source_x) * BEZIER_CONTROL_OFFSET_RATIO, BEZIER_CONTROL_OFFSET_MAX)


def bezier_control_points(
    source_x: float,
    source_y: float,
    target_x: float,
    target_y: float,
) -> Tuple[Point, Point]:
    offset = control_offset(source_x, target_x)
    return (source_x + offset, source_y), (target_x - offset, target_y)


def _fmt(value: float) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def bezier_path(source_x: float, source_y: float, target_x: float, target_y: float) -> str:
    """SVG 路径：`M sx sy C c1x c1y, c2x c2y, tx ty`。"""
    (c1x, c1y), (c2x, c2y) = bezier_control_points(source_x, source_y, target_x, target_y)
    return (
        f"M {_fmt(source_x)} {_fmt(source_y)} "
        f"C {_fmt(c1x)} {_fmt(c1y)}, {_fmt(c2x)} {_fmt(c2y)}, {_fmt(target_x)} {_fmt(target_y)}"
    )


def bezier_point(
    source_x: float,
    source_y: float,
    target_x: float,
    target_y: float,
    t: float,
) -> Point:
    (c1x, c1y), (c2x, c2y) = bezier_control_points(source_x, source_y, target_x, target_y)
    mt = 1.0 - t
    mt2 = mt * mt
    mt3 = mt2 * mt
    t2 = t * t
    t3 = t2 * t
    x = mt3 * source_x + 3 * mt2 * t * c1x + 3 * mt * t2 * c2x + t3 * target_x
    y = mt3 * source_y + 3 * mt2 * t * c1y + 3 * mt * t2 * c2y + t3 * target_y
    return (x, y)


def bezier_midpoint(source_x: float, source_y: float, target_x: float, target_y: float) -> Point:
    # 近似中点（用于放置连线标签）
    return ((source_x + target_x) / 2, (source_y + target_y) / 2)


def edge_path(edge: LayoutEdge) -> str:
    return bezier_path(edge.source_x, edge.source_y, edge.target_x, edge.target_y)


def is_point_near_edge(
    point_x: float,
    point_y: float,
    edge: LayoutEdge,
    threshold: float = EDGE_HIT_THRESHOLD_DEFAULT,
) -> bool:
    for index in range(EDGE_HIT_SAMPLES + 1):
        t = index / EDGE_HIT_SAMPLES
        sample_x, sample_y = bezier_point(edge.source_x, edge.source_y, edge.target_x, edge.target_y, t)
        if math.hypot(point_x - sample_x, point_y - sample_y) <= threshold:
            return True
    return False


def edge_style_key(edge: LayoutEdge) -> str:
    """绘制样式键：error / warning 优先，其次自动连线，否则 valid。"""
    if edge.validation_state == "error":
        return "error"
    if edge.validation_state == "warning":
        return "warning"
    if edge.is_auto:
        return "auto"
    return "valid"
