"""结构签名：只反映用户编写的图结构（节点集合 + 手动连线集合）。

自动连线由校验服务推断，签名若包含它们，应用校验结果本身就会改变签名并再次触发校验，
形成反馈环；因此签名只统计手动连线。
"""

from __future__ import annotations

import hashlib
import json
from typing import Iterable

from flow_engine.graph.models.graph_model import ConnectionModel, ConnectionProvenance, GraphModel, NodeModel


def compute_structure_signature(
    nodes: Iterable[NodeModel],
    connections: Iterable[ConnectionModel],
) -> str:
    node_ids = sorted(str(node.id) for node in nodes)
    manual_connection_ids = sorted(
        str(connection.id)
        for connection in connections
        if connection.provenance == ConnectionProvenance.MANUAL
    )
    payload = json.dumps(
        {"nodes": node_ids, "connections": manual_connection_ids},
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


def compute_model_signature(model: GraphModel) -> str:
    return compute_structure_signature(model.nodes.values(), model.connections.values())
