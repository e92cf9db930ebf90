"""自动连线对账：用校验服务推断出的连线整体替换现有自动连线，手动连线原样保留。"""

from __future__ import annotations

from typing import Dict, Iterable, List

from flow_engine.graph.connection_ids import make_auto_connection_id
from flow_engine.graph.models.graph_model import (
    ConnectionModel,
    ConnectionProvenance,
    ValidationState,
)
from flow_engine.validate.validation_result import DiscoveredConnection


def reconcile_auto_connections(
    current_connections: Iterable[ConnectionModel],
    discovered_connections: Iterable[DiscoveredConnection],
) -> List[ConnectionModel]:
    """返回 手动连线 ∪ 推断连线。

    - 手动连线按原顺序原对象返回，不读写其任何字段；
    - 推断连线 ID 由四元组确定性生成，重复的推断项折叠为一条；
    - 上一轮同 ID 自动连线的校验状态会被沿用，保证同一输入重复对账得到相同结果。
    """
    manual_connections: List[ConnectionModel] = []
    previous_auto_by_id: Dict[str, ConnectionModel] = {}
    for connection in current_connections:
        if connection.provenance == ConnectionProvenance.AUTO:
            previous_auto_by_id[connection.id] = connection
        else:
            manual_connections.append(connection)

    synthetic_by_id: Dict[str, ConnectionModel] = {}
    for discovered in discovered_connections:
        if not discovered.is_complete:
            continue
        connection_id = make_auto_connection_id(*discovered.endpoint_key)
        if connection_id in synthetic_by_id:
            continue
        previous = previous_auto_by_id.get(connection_id)
        synthetic_by_id[connection_id] = ConnectionModel(
            id=connection_id,
            source_node_id=discovered.source_node_id,
            source_port=discovered.source_port,
            target_node_id=discovered.target_node_id,
            target_port=discovered.target_port,
            provenance=ConnectionProvenance.AUTO,
            validation_state=previous.validation_state if previous is not None else ValidationState.UNKNOWN,
            validation_message=previous.validation_message if previous is not None else "",
        )

    return manual_connections + list(synthetic_by_id.values())


__all__ = ["reconcile_auto_connections"]
