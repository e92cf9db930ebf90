from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from flow_engine.graph.connection_ids import (
    is_auto_connection_id,
    make_manual_connection_id,
)


class ConnectionProvenance(str, Enum):
    """连线来源：用户绘制 / 校验服务推断"""
    MANUAL = "manual"
    AUTO = "auto"


class ValidationState(str, Enum):
    """端口与连线的校验状态"""
    VALID = "valid"
    WARNING = "warning"
    ERROR = "error"
    UNKNOWN = "unknown"


class PortDirection(str, Enum):
    INPUT = "input"
    OUTPUT = "output"


RUNTIME_STATE_NOT_DEPLOYED = "not_deployed"
RUNTIME_STATE_DEPLOYED_STOPPED = "deployed_stopped"
RUNTIME_STATE_RUNNING = "running"
RUNTIME_STATE_ERROR = "error"


class GraphEditRejectedError(ValueError):
    """用户编辑违反图约束（运行中锁定、节点不存在等）。"""


class ConnectionRejectedError(GraphEditRejectedError):
    """手动连线被拒绝（自连、重复、端点不存在）。"""


@dataclass
class PortInfo:
    name: str
    direction: PortDirection
    required: bool = False
    validation_state: ValidationState = ValidationState.UNKNOWN
    # 以下字段由校验服务提供，仅用于展示
    port_type: str = ""
    pattern: str = ""
    description: str = ""


@dataclass
class NodeModel:
    id: str
    component_type: str
    name: str
    position: Tuple[float, float] = (0.0, 0.0)
    config: Dict[str, Any] = field(default_factory=dict)
    # 组件类别（用于着色），与后端字段 "type" 对应
    category: str = ""
    # 端口元数据：首次校验成功前为 None
    input_ports: Optional[List[PortInfo]] = None
    output_ports: Optional[List[PortInfo]] = None

    @property
    def has_port_metadata(self) -> bool:
        return self.input_ports is not None or self.output_ports is not None

    def get_port(self, port_name: str, direction: PortDirection) -> Optional[PortInfo]:
        ports = self.input_ports if direction == PortDirection.INPUT else self.output_ports
        for port in ports or []:
            if port.name == port_name:
                return port
        return None


@dataclass
class ConnectionModel:
    id: str
    source_node_id: str
    source_port: str
    target_node_id: str
    target_port: str
    provenance: ConnectionProvenance = ConnectionProvenance.MANUAL
    validation_state: ValidationState = ValidationState.UNKNOWN
    validation_message: str = ""

    @property
    def is_auto(self) -> bool:
        return self.provenance == ConnectionProvenance.AUTO

    @property
    def endpoint_key(self) -> Tuple[str, str, str, str]:
        return (self.source_node_id, self.source_port, self.target_node_id, self.target_port)


_PROVENANCE_VALUES = frozenset(provenance.value for provenance in ConnectionProvenance)


def _coerce_coordinate(value: Any) -> float:
    # 后端可能给出 null 或非数字
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class GraphModel:
    """流程图的规范内存表示（节点 + 连线）。

    约定：
    - 节点与连线均按插入顺序保存（dict），布局的行序依赖这一点；
    - 删除节点会级联删除引用它的连线；
    - 运行中（runtime_state == "running"）禁止结构性编辑，位置与配置编辑不受限。
    """

    def __init__(
        self,
        flow_id: str = "",
        name: str = "",
        description: str = "",
        version: int = 0,
        runtime_state: str = RUNTIME_STATE_NOT_DEPLOYED,
    ) -> None:
        self.flow_id = flow_id
        self.name = name
        self.description = description
        self.version = int(version)
        self.runtime_state = runtime_state
        self.nodes: Dict[str, NodeModel] = {}
        self.connections: Dict[str, ConnectionModel] = {}
        self._next_id = 1

    def gen_node_id(self) -> str:
        while True:
            new_id = f"node_{self._next_id}"
            self._next_id += 1
            if new_id not in self.nodes:
                return new_id

    @property
    def is_structure_locked(self) -> bool:
        return self.runtime_state == RUNTIME_STATE_RUNNING

    def _ensure_structure_editable(self) -> None:
        if self.is_structure_locked:
            raise GraphEditRejectedError("流程运行中，禁止修改节点与连线")

    def _require_node(self, node_id: str) -> NodeModel:
        node = self.nodes.get(node_id)
        if node is None:
            raise KeyError(f"节点不存在: {node_id}")
        return node

    # -------- 节点 --------
    def add_node(
        self,
        component_type: str,
        name: str,
        position: Tuple[float, float] = (0.0, 0.0),
        config: Optional[Dict[str, Any]] = None,
        *,
        category: str = "",
        node_id: Optional[str] = None,
    ) -> NodeModel:
        self._ensure_structure_editable()
        resolved_id = node_id or self.gen_node_id()
        if resolved_id in self.nodes:
            raise GraphEditRejectedError(f"节点ID已存在: {resolved_id}")
        node = NodeModel(
            id=resolved_id,
            component_type=component_type,
            name=name,
            position=(float(position[0]), float(position[1])),
            config=dict(config or {}),
            category=category,
        )
        self.nodes[resolved_id] = node
        return node

    def move_node(self, node_id: str, position: Tuple[float, float]) -> None:
        node = self._require_node(node_id)
        node.position = (float(position[0]), float(position[1]))

    def update_node_config(self, node_id: str, config: Dict[str, Any]) -> None:
        node = self._require_node(node_id)
        node.config = dict(config)

    def rename_node(self, node_id: str, name: str) -> None:
        node = self._require_node(node_id)
        node.name = str(name)

    def remove_node(self, node_id: str) -> List[str]:
        """删除节点并级联删除相关连线，返回被删除的连线ID列表。"""
        self._ensure_structure_editable()
        self._require_node(node_id)
        to_del = [
            connection_id
            for connection_id, connection in self.connections.items()
            if connection.source_node_id == node_id or connection.target_node_id == node_id
        ]
        for connection_id in to_del:
            self.connections.pop(connection_id, None)
        self.nodes.pop(node_id, None)
        return to_del

    # -------- 连线 --------
    def check_manual_connection(
        self,
        source_node_id: str,
        source_port: str,
        target_node_id: str,
        target_port: str,
    ) -> Optional[str]:
        """返回拒绝原因；None 表示可以创建。"""
        if not source_node_id or not target_node_id or not source_port or not target_port:
            return "连线端点不完整"
        if source_node_id not in self.nodes or target_node_id not in self.nodes:
            return "连线端点节点不存在"
        if source_node_id == target_node_id:
            return "不能将组件连接到自身"
        endpoint_key = (source_node_id, source_port, target_node_id, target_port)
        for existing in self.connections.values():
            if existing.endpoint_key == endpoint_key:
                return "这两个端口之间已存在连线"
        return None

    def add_manual_connection(
        self,
        source_node_id: str,
        source_port: str,
        target_node_id: str,
        target_port: str,
        *,
        connection_id: Optional[str] = None,
    ) -> ConnectionModel:
        self._ensure_structure_editable()
        reason = self.check_manual_connection(source_node_id, source_port, target_node_id, target_port)
        if reason is not None:
            raise ConnectionRejectedError(reason)
        connection = ConnectionModel(
            id=connection_id or make_manual_connection_id(),
            source_node_id=source_node_id,
            source_port=source_port,
            target_node_id=target_node_id,
            target_port=target_port,
            provenance=ConnectionProvenance.MANUAL,
        )
        self.connections[connection.id] = connection
        return connection

    def remove_connection(self, connection_id: str) -> bool:
        self._ensure_structure_editable()
        return self.connections.pop(connection_id, None) is not None

    def replace_connections(self, connections: Iterable[ConnectionModel]) -> None:
        """整体替换连线集合（供自动连线对账使用，保持传入顺序）。"""
        self.connections = {connection.id: connection for connection in connections}

    def manual_connections(self) -> List[ConnectionModel]:
        return [connection for connection in self.connections.values() if not connection.is_auto]

    def auto_connections(self) -> List[ConnectionModel]:
        return [connection for connection in self.connections.values() if connection.is_auto]

    # -------- 序列化 --------
    def serialize(self) -> dict:
        """序列化为后端流程定义（校验/保存请求体）。

        连线的校验状态仅存在于界面侧，不写入请求体。
        """
        return {
            "id": self.flow_id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "runtime_state": self.runtime_state,
            "nodes": [
                {
                    "id": node.id,
                    "component": node.component_type,
                    "type": node.category,
                    "name": node.name,
                    "position": {"x": node.position[0], "y": node.position[1]},
                    "config": copy.deepcopy(node.config),
                }
                for node in self.nodes.values()
            ],
            "connections": [
                {
                    "id": connection.id,
                    "source_node_id": connection.source_node_id,
                    "source_port": connection.source_port,
                    "target_node_id": connection.target_node_id,
                    "target_port": connection.target_port,
                    "source": connection.provenance.value,
                }
                for connection in self.connections.values()
            ],
        }

    def restore_structure(self, data: dict) -> None:
        """用序列化快照覆盖节点与手动连线（撤销/重做），保留流程标识与运行状态。

        快照只代表用户编写的内容，校验派生的状态不随快照回退：
        - 仍存在的节点沿用当前端口元数据，仍存在的连线沿用当前校验状态；
        - 快照中的自动连线被忽略，当前端点仍存在的自动连线原样保留，由下一次校验对账。
        """
        restored = GraphModel.deserialize(data)
        for node_id, node in restored.nodes.items():
            current_node = self.nodes.get(node_id)
            if current_node is not None:
                node.input_ports = current_node.input_ports
                node.output_ports = current_node.output_ports

        connections: Dict[str, ConnectionModel] = {}
        for connection in restored.connections.values():
            if connection.is_auto:
                continue
            current_connection = self.connections.get(connection.id)
            if current_connection is not None:
                connection.validation_state = current_connection.validation_state
                connection.validation_message = current_connection.validation_message
            connections[connection.id] = connection
        for connection in self.connections.values():
            if (
                connection.is_auto
                and connection.source_node_id in restored.nodes
                and connection.target_node_id in restored.nodes
            ):
                connections[connection.id] = connection

        self.nodes = restored.nodes
        self.connections = connections

    @staticmethod
    def deserialize(data: dict) -> "GraphModel":
        """从后端流程数据反序列化；nodes/connections 为 null 时按空列表处理。"""
        model = GraphModel(
            flow_id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            version=int(data.get("version") or 0),
            runtime_state=str(data.get("runtime_state") or RUNTIME_STATE_NOT_DEPLOYED),
        )
        for node_data in data.get("nodes") or []:
            position = node_data.get("position") or {}
            node = NodeModel(
                id=str(node_data["id"]),
                component_type=str(node_data.get("component") or ""),
                name=str(node_data.get("name") or ""),
                position=(_coerce_coordinate(position.get("x")), _coerce_coordinate(position.get("y"))),
                config=dict(node_data.get("config") or {}),
                category=str(node_data.get("type") or ""),
            )
            model.nodes[node.id] = node
        for connection_data in data.get("connections") or []:
            connection_id = str(connection_data["id"])
            source_text = str(connection_data.get("source") or "").lower()
            if source_text in _PROVENANCE_VALUES:
                provenance = ConnectionProvenance(source_text)
            elif is_auto_connection_id(connection_id):
                provenance = ConnectionProvenance.AUTO
            else:
                provenance = ConnectionProvenance.MANUAL
            model.connections[connection_id] = ConnectionModel(
                id=connection_id,
                source_node_id=str(connection_data["source_node_id"]),
                source_port=str(connection_data["source_port"]),
                target_node_id=str(connection_data["target_node_id"]),
                target_port=str(connection_data["target_port"]),
                provenance=provenance,
            )
        return model

    def clone(self) -> "GraphModel":
        return copy.deepcopy(self)
