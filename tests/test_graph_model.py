from __future__ import annotations

import pytest

from flow_engine.graph.connection_ids import (
    AUTO_CONNECTION_ID_PREFIX,
    MANUAL_CONNECTION_ID_PREFIX,
    is_auto_connection_id,
    make_auto_connection_id,
    make_manual_connection_id,
)
from flow_engine.graph.models.graph_model import (
    ConnectionModel,
    ConnectionProvenance,
    ConnectionRejectedError,
    GraphEditRejectedError,
    GraphModel,
    PortDirection,
    PortInfo,
    ValidationState,
)


def _two_node_model() -> GraphModel:
    model = GraphModel(flow_id="flow-1", name="demo")
    model.add_node("udp", "输入", node_id="n1")
    model.add_node("sink", "输出", node_id="n2")
    return model


def test_connection_id_prefixes_are_disjoint() -> None:
    auto_id = make_auto_connection_id("n1", "out", "n2", "in")
    manual_id = make_manual_connection_id()

    assert auto_id.startswith(AUTO_CONNECTION_ID_PREFIX)
    assert manual_id.startswith(MANUAL_CONNECTION_ID_PREFIX)
    assert is_auto_connection_id(auto_id)
    assert not is_auto_connection_id(manual_id)


def test_auto_connection_id_is_deterministic_and_unambiguous() -> None:
    assert make_auto_connection_id("n1", "out", "n2", "in") == make_auto_connection_id("n1", "out", "n2", "in")
    # 端口名中含分隔符也不会与其他四元组冲突
    assert make_auto_connection_id("a:b", "c", "d", "e") != make_auto_connection_id("a", "b:c", "d", "e")


def test_gen_node_id_skips_existing_ids() -> None:
    model = GraphModel()
    model.add_node("x", "x", node_id="node_1")
    node = model.add_node("y", "y")
    assert node.id == "node_2"


def test_remove_node_cascades_to_connections() -> None:
    model = _two_node_model()
    model.add_node("filter", "过滤", node_id="n3")
    first = model.add_manual_connection("n1", "out", "n2", "in")
    second = model.add_manual_connection("n3", "out", "n2", "in")
    untouched = model.add_manual_connection("n1", "out", "n3", "in")

    removed = model.remove_node("n2")

    assert sorted(removed) == sorted([first.id, second.id])
    assert list(model.connections) == [untouched.id]
    assert "n2" not in model.nodes


def test_manual_connection_rejections() -> None:
    model = _two_node_model()
    model.add_manual_connection("n1", "out", "n2", "in")

    with pytest.raises(ConnectionRejectedError):
        model.add_manual_connection("n1", "out", "n1", "in")
    with pytest.raises(ConnectionRejectedError):
        model.add_manual_connection("n1", "out", "n2", "in")
    with pytest.raises(ConnectionRejectedError):
        model.add_manual_connection("n1", "out", "ghost", "in")

    assert model.check_manual_connection("n1", "out", "n2", "other") is None


def test_running_flow_rejects_structural_edits_only() -> None:
    model = _two_node_model()
    connection = model.add_manual_connection("n1", "out", "n2", "in")
    model.runtime_state = "running"

    with pytest.raises(GraphEditRejectedError):
        model.add_node("x", "x")
    with pytest.raises(GraphEditRejectedError):
        model.remove_node("n1")
    with pytest.raises(GraphEditRejectedError):
        model.add_manual_connection("n2", "out", "n1", "in")
    with pytest.raises(GraphEditRejectedError):
        model.remove_connection(connection.id)

    model.move_node("n1", (10.0, 20.0))
    model.update_node_config("n2", {"k": 1})
    assert model.nodes["n1"].position == (10.0, 20.0)
    assert model.nodes["n2"].config == {"k": 1}


def test_unknown_node_edit_raises_key_error() -> None:
    model = GraphModel()
    with pytest.raises(KeyError):
        model.move_node("missing", (0.0, 0.0))


def test_serialize_roundtrip_keeps_provenance_and_drops_validation_state() -> None:
    model = _two_node_model()
    manual = model.add_manual_connection("n1", "out", "n2", "in")
    manual.validation_state = ValidationState.ERROR
    model.nodes["n1"].config = {"port": 14550}

    data = model.serialize()
    assert data["nodes"][0] == {
        "id": "n1",
        "component": "udp",
        "type": "",
        "name": "输入",
        "position": {"x": 0.0, "y": 0.0},
        "config": {"port": 14550},
    }
    assert data["connections"][0]["source"] == "manual"
    assert "validation_state" not in data["connections"][0]

    restored = GraphModel.deserialize(data)
    assert restored.connections[manual.id].provenance == ConnectionProvenance.MANUAL
    assert restored.connections[manual.id].validation_state == ValidationState.UNKNOWN
    assert restored.nodes["n1"].config == {"port": 14550}


def test_deserialize_tolerates_null_collections_and_infers_provenance() -> None:
    empty = GraphModel.deserialize({"id": "f", "name": "n", "nodes": None, "connections": None})
    assert empty.nodes == {}
    assert empty.connections == {}

    auto_id = make_auto_connection_id("a", "out", "b", "in")
    model = GraphModel.deserialize(
        {
            "id": "f",
            "nodes": [
                {"id": "a", "component": "x", "name": "A", "position": {"x": 1, "y": 2}},
                {"id": "b", "component": "y", "name": "B"},
            ],
            "connections": [
                {"id": auto_id, "source_node_id": "a", "source_port": "out", "target_node_id": "b", "target_port": "in"},
            ],
        }
    )
    assert model.connections[auto_id].provenance == ConnectionProvenance.AUTO
    assert model.nodes["a"].position == (1.0, 2.0)
    assert model.nodes["b"].position == (0.0, 0.0)


def test_restore_structure_keeps_identity_and_runtime_state() -> None:
    model = _two_node_model()
    snapshot = model.serialize()
    model.add_manual_connection("n1", "out", "n2", "in")
    model.version = 7
    model.runtime_state = "deployed_stopped"

    model.restore_structure(snapshot)

    assert model.connections == {}
    assert model.version == 7
    assert model.runtime_state == "deployed_stopped"


def test_restore_structure_keeps_validated_state_of_surviving_items() -> None:
    model = _two_node_model()
    manual = model.add_manual_connection("n1", "out", "n2", "in")
    snapshot = model.serialize()

    # 校验写入的派生状态
    model.nodes["n1"].output_ports = [PortInfo("out", PortDirection.OUTPUT, validation_state=ValidationState.VALID)]
    manual.validation_state = ValidationState.ERROR
    manual.validation_message = "type mismatch"
    auto_id = make_auto_connection_id("n1", "events", "n2", "in")
    model.connections[auto_id] = ConnectionModel(
        auto_id, "n1", "events", "n2", "in", provenance=ConnectionProvenance.AUTO
    )
    model.move_node("n1", (40.0, 0.0))

    model.restore_structure(snapshot)

    assert model.nodes["n1"].position == (0.0, 0.0)
    assert [port.name for port in model.nodes["n1"].output_ports] == ["out"]
    assert model.nodes["n2"].input_ports is None
    assert model.connections[manual.id].validation_state == ValidationState.ERROR
    assert model.connections[manual.id].validation_message == "type mismatch"
    assert list(model.connections) == [manual.id, auto_id]


def test_restore_structure_ignores_snapshot_auto_connections_and_drops_orphaned_ones() -> None:
    model = _two_node_model()
    stale_auto_id = make_auto_connection_id("n1", "old", "n2", "in")
    model.connections[stale_auto_id] = ConnectionModel(
        stale_auto_id, "n1", "old", "n2", "in", provenance=ConnectionProvenance.AUTO
    )
    snapshot = model.serialize()

    model.connections.pop(stale_auto_id)
    model.add_node("filter", "过滤", node_id="n3")
    orphan_id = make_auto_connection_id("n1", "out", "n3", "in")
    model.connections[orphan_id] = ConnectionModel(
        orphan_id, "n1", "out", "n3", "in", provenance=ConnectionProvenance.AUTO
    )

    model.restore_structure(snapshot)

    assert "n3" not in model.nodes
    assert model.connections == {}


def test_deserialize_tolerates_unknown_source_and_null_coordinates() -> None:
    auto_id = make_auto_connection_id("a", "out", "b", "in")
    model = GraphModel.deserialize(
        {
            "id": "f",
            "nodes": [
                {"id": "a", "position": {"x": None, "y": "12.5"}},
                {"id": "b", "position": {"x": "left", "y": 3}},
            ],
            "connections": [
                {"id": auto_id, "source_node_id": "a", "source_port": "out", "target_node_id": "b", "target_port": "in", "source": "inferred"},
                {"id": "conn_1_aaaaaaa", "source_node_id": "a", "source_port": "x", "target_node_id": "b", "target_port": "y", "source": "MANUAL"},
            ],
        }
    )
    assert model.nodes["a"].position == (0.0, 12.5)
    assert model.nodes["b"].position == (0.0, 3.0)
    assert model.connections[auto_id].provenance == ConnectionProvenance.AUTO
    assert model.connections["conn_1_aaaaaaa"].provenance == ConnectionProvenance.MANUAL
