from __future__ import annotations

from flow_engine.graph.connection_ids import make_auto_connection_id
from flow_engine.graph.models.graph_model import GraphModel, PortDirection, ValidationState
from flow_engine.graph.signature import compute_model_signature
from flow_engine.validate.auto_connection_reconciler import reconcile_auto_connections
from flow_engine.validate.validation_applier import apply_validation_result
from flow_engine.validate.validation_result import ValidationResult


def _model() -> GraphModel:
    model = GraphModel(flow_id="flow-1", name="demo")
    model.add_node("udp", "udp-in", node_id="n1")
    model.add_node("filter", "filter", node_id="n2")
    model.add_node("sink", "sink", node_id="n3")
    model.add_manual_connection("n1", "out", "n2", "in", connection_id="conn_1_aaaaaaa")
    model.add_manual_connection("n2", "out", "n3", "in", connection_id="conn_2_bbbbbbb")
    return model


def _node_payload(node_id: str) -> dict:
    return {
        "id": node_id,
        "input_ports": [{"name": "in", "direction": "input", "required": True}],
        "output_ports": [{"name": "out", "direction": "output"}],
    }


def test_ports_are_populated_only_after_validation() -> None:
    model = _model()
    assert model.nodes["n1"].input_ports is None

    apply_validation_result(
        model,
        ValidationResult.from_payload({"validation_status": "valid", "nodes": [_node_payload("n1")]}),
    )

    ports = model.nodes["n1"].input_ports
    assert ports is not None and ports[0].name == "in"
    assert ports[0].direction == PortDirection.INPUT
    assert ports[0].validation_state == ValidationState.VALID
    # 结果中未出现的节点保持原状
    assert model.nodes["n2"].input_ports is None


def test_connection_states_follow_issues_and_unmentioned_keep_prior_state() -> None:
    model = _model()
    model.connections["conn_2_bbbbbbb"].validation_state = ValidationState.WARNING

    report = apply_validation_result(
        model,
        ValidationResult.from_payload(
            {
                "validation_status": "errors",
                "errors": [{"component_name": "udp-in", "port_name": "out", "message": "type mismatch"}],
            }
        ),
    )

    assert model.connections["conn_1_aaaaaaa"].validation_state == ValidationState.ERROR
    assert model.connections["conn_1_aaaaaaa"].validation_message == "type mismatch"
    assert model.connections["conn_2_bbbbbbb"].validation_state == ValidationState.WARNING
    assert report.error_connection_ids == ("conn_1_aaaaaaa",)


def test_error_wins_over_warning_on_same_connection() -> None:
    model = _model()
    apply_validation_result(
        model,
        ValidationResult.from_payload(
            {
                "errors": [{"component_name": "n3", "message": "bad sink"}],
                "warnings": [{"component_name": "filter", "port_name": "out", "message": "slow"}],
            }
        ),
    )
    assert model.connections["conn_2_bbbbbbb"].validation_state == ValidationState.ERROR


def test_issue_port_must_match_connection_endpoint() -> None:
    model = _model()
    apply_validation_result(
        model,
        ValidationResult.from_payload(
            {"warnings": [{"component_name": "n2", "port_name": "config", "message": "unused"}]}
        ),
    )
    assert model.connections["conn_1_aaaaaaa"].validation_state == ValidationState.UNKNOWN
    assert model.connections["conn_2_bbbbbbb"].validation_state == ValidationState.UNKNOWN


def test_nodes_deleted_before_response_are_skipped() -> None:
    model = _model()
    model.remove_node("n3")

    report = apply_validation_result(
        model,
        ValidationResult.from_payload({"nodes": [_node_payload("n1"), _node_payload("n3")]}),
    )

    assert report.updated_node_ids == ("n1",)
    assert report.skipped_node_ids == ("n3",)
    assert "n3" not in model.nodes


def test_applying_unchanged_discoveries_does_not_change_signature() -> None:
    model = _model()
    result = ValidationResult.from_payload(
        {
            "validation_status": "valid",
            "nodes": [_node_payload("n1")],
            "discovered_connections": [
                {"source_node_id": "n1", "source_port": "out", "target_node_id": "n3", "target_port": "in"}
            ],
        }
    )
    before = compute_model_signature(model)

    for _ in range(2):
        model.replace_connections(reconcile_auto_connections(model.connections.values(), result.discovered_connections))
        apply_validation_result(model, result)
        assert compute_model_signature(model) == before

    assert make_auto_connection_id("n1", "out", "n3", "in") in model.connections
    assert len(model.connections) == 3
