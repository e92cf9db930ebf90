from __future__ import annotations

import httpx

from flow_app.controllers.flow_editor_flow import (
    FlowEditorDeployService,
    FlowEditorLoadService,
    FlowEditorSaveService,
    FlowEditorValidationApplyService,
)
from flow_app.models.runtime_state import RuntimeStateInfo
from flow_engine.graph.connection_ids import make_auto_connection_id
from flow_engine.graph.models.graph_model import GraphModel, ValidationState
from flow_engine.validate.validation_result import ValidationResult, ValidationStatus


def _model(flow_id: str = "flow-1") -> GraphModel:
    model = GraphModel(flow_id=flow_id, name="demo")
    model.add_node("udp", "udp-in", node_id="n1")
    model.add_node("sink", "sink", node_id="n2")
    model.add_manual_connection("n1", "out", "n2", "in", connection_id="conn_1_aaaaaaa")
    return model


# ===== 加载 =====


def test_load_deserializes_flow(fake_flow_service) -> None:
    fake_flow_service.add_flow(_model().serialize())
    result = FlowEditorLoadService().load_flow(api=fake_flow_service.client(), flow_id="flow-1")

    assert result.success
    assert result.model is not None
    assert list(result.model.nodes) == ["n1", "n2"]
    assert list(result.model.connections) == ["conn_1_aaaaaaa"]


def test_load_failures_are_classified(fake_flow_service) -> None:
    service = FlowEditorLoadService()
    api = fake_flow_service.client()

    assert service.load_flow(api=api, flow_id=" ").error_code == "incomplete_data"
    assert service.load_flow(api=api, flow_id="missing").error_code == "load_failed"

    fake_flow_service.overrides[("GET", "/flowbuilder/flows/down")] = httpx.ConnectTimeout("timed out")
    assert service.load_flow(api=api, flow_id="down").error_code == "unavailable"


# ===== 保存 =====


def test_save_validates_then_persists_and_updates_model(fake_flow_service) -> None:
    model = _model()
    result = FlowEditorSaveService().save_flow(api=fake_flow_service.client(), model=model)

    assert result.success
    assert result.validation_result is not None
    assert result.validation_result.status == ValidationStatus.VALID
    assert model.version == 1
    methods = [(method, path) for method, path, _ in fake_flow_service.requests]
    assert methods == [("POST", "/flowbuilder/flows/flow-1/validate"), ("PUT", "/flowbuilder/flows/flow-1")]


def test_save_with_validation_errors_still_persists(fake_flow_service) -> None:
    fake_flow_service.validation_payload = {
        "validation_status": "errors",
        "errors": [{"component_name": "n2", "message": "missing config"}],
    }
    result = FlowEditorSaveService().save_flow(api=fake_flow_service.client(), model=_model())
    assert result.success
    assert result.validation_result.error_count == 1
    assert "flow-1" in fake_flow_service.flows


def test_save_tolerates_validator_outage(fake_flow_service) -> None:
    fake_flow_service.overrides[("POST", "/flowbuilder/flows/flow-1/validate")] = httpx.Response(503)
    result = FlowEditorSaveService().save_flow(api=fake_flow_service.client(), model=_model())
    assert result.success
    assert result.validation_result is None


def test_save_failure_codes(fake_flow_service) -> None:
    service = FlowEditorSaveService()
    api = fake_flow_service.client()

    assert service.save_flow(api=api, model=GraphModel()).error_code == "incomplete_data"

    fake_flow_service.overrides[("PUT", "/flowbuilder/flows/flow-1")] = httpx.Response(409, json={"error": "version conflict"})
    conflict = service.save_flow(api=api, model=_model())
    assert (conflict.success, conflict.error_code, conflict.error_message) == (False, "conflict", "version conflict")

    fake_flow_service.overrides[("PUT", "/flowbuilder/flows/flow-1")] = httpx.Response(500, json={"error": "disk full"})
    assert service.save_flow(api=api, model=_model()).error_code == "save_failed"

    fake_flow_service.overrides[("PUT", "/flowbuilder/flows/flow-1")] = httpx.ConnectError("refused")
    assert service.save_flow(api=api, model=_model()).error_code == "unavailable"


def test_save_definition_leaves_model_untouched_until_applied(fake_flow_service) -> None:
    service = FlowEditorSaveService()
    model = _model()
    model.runtime_state = "running"
    fake_flow_service.add_flow({"id": "flow-1", "runtime_state": "deployed_stopped"})

    result = service.save_definition(api=fake_flow_service.client(), definition=model.serialize())

    assert result.success
    assert (model.version, model.runtime_state) == (0, "running")

    service.apply_to_model(model=model, result=result)
    assert model.version == result.response.version
    assert model.runtime_state == "deployed_stopped"


# ===== 部署 =====


def test_deploy_lifecycle_transitions(fake_flow_service) -> None:
    service = FlowEditorDeployService()
    api = fake_flow_service.client()
    fake_flow_service.add_flow(_model().serialize())
    runtime = RuntimeStateInfo()

    for operation, expected in (
        ("deploy", "deployed_stopped"),
        ("start", "running"),
        ("stop", "deployed_stopped"),
        ("undeploy", "not_deployed"),
    ):
        result = service.run_operation(api=api, flow_id="flow-1", operation=operation, runtime=runtime)
        assert result.success, result.error_message
        assert result.runtime.state == expected
        runtime = result.runtime


def test_operation_not_allowed_from_current_state_is_rejected_locally(fake_flow_service) -> None:
    result = FlowEditorDeployService().run_operation(
        api=fake_flow_service.client(),
        flow_id="flow-1",
        operation="start",
        runtime=RuntimeStateInfo(state="not_deployed"),
    )
    assert result.error_code == "invalid_runtime_state"
    assert fake_flow_service.requests == []


def test_deploy_rejected_by_validation_returns_result(fake_flow_service) -> None:
    fake_flow_service.overrides[("POST", "/flowbuilder/deployment/flow-1/deploy")] = httpx.Response(
        400,
        json={
            "error": "Flow validation failed",
            "validation_result": {"validation_status": "errors", "errors": [{"component_name": "n1", "message": "x"}]},
        },
    )
    result = FlowEditorDeployService().run_operation(
        api=fake_flow_service.client(), flow_id="flow-1", operation="deploy", runtime=RuntimeStateInfo()
    )
    assert result.error_code == "validation_failed"
    assert result.runtime.state == "not_deployed"
    assert result.runtime.message == "Flow validation failed"
    assert result.validation_result is not None and result.validation_result.error_count == 1


def test_deploy_failure_moves_to_error_state(fake_flow_service) -> None:
    fake_flow_service.overrides[("POST", "/flowbuilder/deployment/flow-1/deploy")] = httpx.Response(
        500, json={"error": "nats unavailable"}
    )
    result = FlowEditorDeployService().run_operation(
        api=fake_flow_service.client(), flow_id="flow-1", operation="deploy", runtime=RuntimeStateInfo()
    )
    assert result.error_code == "operation_failed"
    assert result.runtime.state == "error"
    assert result.runtime.message == "nats unavailable"


# ===== 校验结果应用 =====


def test_validation_apply_reconciles_then_marks_states() -> None:
    model = _model()
    result = ValidationResult.from_payload(
        {
            "validation_status": "warnings",
            "warnings": [{"component_name": "n2", "port_name": "in", "message": "slow consumer"}],
            "discovered_connections": [
                {"source_node_id": "n1", "source_port": "events", "target_node_id": "n2", "target_port": "in"}
            ],
        }
    )

    report = FlowEditorValidationApplyService().apply(model=model, result=result)

    auto_id = make_auto_connection_id("n1", "events", "n2", "in")
    assert list(model.connections) == ["conn_1_aaaaaaa", auto_id]
    assert model.connections[auto_id].validation_state == ValidationState.WARNING
    assert set(report.warning_connection_ids) == {"conn_1_aaaaaaa", auto_id}


def test_validation_apply_skips_discoveries_for_deleted_nodes() -> None:
    model = _model()
    result = ValidationResult.from_payload(
        {
            "validation_status": "valid",
            "discovered_connections": [
                {"source_node_id": "n1", "source_port": "events", "target_node_id": "n2", "target_port": "in"},
                {"source_node_id": "n1", "source_port": "out", "target_node_id": "gone", "target_port": "in"},
            ],
        }
    )

    FlowEditorValidationApplyService().apply(model=model, result=result)

    assert list(model.connections) == ["conn_1_aaaaaaa", make_auto_connection_id("n1", "events", "n2", "in")]
    assert all(connection["target_node_id"] != "gone" for connection in model.serialize()["connections"])
