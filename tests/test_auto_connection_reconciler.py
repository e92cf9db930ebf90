from __future__ import annotations

from flow_engine.graph.connection_ids import make_auto_connection_id
from flow_engine.graph.models.graph_model import (
    ConnectionModel,
    ConnectionProvenance,
    ValidationState,
)
from flow_engine.validate.auto_connection_reconciler import reconcile_auto_connections
from flow_engine.validate.validation_result import DiscoveredConnection


def _manual(connection_id: str, source: str, target: str) -> ConnectionModel:
    return ConnectionModel(connection_id, source, "out", target, "in", provenance=ConnectionProvenance.MANUAL)


def _auto(source: str, target: str) -> ConnectionModel:
    return ConnectionModel(
        make_auto_connection_id(source, "out", target, "in"),
        source,
        "out",
        target,
        "in",
        provenance=ConnectionProvenance.AUTO,
    )


def _snapshot(connections: list[ConnectionModel]) -> list[tuple]:
    return [
        (c.id, c.source_node_id, c.source_port, c.target_node_id, c.target_port, c.provenance, c.validation_state)
        for c in connections
    ]


def test_auto_connections_are_replaced_and_manual_kept_untouched() -> None:
    manual = _manual("conn_1_abcdefg", "n1", "n2")
    manual.validation_state = ValidationState.WARNING
    stale_auto = _auto("n2", "n3")

    discovered = [DiscoveredConnection("n1", "out", "n3", "in", pattern="nats")]
    reconciled = reconcile_auto_connections([manual, stale_auto], discovered)

    assert reconciled[0] is manual
    assert manual.validation_state == ValidationState.WARNING
    assert [c.id for c in reconciled[1:]] == [make_auto_connection_id("n1", "out", "n3", "in")]
    assert reconciled[1].provenance == ConnectionProvenance.AUTO
    assert stale_auto.id not in {c.id for c in reconciled}


def test_reconcile_is_idempotent() -> None:
    current = [_manual("conn_1_abcdefg", "n1", "n2"), _auto("n2", "n3")]
    discovered = [
        DiscoveredConnection("n1", "out", "n3", "in"),
        DiscoveredConnection("n2", "out", "n3", "in"),
    ]

    once = reconcile_auto_connections(current, discovered)
    twice = reconcile_auto_connections(once, discovered)

    assert _snapshot(once) == _snapshot(twice)


def test_duplicate_discoveries_collapse_to_one_connection() -> None:
    discovered = [DiscoveredConnection("n1", "out", "n2", "in")] * 3
    reconciled = reconcile_auto_connections([], discovered)
    assert len(reconciled) == 1


def test_empty_discovery_removes_all_auto_connections() -> None:
    manual = _manual("conn_1_abcdefg", "n1", "n2")
    reconciled = reconcile_auto_connections([manual, _auto("n2", "n3")], [])
    assert reconciled == [manual]


def test_incomplete_discoveries_are_ignored() -> None:
    reconciled = reconcile_auto_connections([], [DiscoveredConnection("n1", "", "n2", "in")])
    assert reconciled == []


def test_existing_auto_connection_keeps_its_validation_state() -> None:
    existing = _auto("n1", "n2")
    existing.validation_state = ValidationState.ERROR
    reconciled = reconcile_auto_connections([existing], [DiscoveredConnection("n1", "out", "n2", "in")])
    assert reconciled[0].id == existing.id
    assert reconciled[0].validation_state == ValidationState.ERROR
