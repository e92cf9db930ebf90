from .flow_history import FlowHistory, FlowSnapshot

__all__ = ["FlowHistory", "FlowSnapshot"]
