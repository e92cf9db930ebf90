from __future__ import annotations

import json
import sys
from pathlib import Path

import httpx
import pytest

# 确保项目根目录在 sys.path 中，便于在 pytest 下稳定导入 `flow_engine`、`flow_app` 等包。
PROJECT_ROOT = Path(__file__).resolve().parents[1]
PROJECT_ROOT_STR = str(PROJECT_ROOT)
if PROJECT_ROOT_STR not in sys.path:
    sys.path.insert(0, PROJECT_ROOT_STR)

from flow_app.services.flow_api_client import FlowApiClient  # noqa: E402
from flow_engine.configs.settings import Settings  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_settings_to_defaults():
    # 设置是类属性，测试间相互隔离
    Settings.reset_to_defaults()
    yield
    Settings.reset_to_defaults()


class FakeFlowService:
    """基于 httpx.MockTransport 的流程服务替身（内存存储）。

    `overrides[(method, path)]` 可以是 httpx.Response，也可以是在处理请求时抛出的异常。
    """

    def __init__(self) -> None:
        self.flows: dict[str, dict] = {}
        self.requests: list[tuple[str, str, object]] = []
        self.validation_payload: dict = {"validation_status": "valid", "errors": [], "warnings": []}
        self.overrides: dict[tuple[str, str], object] = {}

    def add_flow(self, flow: dict) -> None:
        self.flows[str(flow["id"])] = dict(flow)

    def requests_to(self, method: str, path: str) -> list[object]:
        return [body for req_method, req_path, body in self.requests if (req_method, req_path) == (method, path)]

    def client(self) -> FlowApiClient:
        return FlowApiClient("http://flow.test", transport=httpx.MockTransport(self.handler))

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.requests.append((method, path, body))

        override = self.overrides.get((method, path))
        if isinstance(override, Exception):
            raise override
        if isinstance(override, httpx.Response):
            return override

        parts = [part for part in path.split("/") if part]
        if parts[:2] == ["flowbuilder", "flows"] and len(parts) == 4 and parts[3] == "validate" and method == "POST":
            return httpx.Response(200, json=self.validation_payload)
        if parts[:2] == ["flowbuilder", "flows"] and len(parts) == 3:
            flow_id = parts[2]
            if method == "GET":
                if flow_id not in self.flows:
                    return httpx.Response(404, json={"error": "flow not found"})
                return httpx.Response(200, json=self.flows[flow_id])
            if method == "PUT":
                previous = self.flows.get(flow_id, {})
                stored = dict(body or {})
                stored["version"] = int(previous.get("version") or 0) + 1
                stored["runtime_state"] = previous.get("runtime_state") or "not_deployed"
                self.flows[flow_id] = stored
                return httpx.Response(
                    200,
                    json={
                        "version": stored["version"],
                        "runtime_state": stored["runtime_state"],
                        "updated_at": "2026-01-01T00:00:00Z",
                    },
                )
        if parts[:2] == ["flowbuilder", "deployment"] and len(parts) == 4 and method == "POST":
            flow_id, operation = parts[2], parts[3]
            next_state = {
                "deploy": "deployed_stopped",
                "start": "running",
                "stop": "deployed_stopped",
                "undeploy": "not_deployed",
            }[operation]
            self.flows.setdefault(flow_id, {"id": flow_id})["runtime_state"] = next_state
            return httpx.Response(200, json={"runtime_state": next_state, "updated_at": "2026-01-01T00:00:00Z"})
        return httpx.Response(404, json={"error": f"no route: {method} {path}"})


@pytest.fixture
def fake_flow_service() -> FakeFlowService:
    return FakeFlowService()
