"""流程服务 HTTP 客户端（校验 / 读取 / 保存 / 部署生命周期）。

后端路由：
- POST /flowbuilder/flows/{id}/validate
- GET  /flowbuilder/flows/{id}
- PUT  /flowbuilder/flows/{id}
- POST /flowbuilder/deployment/{id}/{deploy|start|stop|undeploy}

错误体约定为 `{"error": str, "validation_result"?: {...}}`。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, Mapping, Optional

import httpx

from flow_app.models.runtime_state import RuntimeState, normalize_runtime_state
from flow_engine.configs.settings import settings
from flow_engine.utils.logging.logger import log_debug, log_info
from flow_engine.validate.validation_result import ValidationResult


DeploymentOperation = Literal["deploy", "start", "stop", "undeploy"]

FLOWS_API_PREFIX = "/flowbuilder/flows"
DEPLOYMENT_API_PREFIX = "/flowbuilder/deployment"


class FlowApiError(Exception):
    """流程服务返回非 2xx。"""

    def __init__(self, message: str, status_code: int = 0, details: Any = None) -> None:
        super().__init__(message)
        self.message = str(message)
        self.status_code = int(status_code)
        self.details = details


class FlowApiUnavailableError(FlowApiError):
    """网络层失败（连接失败 / 超时），服务未给出响应。"""


class FlowValidationFailedError(FlowApiError):
    """部署类操作因结构校验失败被拒绝；携带服务端校验结果原样给调用方。"""

    def __init__(
        self,
        message: str,
        validation_result: ValidationResult,
        status_code: int = 0,
        details: Any = None,
    ) -> None:
        super().__init__(message, status_code, details)
        self.validation_result = validation_result


@dataclass(frozen=True, slots=True)
class FlowSaveResponse:
    version: int
    runtime_state: RuntimeState
    updated_at: str = ""


@dataclass(frozen=True, slots=True)
class RuntimeTransition:
    runtime_state: RuntimeState
    updated_at: str = ""


def normalize_flow_payload(flow: Mapping[str, Any]) -> Dict[str, Any]:
    """nodes / connections 可能为 null，统一成列表。"""
    normalized = dict(flow)
    normalized["nodes"] = list(flow.get("nodes") or [])
    normalized["connections"] = list(flow.get("connections") or [])
    return normalized


class FlowApiClient:
    """同步 HTTP 客户端；校验请求在后台线程调用，保存/部署在 UI 线程调用。"""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=str(base_url).rstrip("/"),
            timeout=float(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, *, transport: Optional[httpx.BaseTransport] = None) -> "FlowApiClient":
        base_url = str(getattr(settings, "FLOW_API_BASE_URL", "http://localhost:8080"))
        timeout = float(getattr(settings, "FLOW_API_TIMEOUT_SECONDS", 10.0))
        log_info("[API] FlowApiClient: base_url={} timeout={}s", base_url, timeout)
        return cls(base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "FlowApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ===== 内部 =====

    def _request(self, method: str, path: str, *, operation: str, json_body: Any = None) -> httpx.Response:
        log_debug("VALIDATOR_VERBOSE", "[API] {} {}", method, path)
        try:
            response = self._client.request(method, path, json=json_body)
        except httpx.RequestError as exc:
            raise FlowApiUnavailableError(f"Failed to {operation}: {exc}") from exc
        if response.is_success:
            return response
        raise self._error_from_response(response, operation)

    @staticmethod
    def _error_from_response(response: httpx.Response, operation: str) -> FlowApiError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = str(body.get("error") or f"Failed to {operation}: {response.reason_phrase}")
        validation_payload = body.get("validation_result")
        if validation_payload:
            return FlowValidationFailedError(
                message,
                ValidationResult.from_payload(validation_payload),
                status_code=response.status_code,
                details=body,
            )
        return FlowApiError(message, status_code=response.status_code, details=body)

    @staticmethod
    def _json_object(response: httpx.Response, operation: str) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise FlowApiError(
                f"Failed to {operation}: invalid JSON response",
                status_code=response.status_code,
            ) from exc
        if not isinstance(body, dict):
            raise FlowApiError(
                f"Failed to {operation}: unexpected response shape",
                status_code=response.status_code,
                details=body,
            )
        return body

    # ===== 校验 / 读写 =====

    def validate_flow(self, flow_id: str, definition: Mapping[str, Any]) -> ValidationResult:
        response = self._request(
            "POST",
            f"{FLOWS_API_PREFIX}/{flow_id}/validate",
            operation="validate flow",
            json_body=dict(definition),
        )
        return ValidationResult.from_payload(self._json_object(response, "validate flow"))

    def get_flow(self, flow_id: str) -> Dict[str, Any]:
        response = self._request("GET", f"{FLOWS_API_PREFIX}/{flow_id}", operation="get flow")
        return normalize_flow_payload(self._json_object(response, "get flow"))

    def save_flow(self, flow_id: str, definition: Mapping[str, Any]) -> FlowSaveResponse:
        response = self._request(
            "PUT",
            f"{FLOWS_API_PREFIX}/{flow_id}",
            operation="save flow",
            json_body=dict(definition),
        )
        body = self._json_object(response, "save flow")
        return FlowSaveResponse(
            version=int(body.get("version") or 0),
            runtime_state=normalize_runtime_state(body.get("runtime_state")),
            updated_at=str(body.get("updated_at") or ""),
        )

    # ===== 部署生命周期 =====

    def run_deployment_operation(self, flow_id: str, operation: DeploymentOperation) -> RuntimeTransition:
        response = self._request(
            "POST",
            f"{DEPLOYMENT_API_PREFIX}/{flow_id}/{operation}",
            operation=f"{operation} flow",
        )
        # 部分后端版本对生命周期操作返回空体
        if not response.content:
            return RuntimeTransition(runtime_state=_EXPECTED_STATE_AFTER[operation])
        body = self._json_object(response, f"{operation} flow")
        runtime_state_text = body.get("runtime_state")
        return RuntimeTransition(
            runtime_state=(
                normalize_runtime_state(runtime_state_text)
                if runtime_state_text
                else _EXPECTED_STATE_AFTER[operation]
            ),
            updated_at=str(body.get("updated_at") or ""),
        )

    def deploy_flow(self, flow_id: str) -> RuntimeTransition:
        return self.run_deployment_operation(flow_id, "deploy")

    def start_flow(self, flow_id: str) -> RuntimeTransition:
        return self.run_deployment_operation(flow_id, "start")

    def stop_flow(self, flow_id: str) -> RuntimeTransition:
        return self.run_deployment_operation(flow_id, "stop")

    def undeploy_flow(self, flow_id: str) -> RuntimeTransition:
        return self.run_deployment_operation(flow_id, "undeploy")


_EXPECTED_STATE_AFTER: Dict[str, RuntimeState] = {
    "deploy": "deployed_stopped",
    "start": "running",
    "stop": "deployed_stopped",
    "undeploy": "not_deployed",
}
