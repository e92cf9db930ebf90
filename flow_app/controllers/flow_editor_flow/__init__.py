"""流程编辑器流程服务与保存状态投影器。

说明：
- 本包将 FlowEditorController 的跨域链路拆成可组合、可定位的流程服务；
- 控制器仅负责信号转发与依赖注入，不在此处写 UI 级 Qt 信号。
"""

from .save_state_projector import FlowSaveStateProjector
from .load_service import FlowEditorLoadService, FlowEditorLoadResult
from .save_service import FlowEditorSaveService, FlowEditorSaveResult
from .deploy_service import FlowEditorDeployService, FlowEditorDeployResult
from .validation_apply_service import FlowEditorValidationApplyService

__all__ = [
    "FlowSaveStateProjector",
    "FlowEditorLoadService",
    "FlowEditorLoadResult",
    "FlowEditorSaveService",
    "FlowEditorSaveResult",
    "FlowEditorDeployService",
    "FlowEditorDeployResult",
    "FlowEditorValidationApplyService",
]
