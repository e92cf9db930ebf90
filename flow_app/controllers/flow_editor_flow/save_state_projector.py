from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flow_app.models.save_state import SaveState
from flow_engine.validate.validation_result import (
    ValidationResult,
    ValidationStatus,
    format_error_count,
)


@dataclass(slots=True)
class FlowSaveStateProjector:
    """保存状态投影器（保存状态的唯一真源）。

    推导顺序：
    - saving / error 是围绕保存请求的瞬时状态，不由校验结果推导；
    - 存在未保存修改时为 dirty；
    - 否则看最近一次"保存时"服务端确认的校验：errors → draft，其余 → clean。
    编辑期间的自动校验只影响端口/连线的提示，不参与保存状态推导。

    用"编辑代数"判断未保存修改：保存开始时记录代数，保存成功后只把该代数标记为已保存，
    因此保存进行中发生的编辑在保存完成后仍为 dirty。
    """

    edit_generation: int = 0
    saved_generation: int = 0
    save_started_generation: Optional[int] = None
    last_saved: Optional[datetime] = None
    last_save_validation: Optional[ValidationResult] = None
    save_error: Optional[str] = None

    @property
    def is_saving(self) -> bool:
        return self.save_started_generation is not None

    @property
    def has_unsaved_changes(self) -> bool:
        return self.edit_generation != self.saved_generation

    def on_flow_loaded(self) -> SaveState:
        self.edit_generation = 0
        self.saved_generation = 0
        self.save_started_generation = None
        self.last_saved = None
        self.last_save_validation = None
        self.save_error = None
        return self.derive()

    def on_modified(self) -> SaveState:
        self.edit_generation += 1
        self.save_error = None
        return self.derive()

    def on_save_started(self) -> SaveState:
        self.save_started_generation = self.edit_generation
        self.save_error = None
        return self.derive()

    def on_save_succeeded(
        self,
        validation_result: Optional[ValidationResult],
        *,
        saved_at: Optional[datetime] = None,
    ) -> SaveState:
        started_generation = self.save_started_generation
        self.saved_generation = started_generation if started_generation is not None else self.edit_generation
        self.save_started_generation = None
        self.last_saved = saved_at if saved_at is not None else datetime.now()
        self.last_save_validation = validation_result
        self.save_error = None
        return self.derive()

    def on_save_failed(self, message: str) -> SaveState:
        self.save_started_generation = None
        self.save_error = str(message or "Save failed")
        return self.derive()

    def derive(self) -> SaveState:
        if self.is_saving:
            return SaveState(
                status="saving",
                last_saved=self.last_saved,
                validation_result=self.last_save_validation,
            )
        if self.save_error is not None:
            return SaveState(
                status="error",
                last_saved=self.last_saved,
                error=self.save_error,
                validation_result=self.last_save_validation,
            )
        if self.has_unsaved_changes:
            return SaveState(
                status="dirty",
                last_saved=self.last_saved,
                validation_result=self.last_save_validation,
            )
        validation = self.last_save_validation
        if validation is not None and validation.status == ValidationStatus.ERRORS:
            return SaveState(
                status="draft",
                last_saved=self.last_saved,
                error=format_error_count(validation.error_count),
                validation_result=validation,
            )
        return SaveState(
            status="clean",
            last_saved=self.last_saved,
            validation_result=validation,
        )
