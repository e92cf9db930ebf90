from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from flow_engine.validate.validation_result import ValidationResult


SaveStatus = Literal["clean", "dirty", "draft", "saving", "error"]


@dataclass(frozen=True, slots=True)
class SaveState:
    """保存状态快照（由保存状态投影器产出，UI 只读）。

    - clean：无未保存修改，且最近一次保存时的校验无错误
    - dirty：存在尚未持久化的本地修改
    - draft：已保存，但保存时校验存在错误（允许保存半成品）
    - saving：保存请求进行中
    - error：保存请求失败
    """

    status: SaveStatus
    last_saved: Optional[datetime] = None
    error: Optional[str] = None
    validation_result: Optional[ValidationResult] = None

    @property
    def has_unsaved_changes(self) -> bool:
        return self.status == "dirty"
