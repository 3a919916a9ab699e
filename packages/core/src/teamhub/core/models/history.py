"""Task History Domain Model

历史表 append-only，不允许更新或删除。
task_id 仅为反向引用：任务删除后历史记录仍保留。
task_seq 同一 task 内严格单调递增。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import HistoryAction


class HistoryEntry(BaseModel):
    """task_history 表记录"""

    history_id: str = Field(description="唯一标识，ULID 格式")
    task_id: str = Field(description="关联的 Task ID（任务可能已删除）")
    task_seq: int = Field(description="任务内序号，严格单调递增")
    user_id: str = Field(description="操作者用户 ID")
    action: HistoryAction = Field(description="动作类型")
    field_changed: str | None = Field(default=None, description="变更字段")
    old_value: str | None = Field(default=None, description="旧值")
    new_value: str | None = Field(default=None, description="新值")
    ts: datetime = Field(description="记录时间戳")
