"""Task Domain Model

Task 记录 + 创建/更新命令 + 列表筛选条件。
completed_at 非空当且仅当 status == completed。
"""

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..config import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from ..exceptions import ValidationError
from .enums import TaskStatus, Urgency

M = TypeVar("M", bound=BaseModel)


class Task(BaseModel):
    """Task 数据模型

    assignee_id 为历史遗留的单负责人字段，多负责人关系由 task_assignees 表维护。
    project_name 仅在查询时通过 projects 表关联填充。
    """

    task_id: str = Field(description="唯一标识，ULID 格式")
    title: str = Field(description="任务标题")
    description: str | None = Field(default=None, description="任务描述")
    urgency: Urgency = Field(default=Urgency.MEDIUM, description="紧急程度")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="当前状态")
    department: str = Field(default="", description="所属部门")
    project_id: str | None = Field(default=None, description="所属项目 ID")
    project_name: str | None = Field(default=None, description="所属项目名称（查询时填充）")
    assignee_id: str | None = Field(default=None, description="遗留单负责人 ID")
    created_by: str = Field(description="创建者用户 ID")
    deadline: date = Field(description="截止日期")
    completed_at: datetime | None = Field(default=None, description="完成时间")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED


class TaskCreate(BaseModel):
    """创建任务命令"""

    title: str
    description: str | None = None
    urgency: Urgency = Urgency.MEDIUM
    department: str = ""
    project_id: str | None = None
    assignee_id: str | None = None
    assignee_ids: list[str] = Field(default_factory=list)
    deadline: date


class TaskUpdate(BaseModel):
    """部分更新命令 -- 仅 model_fields_set 中的字段会被写入"""

    title: str | None = None
    description: str | None = None
    urgency: Urgency | None = None
    status: TaskStatus | None = None
    department: str | None = None
    project_id: str | None = None
    assignee_id: str | None = None
    deadline: date | None = None


class TaskFilter(BaseModel):
    """任务列表筛选条件"""

    status: TaskStatus | None = None
    urgency: Urgency | None = None
    department: str | None = None
    project_id: str | None = None
    assignee_id: str | None = Field(
        default=None,
        description="匹配遗留 assignee_id 字段或 task_assignees 中的负责人",
    )
    is_completed: bool | None = None
    limit: int = Field(default=DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT)
    offset: int = Field(default=0, ge=0)


def parse_command(model_cls: type[M], data: M | Mapping[str, Any]) -> M:
    """将命令字典解析为模型，Pydantic 校验失败转换为 ValidationError

    已是模型实例时原样返回。
    """
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid {model_cls.__name__}: {details}") from e
