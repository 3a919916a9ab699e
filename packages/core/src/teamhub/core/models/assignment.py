"""Assignment Domain Model

(task_id, user_id) 唯一；重复分配被静默吸收。
"""

from datetime import datetime

from pydantic import BaseModel, Field


class Assignment(BaseModel):
    """task_assignees 表记录"""

    assignment_id: str = Field(description="唯一标识，ULID 格式")
    task_id: str = Field(description="关联的 Task ID")
    user_id: str = Field(description="负责人用户 ID")
    assigned_at: datetime = Field(description="分配时间")
    assigned_by: str = Field(description="执行分配的用户 ID，级联分配为 system")


class Assignee(BaseModel):
    """负责人展示信息（关联 users 表）"""

    user_id: str
    full_name: str | None = None
    email: str | None = None
    department: str | None = None
    assigned_at: datetime
    assigned_by: str
