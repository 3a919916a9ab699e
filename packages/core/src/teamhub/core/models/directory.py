"""用户目录 Domain Model -- 身份与项目成员关系的只读视图"""

from datetime import datetime

from pydantic import BaseModel, Field


class User(BaseModel):
    """用户"""

    user_id: str
    full_name: str
    email: str = ""
    department: str = ""
    role: str = Field(default="member", description="admin / member")
    created_at: datetime


class Project(BaseModel):
    """项目"""

    project_id: str
    name: str
    description: str | None = None
    status: str = Field(default="active", description="active / completed / on-hold")
    created_by: str
    created_at: datetime
