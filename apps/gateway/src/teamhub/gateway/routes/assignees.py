"""任务负责人路由

GET    /api/tasks/{task_id}/assignees: 负责人列表
POST   /api/tasks/{task_id}/assignees: 批量添加（幂等）
DELETE /api/tasks/{task_id}/assignees/{user_id}: 移除负责人
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from teamhub.core.models import Assignee

from ..deps import get_current_user_id, get_task_service
from ..services.task_service import TaskService

router = APIRouter(dependencies=[Depends(get_current_user_id)])


class AddAssigneesRequest(BaseModel):
    user_ids: list[str] = Field(min_length=1)


class AssigneeListResponse(BaseModel):
    task_id: str
    assignees: list[Assignee]


class AddAssigneesResponse(AssigneeListResponse):
    added: int


@router.get("/api/tasks/{task_id}/assignees", response_model=AssigneeListResponse)
async def list_assignees(
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    assignees = await service.list_assignees(task_id)
    return AssigneeListResponse(task_id=task_id, assignees=assignees)


@router.post("/api/tasks/{task_id}/assignees", response_model=AddAssigneesResponse)
async def add_assignees(
    task_id: str,
    body: AddAssigneesRequest,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    """添加负责人；已分配的用户不重复计数"""
    added = await service.add_assignees(task_id, body.user_ids, user_id)
    assignees = await service.list_assignees(task_id)
    return AddAssigneesResponse(task_id=task_id, assignees=assignees, added=added)


@router.delete("/api/tasks/{task_id}/assignees/{assignee_id}")
async def remove_assignee(
    task_id: str,
    assignee_id: str,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    await service.remove_assignee(task_id, assignee_id, user_id)
    return {"task_id": task_id, "user_id": assignee_id, "removed": True}
