"""任务路由

GET    /api/tasks: 任务列表（筛选 + 分页）
POST   /api/tasks: 创建任务
GET    /api/tasks/urgent: 未完成的 urgent 任务
GET    /api/tasks/due-today: 调用方今日到期任务
GET    /api/tasks/{task_id}: 任务详情，含负责人
PUT    /api/tasks/{task_id}: 部分更新
PATCH  /api/tasks/{task_id}/status: 状态变更
DELETE /api/tasks/{task_id}: 删除任务
GET    /api/tasks/{task_id}/history: 任务历史（最新在前）

所有路由要求 X-User-ID 请求头。
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from teamhub.core.config import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from teamhub.core.models import (
    Assignee,
    HistoryEntry,
    Task,
    TaskCreate,
    TaskFilter,
    TaskStatus,
    TaskUpdate,
    Urgency,
)

from ..deps import get_current_user_id, get_task_service
from ..services.task_service import TaskService

router = APIRouter(dependencies=[Depends(get_current_user_id)])


class TaskListResponse(BaseModel):
    """任务列表响应"""

    tasks: list[Task]
    total: int
    limit: int
    offset: int


class TaskCreatedResponse(BaseModel):
    task: Task
    assignee_ids: list[str]


class TaskDetailResponse(BaseModel):
    task: Task
    assignees: list[Assignee]


class TaskResponse(BaseModel):
    task: Task


class StatusChangeRequest(BaseModel):
    """状态变更请求 -- status 保持字符串，由引擎校验"""

    status: str


class TaskHistoryResponse(BaseModel):
    task_id: str
    history: list[HistoryEntry]


@router.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    urgency: Urgency | None = Query(default=None, description="按紧急程度筛选"),
    department: str | None = Query(default=None),
    project_id: str | None = Query(default=None),
    assignee_id: str | None = Query(default=None, description="遗留负责人或登记负责人"),
    is_completed: bool | None = Query(default=None),
    limit: int = Query(default=DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT),
    offset: int = Query(default=0, ge=0),
    service: TaskService = Depends(get_task_service),
):
    """查询任务列表，按 deadline 正序"""
    task_filter = TaskFilter(
        status=status,
        urgency=urgency,
        department=department,
        project_id=project_id,
        assignee_id=assignee_id,
        is_completed=is_completed,
        limit=limit,
        offset=offset,
    )
    tasks = await service.list_tasks(task_filter)
    total = await service.count_tasks(task_filter)
    return TaskListResponse(tasks=tasks, total=total, limit=limit, offset=offset)


@router.post("/api/tasks", status_code=201, response_model=TaskCreatedResponse)
async def create_task(
    body: TaskCreate,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    """创建任务；未指定负责人且指定项目时从项目成员级联分配"""
    task, assignee_ids = await service.create_task(body, user_id)
    return TaskCreatedResponse(task=task, assignee_ids=assignee_ids)


@router.get("/api/tasks/urgent")
async def list_urgent_tasks(service: TaskService = Depends(get_task_service)):
    tasks = await service.list_urgent_tasks()
    return {"tasks": [t.model_dump(mode="json") for t in tasks]}


@router.get("/api/tasks/due-today")
async def list_tasks_due_today(
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    tasks = await service.tasks_due_today(user_id)
    return {"tasks": [t.model_dump(mode="json") for t in tasks]}


@router.get("/api/tasks/{task_id}", response_model=TaskDetailResponse)
async def get_task_detail(
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    """查询任务详情，包含负责人列表"""
    task = await service.get_task(task_id)
    assignees = await service.list_assignees(task_id)
    return TaskDetailResponse(task=task, assignees=assignees)


@router.put("/api/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    body: TaskUpdate,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    """部分更新任务（仅写入请求体中出现的字段）"""
    task = await service.update_task(task_id, body, user_id)
    return TaskResponse(task=task)


@router.patch("/api/tasks/{task_id}/status", response_model=TaskResponse)
async def change_task_status(
    task_id: str,
    body: StatusChangeRequest,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    task = await service.change_status(task_id, body.status, user_id)
    return TaskResponse(task=task)


@router.delete("/api/tasks/{task_id}")
async def delete_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(task_id, user_id)
    return {"task_id": task_id, "deleted": True}


@router.get("/api/tasks/{task_id}/history", response_model=TaskHistoryResponse)
async def get_task_history(
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    """查询任务历史；任务已删除时仍可查询"""
    history = await service.get_history(task_id)
    return TaskHistoryResponse(task_id=task_id, history=history)
