"""TraceMiddleware -- 为任务操作绑定 trace_id

从 /api/tasks/{task_id}[/...] 路径中提取 task_id，生成 trace-{task_id}，
贯穿该请求内的全部任务日志。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# 与 task_id 同级的集合路由
_COLLECTION_SEGMENTS = {"urgent", "due-today"}

# ULID 字符串长度
_ULID_LENGTH = 26


def extract_task_id(path: str) -> str | None:
    """从请求路径提取 task_id，非任务路径返回 None"""
    parts = [p for p in path.split("/") if p]
    if len(parts) < 3 or parts[0] != "api" or parts[1] != "tasks":
        return None
    candidate = parts[2]
    if candidate in _COLLECTION_SEGMENTS or len(candidate) != _ULID_LENGTH:
        return None
    return candidate


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        task_id = extract_task_id(request.url.path)
        if task_id:
            structlog.contextvars.bind_contextvars(
                task_id=task_id,
                trace_id=f"trace-{task_id}",
            )

        return await call_next(request)
