"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store 与 TaskService

Store 实例通过 app.state 管理，在 lifespan 中初始化/清理。
调用方身份由上游认证层写入 X-User-ID 请求头，此处只读取不校验。
"""

from fastapi import Header, HTTPException, Request
from teamhub.core.config import EngineConfig
from teamhub.core.store import StoreGroup

from .services.task_service import TaskService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_engine_config(request: Request) -> EngineConfig:
    """从 app.state 获取引擎配置，未初始化时使用默认值"""
    config = getattr(request.app.state, "engine_config", None)
    return config or EngineConfig()


def get_task_service(request: Request) -> TaskService:
    """构造绑定当前 StoreGroup 的 TaskService"""
    return TaskService(get_store_group(request), get_engine_config(request))


def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
) -> str:
    """读取调用方用户 ID，缺失时返回 401"""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-ID header")
    return x_user_id.strip()
