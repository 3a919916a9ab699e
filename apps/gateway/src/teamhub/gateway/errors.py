"""异常到 HTTP 响应的映射

统一错误响应格式：{"error": {"code": ..., "message": ...}}
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse
from teamhub.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    TeamHubError,
    ValidationError,
)

log = structlog.get_logger()

# 按继承顺序匹配：子类在前
# 非法状态流转单独映射为 409 Conflict，其余校验错误为 400
_STATUS_BY_ERROR: list[tuple[type[TeamHubError], int]] = [
    (InvalidTransitionError, 409),
    (ValidationError, 400),
    (NotFoundError, 404),
    (StorageError, 500),
]

_CODE_BY_HTTP_STATUS = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


async def handle_teamhub_error(request: Request, exc: TeamHubError) -> JSONResponse:
    status_code = 500
    for error_type, mapped_status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = mapped_status
            break

    if status_code >= 500:
        log.error(
            "request_failed",
            error_code=exc.code,
            error_type=type(exc).__name__,
            error=exc.message,
        )
        # 存储层细节不暴露给调用方
        return error_response(status_code, exc.code, "Storage operation failed")

    return error_response(status_code, exc.code, exc.message)


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return error_response(400, "VALIDATION_ERROR", details or "Invalid request")


async def handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = _CODE_BY_HTTP_STATUS.get(exc.status_code, "HTTP_ERROR")
    return error_response(exc.status_code, code, str(exc.detail))


def register_exception_handlers(app: FastAPI) -> None:
    """注册全局异常处理器"""
    app.add_exception_handler(TeamHubError, handle_teamhub_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
