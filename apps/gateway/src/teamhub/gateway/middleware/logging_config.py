"""structlog 配置模块

dev 模式：ConsoleRenderer 可读输出
json 模式：结构化 JSON 输出
结构化日志统一经由标准库 logging 输出，第三方库日志共用同一渲染器。
Logfire APM：LOGFIRE_SEND_TO_LOGFIRE 环境变量控制，false 时仅本地日志。
"""

import logging
import os

import structlog

_LOG_FORMATS = {"dev", "json"}

# 请求日志由 LoggingMiddleware 记录，压低重复的访问日志
_QUIET_LOGGERS = ("uvicorn.access", "aiosqlite")


def setup_logging() -> None:
    """初始化 structlog 配置

    环境变量:
        TEAMHUB_LOG_FORMAT: "dev"（默认）或 "json"
        TEAMHUB_LOG_LEVEL: 根日志级别，默认 INFO
    """
    log_format = os.environ.get("TEAMHUB_LOG_FORMAT", "dev").lower()
    log_level = os.environ.get("TEAMHUB_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelNamesMapping().get(log_level, logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if log_format not in _LOG_FORMATS:
        structlog.get_logger().warning(
            "invalid_log_format",
            value=log_format,
            fallback="dev",
        )


def setup_logfire(app) -> bool:
    """Logfire 可选初始化

    LOGFIRE_SEND_TO_LOGFIRE 为 "true" 时启用（需要 LOGFIRE_TOKEN），
    初始化失败时记录告警并继续使用本地日志。

    Returns:
        True 如果 Logfire 已启用
    """
    send_to_logfire = os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower()
    if send_to_logfire != "true":
        return False

    try:
        import logfire

        logfire.configure()
        logfire.instrument_fastapi(app)
    except Exception as e:
        structlog.get_logger().warning(
            "logfire_init_failed",
            error_type=type(e).__name__,
            message="Logfire 初始化失败，仅使用本地日志",
        )
        return False
    return True
