"""结构化日志配置

CLI 和回调监听器共用的 structlog 配置: 每条日志一行 JSON,
写到 stderr 或按大小轮转的文件,敏感字段在渲染前脱敏。
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import orjson
import structlog
from structlog.types import Processor

from wxbridge.utils.security import mask_sensitive_data

DEFAULT_MAX_BYTES = 100 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 10


def orjson_dumps(obj: Any, **kwargs: Any) -> str:
    """使用 orjson 序列化 JSON

    PrintLogger 需要 str,非 JSON 原生类型退化为 str()。
    """
    return orjson.dumps(obj, default=str).decode("utf-8")


def build_processors(json_format: bool = True) -> list[Processor]:
    """构建处理器链,脱敏总在渲染之前"""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        mask_sensitive_data,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(serializer=orjson_dumps))
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    return processors


def configure_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_format: bool = True,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> None:
    """配置全局日志系统

    Args:
        level: 日志级别(DEBUG/INFO/WARNING/ERROR/CRITICAL)
        log_file: 日志文件路径(可选),None 表示输出到 stderr
        json_format: JSON 格式(True)或人类可读格式(False)
        max_bytes: 单个日志文件最大字节数
        backup_count: 保留的轮转文件数
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler: logging.Handler
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        stream = handler.stream
    else:
        handler = logging.StreamHandler(sys.stderr)
        stream = sys.stderr
    handler.setLevel(numeric_level)

    structlog.configure(
        processors=build_processors(json_format),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )

    # 标准库 logging(uvicorn / httpx),只在首次调用时生效
    logging.basicConfig(level=numeric_level, format="%(message)s", handlers=[handler])


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """获取结构化日志记录器

    Args:
        name: 日志记录器名称(可选),通常使用模块名 __name__
    """
    return structlog.get_logger(name)
