"""
FastAPI Webhook Application

提供代理回调接收端点和健康检查端点。
"""

import inspect
import threading
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .exceptions import AuthenticationError, ConfigurationError
from .models import WechatMessageContext
from .webhook_config import WebhookConfig
from .webhook_handler import (
    EventCategory,
    InvalidPayloadError,
    RecentMessageIds,
    WebhookRequest,
    authenticate_request,
    classify_event,
    parse_inbound_event,
    to_message_context,
)
from .webhook_logger import check_log_writable, get_webhook_logger, setup_webhook_logger

MessageConsumer = Callable[[WechatMessageContext], Awaitable[Any] | Any]

logger = get_webhook_logger()


class ListenerStats:
    """Delivery counters shared by all requests of one app"""

    FIELDS = (
        "received",
        "forwarded",
        "ignored",
        "duplicates",
        "dropped",
        "rejected_auth",
        "parse_failures",
        "consumer_failures",
    )

    def __init__(self) -> None:
        self._counts = dict.fromkeys(self.FIELDS, 0)
        self._lock = threading.Lock()

    def incr(self, name: str) -> None:
        with self._lock:
            self._counts[name] += 1

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)


class HealthStatus(BaseModel):
    """健康状态模型"""

    status: str  # "healthy" | "unhealthy"
    service: str
    version: str
    uptime_seconds: int = 0
    counters: dict[str, int]
    log_writable: bool = True
    error: str | None = None


class WebhookResponse(BaseModel):
    """Webhook 响应模型"""

    status: str = "ok"
    request_id: str
    category: str | None = None
    reason: str | None = None


async def dispatch_message(
    consumer: MessageConsumer, message: WechatMessageContext, stats: ListenerStats
) -> None:
    """
    调用消息消费者

    同步消费者在线程池中运行,协程消费者直接 await。
    消费者异常只记录,不影响已返回的 200。
    """
    try:
        if inspect.iscoroutinefunction(consumer):
            await consumer(message)
        else:
            result = await run_in_threadpool(consumer, message)
            if inspect.isawaitable(result):
                await result
    except Exception as exc:
        stats.incr("consumer_failures")
        logger.error(
            "consumer_failed",
            message_id=message.id,
            exception_type=type(exc).__name__,
            exception_message=str(exc),
            exc_info=True,
        )
        return

    stats.incr("forwarded")
    logger.debug("message_forwarded", message_id=message.id, type=message.type.value)


def create_app(config: WebhookConfig, on_message: MessageConsumer) -> FastAPI:
    """
    创建回调监听应用

    Args:
        config: 监听器配置(必须包含 api_key)
        on_message: 消息消费者,每条消息事件恰好调用一次

    Raises:
        ConfigurationError: 未配置 api_key
    """
    if not config.api_key:
        raise ConfigurationError("回调监听器需要配置 api_key")

    stats = ListenerStats()
    recent_ids = RecentMessageIds(config.dedupe_window)
    app_state: dict[str, Any] = {"start_time": time.time()}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用生命周期管理"""
        setup_webhook_logger(config)
        app_state["start_time"] = time.time()
        logger.info(
            "webhook_service_starting",
            service=config.service_name,
            version=config.service_version,
            webhook_path=config.webhook_path,
        )

        yield

        logger.info(
            "webhook_service_stopping",
            uptime_seconds=round(time.time() - app_state["start_time"], 1),
            **stats.snapshot(),
        )

    app = FastAPI(
        title="wxbridge webhook",
        description="WeChat proxy callback receiver",
        version=config.service_version,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.stats = stats
    app.state.recent_ids = recent_ids

    @app.post(config.webhook_path, response_model=WebhookResponse, response_model_exclude_none=True)
    async def receive_wechat_event(request: Request, background_tasks: BackgroundTasks):
        """
        接收代理推送

        - 认证失败 401,JSON 无效 400,消费者均不会被调用
        - 消息事件在响应发送后交给消费者
        - 其他事件记录后直接确认
        """
        webhook_request = WebhookRequest(
            client_ip=request.client.host if request.client else "unknown",
            method=request.method,
            path=str(request.url.path),
            content_type=request.headers.get("content-type"),
        )
        stats.incr("received")

        try:
            authenticate_request(request.headers, request.query_params, config)
        except AuthenticationError as e:
            stats.incr("rejected_auth")
            logger.warning("webhook_auth_rejected", reason=e.message, **webhook_request.to_log_dict())
            return JSONResponse(
                status_code=401,
                content={
                    "status": "error",
                    "reason": "unauthorized",
                    "request_id": webhook_request.request_id,
                },
            )

        body = await request.body()
        webhook_request.body_bytes_length = len(body)

        try:
            event = parse_inbound_event(body)
        except InvalidPayloadError as e:
            stats.incr("parse_failures")
            webhook_request.parse_error = str(e)
            logger.warning("webhook_payload_invalid", **webhook_request.to_log_dict())
            return JSONResponse(
                status_code=400,
                content={
                    "status": "error",
                    "reason": "invalid_payload",
                    "request_id": webhook_request.request_id,
                },
            )

        category = classify_event(event.message_type)
        webhook_request.message_type = event.message_type
        webhook_request.category = category.value

        if category is not EventCategory.MESSAGE:
            stats.incr("ignored")
            logger.info("webhook_event_acknowledged", **webhook_request.to_log_dict())
            return WebhookResponse(request_id=webhook_request.request_id, category=category.value)

        try:
            message = to_message_context(event)
        except InvalidPayloadError as e:
            stats.incr("dropped")
            logger.warning("webhook_message_dropped", reason=str(e), **webhook_request.to_log_dict())
            return WebhookResponse(
                status="dropped",
                request_id=webhook_request.request_id,
                category=category.value,
                reason=str(e),
            )

        webhook_request.message_id = message.id
        if not recent_ids.add(message.id):
            stats.incr("duplicates")
            logger.info("webhook_message_duplicate", **webhook_request.to_log_dict())
            return WebhookResponse(
                status="duplicate",
                request_id=webhook_request.request_id,
                category=category.value,
            )

        background_tasks.add_task(dispatch_message, on_message, message, stats)
        logger.info("webhook_message_accepted", type=message.type.value, **webhook_request.to_log_dict())

        return WebhookResponse(request_id=webhook_request.request_id, category=category.value)

    @app.get(config.health_check_path, response_model=HealthStatus)
    async def health_check():
        """
        健康检查端点

        Returns:
            200: 服务健康
            503: 日志文件不可写
        """
        log_writable, error_message = check_log_writable(config.log_file)

        health_status = HealthStatus(
            status="healthy" if log_writable else "unhealthy",
            service=config.service_name,
            version=config.service_version,
            uptime_seconds=int(time.time() - app_state["start_time"]),
            counters=stats.snapshot(),
            log_writable=log_writable,
            error=error_message,
        )

        if not log_writable:
            return JSONResponse(status_code=503, content=health_status.model_dump())

        return health_status

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """全局异常处理器 - 捕获所有未处理的异常"""
        logger.error(
            "unhandled_exception",
            exception_type=type(exc).__name__,
            exception_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "message": "Internal server error",
                "error_type": type(exc).__name__,
            },
        )

    return app
