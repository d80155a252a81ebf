"""代理错误处理器

负责将 HTTP 错误和 httpx 异常转换为具体的 ProxyRequestError 子类。
"""

from json import JSONDecodeError
from typing import Any

import httpx

from wxbridge.endpoints.wechat.exceptions import (
    NetworkError,
    ProxyRequestError,
    RequestTimeoutError,
)


class ProxyErrorHandler:
    """代理错误处理器

    实现 ErrorHandlerProtocol,负责错误分类和异常转换。
    """

    def classify_http_error(self, response: httpx.Response) -> ProxyRequestError:
        """根据非 2xx 响应生成错误

        响应体是 JSON 时优先使用其中的 error / message;
        无法解析时合成 ``HTTP <status>: <reason>``。
        """
        status_code = response.status_code

        try:
            body: Any = response.json()
        except (JSONDecodeError, UnicodeDecodeError):
            reason = response.reason_phrase or ""
            return ProxyRequestError(f"HTTP {status_code}: {reason}", status_code=status_code)

        message = None
        error_code: int | str = 0
        if isinstance(body, dict):
            message = body.get("error") or body.get("message")
            error_code = body.get("code") or 0

        return ProxyRequestError(
            str(message) if message else f"Request failed: {status_code}",
            error_code=error_code,
            status_code=status_code,
        )

    def handle_request_exception(self, exc: Exception) -> ProxyRequestError:
        """处理请求异常"""
        if isinstance(exc, httpx.TimeoutException):
            return RequestTimeoutError("请求超时,请检查网络连接或增加超时时间")

        if isinstance(exc, httpx.ConnectError):
            return NetworkError("网络连接失败,请检查代理服务地址")

        if isinstance(exc, httpx.RequestError):
            return NetworkError(f"网络请求错误: {exc}")

        return ProxyRequestError(f"未知错误: {exc}")
