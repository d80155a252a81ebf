"""代理 HTTP 客户端

负责发送 HTTP 请求和处理响应。
"""

import time
from json import JSONDecodeError
from typing import Any

import httpx

from wxbridge.endpoints.wechat.config import ProxyClientConfig
from wxbridge.endpoints.wechat.error_handler import ProxyErrorHandler
from wxbridge.endpoints.wechat.exceptions import ConfigurationError
from wxbridge.endpoints.wechat.models import ProxyRequest, RequestLog
from wxbridge.endpoints.wechat.protocols import ErrorHandlerProtocol
from wxbridge.utils.logging import get_logger
from wxbridge.utils.security import DEFAULT_PII_FIELDS, sanitize_dict

logger = get_logger(__name__)


class ProxyHTTPClient:
    """代理 HTTP 客户端

    实现 HTTPClientProtocol。每次调用都是一次独立的 POST,
    认证信息通过 X-API-Key / X-Account-ID 请求头携带。
    """

    def __init__(
        self,
        config: ProxyClientConfig,
        error_handler: ErrorHandlerProtocol | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """初始化 HTTP 客户端

        Args:
            config: 代理客户端配置
            error_handler: 错误处理器(可选)
            transport: 自定义 httpx 传输层(可选,测试用)

        Raises:
            ConfigurationError: 未配置代理服务地址
        """
        if not config.base_url:
            raise ConfigurationError("未配置代理服务地址 (proxy_url)")

        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.error_handler = error_handler or ProxyErrorHandler()

        timeout = httpx.Timeout(
            connect=config.timeout.connect,
            read=config.timeout.read,
            write=config.timeout.read,
            pool=5.0,
        )

        self._client = httpx.Client(
            base_url=self.base_url,
            headers=self.build_headers(),
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

        logger.info("http_client_initialized", base_url=self.base_url)

    def __enter__(self) -> "ProxyHTTPClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """关闭 HTTP 客户端"""
        self._client.close()
        logger.info("http_client_closed")

    def build_headers(self) -> dict[str, str]:
        """构建认证请求头"""
        return {
            "Content-Type": "application/json",
            "X-API-Key": self.config.api_key,
            "X-Account-ID": self.config.account_id,
        }

    def send_request(self, request: ProxyRequest) -> Any:
        """发送代理请求

        Returns:
            Any: 响应 JSON 数据(2xx 且非 JSON 时为文本或 None)

        Raises:
            ProxyRequestError: 网络失败或非 2xx 响应
        """
        body = request.to_json()
        logger.info(
            "proxy_request_sending",
            path=request.path,
            params=sanitize_dict(body or {}, pii_fields=DEFAULT_PII_FIELDS),
        )
        started = time.perf_counter()

        try:
            response = self._client.post(request.path, json=body)
        except Exception as e:
            self._record(request, started, error=str(e))
            raise self.error_handler.handle_request_exception(e) from e

        if not response.is_success:
            error = self.error_handler.classify_http_error(response)
            self._record(request, started, status_code=response.status_code, error=str(error))
            raise error

        response_data = self._decode_body(response)
        self._record(request, started, status_code=response.status_code, response_data=response_data)
        return response_data

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        """解析 JSON 响应体,空 body 为 None,非 JSON 保留文本"""
        try:
            return response.json()
        except JSONDecodeError:
            return response.text.strip() or None

    def _record(
        self,
        request: ProxyRequest,
        started: float,
        status_code: int = 0,
        response_data: Any = None,
        error: str | None = None,
    ) -> None:
        """记录一次调用(脱敏),失败用 error 级别"""
        if isinstance(response_data, dict):
            safe_response: dict[str, Any] | None = sanitize_dict(
                response_data, pii_fields=DEFAULT_PII_FIELDS
            )
        elif response_data is not None:
            safe_response = {"_raw": response_data}
        else:
            safe_response = None

        request_log = RequestLog(
            endpoint=request.path,
            request_params=sanitize_dict(request.to_json() or {}, pii_fields=DEFAULT_PII_FIELDS),
            response_status=status_code,
            response_data=safe_response,
            response_time_ms=int((time.perf_counter() - started) * 1000),
            error=error,
        )

        if error is None:
            logger.info("proxy_response_received", **request_log.to_json())
        else:
            logger.error("proxy_request_failed", **request_log.to_json())
