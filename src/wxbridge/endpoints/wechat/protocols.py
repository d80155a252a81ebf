"""代理客户端协议接口

定义客户端各组件的协议接口,用于依赖注入和测试替换。
"""

from typing import Any, Protocol

import httpx

from wxbridge.endpoints.wechat.exceptions import ProxyRequestError
from wxbridge.endpoints.wechat.models import ProxyRequest, ProxyResponse, ProxyResult


class ErrorHandlerProtocol(Protocol):
    """错误处理器协议"""

    def classify_http_error(self, response: httpx.Response) -> ProxyRequestError:
        """根据非 2xx 响应生成错误"""
        ...

    def handle_request_exception(self, exc: Exception) -> ProxyRequestError:
        """将 httpx 异常转换为 ProxyRequestError"""
        ...


class ResponseParserProtocol(Protocol):
    """响应解析器协议"""

    def parse(self, response_data: Any) -> ProxyResponse:
        """解析响应信封"""
        ...

    def unwrap(self, response_data: Any) -> ProxyResult:
        """解包响应信封,非成功业务码抛出 ProxyRequestError"""
        ...


class HTTPClientProtocol(Protocol):
    """HTTP 客户端协议"""

    def send_request(self, request: ProxyRequest) -> Any:
        """发送代理请求并返回 JSON 数据"""
        ...

    def close(self) -> None:
        """关闭 HTTP 客户端"""
        ...
