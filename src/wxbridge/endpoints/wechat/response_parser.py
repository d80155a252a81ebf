"""代理响应解析器

负责把 ``{code, message, data}`` 信封解包为 ProxyResult 或错误。
"""

from typing import Any

from pydantic import ValidationError

from wxbridge.endpoints.wechat.exceptions import InvalidResponseError, ProxyRequestError
from wxbridge.endpoints.wechat.models import ProxyResponse, ProxyResult


class ProxyResponseParser:
    """代理响应解析器

    实现 ResponseParserProtocol。成功码 1000/1001/1002 统一走成功路径,
    原始业务码保留在 ProxyResult.code 中。
    """

    def parse(self, response_data: Any) -> ProxyResponse:
        """解析响应信封

        Raises:
            InvalidResponseError: 响应不是 JSON 对象或字段类型无效
        """
        if not isinstance(response_data, dict):
            raise InvalidResponseError(f"无效的响应格式: {type(response_data).__name__}")
        try:
            return ProxyResponse(**response_data)
        except (ValidationError, TypeError) as e:
            raise InvalidResponseError(f"无效的响应格式: {e}") from e

    def unwrap(self, response_data: Any) -> ProxyResult:
        """解包响应

        - 成功码: 返回 data,data 缺省时返回整个信封
        - 其他业务码: 抛出 ProxyRequestError,信息取 message 或 ``Error: <code>``
        - 无业务码: 原样返回响应体

        Raises:
            ProxyRequestError: 非成功业务码
            InvalidResponseError: 响应格式无效
        """
        envelope = self.parse(response_data)

        if envelope.is_success():
            data = envelope.data if envelope.data is not None else response_data
            return ProxyResult(code=envelope.code, data=data)

        if envelope.code is not None:
            raise ProxyRequestError(envelope.get_error_msg(), error_code=envelope.code)

        return ProxyResult(code=None, data=response_data)
