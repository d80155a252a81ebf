"""微信代理自定义异常

定义代理客户端、登录流程和回调监听器的异常类型,用于错误分类和处理。
"""

from wxbridge.endpoints.base import BridgeError


class ConfigurationError(BridgeError):
    """配置错误

    缺少必需配置(如代理服务地址)时在构造阶段抛出。
    """

    def __init__(self, message: str = "配置缺失或无效", error_code: int | str = 0):
        super().__init__(message, error_code)


class ProxyRequestError(BridgeError):
    """代理请求错误基类

    网络失败、非成功业务码或响应格式无效时抛出。
    """

    def __init__(
        self, message: str, error_code: int | str = 0, status_code: int | None = None
    ):
        """初始化代理请求错误

        Args:
            message: 错误信息
            error_code: 代理返回的业务码(可选)
            status_code: HTTP 状态码(可选)
        """
        super().__init__(message, error_code)
        self.status_code = status_code


class NetworkError(ProxyRequestError):
    """网络错误

    当网络连接失败或服务器不可达时抛出。
    """

    def __init__(self, message: str = "网络连接失败", error_code: int | str = 0):
        super().__init__(message, error_code, status_code=None)


class RequestTimeoutError(ProxyRequestError):
    """请求超时"""

    def __init__(self, message: str = "请求超时", error_code: int | str = 0):
        super().__init__(message, error_code, status_code=None)


class InvalidResponseError(ProxyRequestError):
    """响应格式无效"""

    def __init__(self, message: str = "无效的响应格式", status_code: int | None = None):
        super().__init__(message, 0, status_code=status_code)


class ListenerBindError(BridgeError):
    """回调监听器端口绑定失败"""

    def __init__(self, message: str, port: int | None = None):
        super().__init__(message)
        self.port = port


class AuthenticationError(BridgeError):
    """入站回调认证失败

    只在监听器边界内使用,不会传递给消息消费者。
    """

    def __init__(self, message: str = "认证失败", error_code: int | str = 401):
        super().__init__(message, error_code)


class LoginTimeout(BridgeError):
    """登录轮询超过调用方设定的次数或时限"""

    def __init__(self, message: str = "登录轮询超时", attempts: int = 0, elapsed: float = 0.0):
        super().__init__(message)
        self.attempts = attempts
        self.elapsed = elapsed
