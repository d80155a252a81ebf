"""端点适配器基类和基础异常

此模块定义了代理端点适配器必须实现的抽象基类和通用异常类型。
"""

from abc import ABC, abstractmethod


class BridgeError(Exception):
    """桥接错误基类

    所有端点特定的异常都应继承此类。
    """

    def __init__(self, message: str, error_code: int | str = 0):
        """初始化桥接错误

        Args:
            message: 错误信息
            error_code: 错误代码(可选),代理返回的业务码为字符串
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class EndpointAdapter(ABC):
    """端点适配器抽象基类

    所有对外代理端点必须实现此接口。
    """

    @abstractmethod
    def authenticate(self) -> bool:
        """验证端点凭证

        Returns:
            bool: 凭证有效返回 True

        Raises:
            BridgeError: 认证过程中发生错误
        """

    @abstractmethod
    def close(self) -> None:
        """释放端点持有的连接资源"""
