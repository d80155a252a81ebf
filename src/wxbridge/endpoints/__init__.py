"""代理端点适配器模块

此包包含对外服务的端点适配器:
- wechat: 微信自动化代理服务适配器(登录、收发消息、回调监听)
"""

from wxbridge.endpoints.base import BridgeError, EndpointAdapter

__all__ = ["BridgeError", "EndpointAdapter"]
