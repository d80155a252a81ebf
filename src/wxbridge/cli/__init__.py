"""
命令行工具模块

提供 wxbridge 的账号、登录、发送和回调监听命令。
"""

from .main import cli

__all__ = ["cli"]
