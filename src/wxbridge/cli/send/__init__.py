"""
消息发送 CLI 命令包

当前提供:
- send text: 发送文本消息
- send image: 发送网络图片
"""

import click

from .image_commands import send_image
from .text_commands import send_text


@click.group()
def send() -> None:
    """消息发送命令"""


send.add_command(send_text, name="text")
send.add_command(send_image, name="image")

__all__ = ["send", "send_text", "send_image"]
