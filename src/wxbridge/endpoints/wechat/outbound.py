"""出站消息发送

先用目标解析得到接收方,再通过代理客户端投递。
"""

from wxbridge.endpoints.wechat.client import ProxyClient
from wxbridge.endpoints.wechat.models import SendResult
from wxbridge.endpoints.wechat.targets import normalize_target
from wxbridge.utils.logging import get_logger
from wxbridge.utils.security import hash_pii

logger = get_logger(__name__)


class OutboundSender:
    """出站消息发送器"""

    def __init__(self, client: ProxyClient):
        self.client = client

    def send_text(self, to: str, content: str) -> SendResult:
        """发送文本

        Raises:
            ValueError: 目标或内容为空
            ProxyRequestError: 代理调用失败
        """
        if not content or not content.strip():
            raise ValueError("文本内容不能为空")

        target = normalize_target(to)
        result = self.client.send_text(target.id, content)
        logger.info(
            "outbound_text_sent",
            kind=target.kind.value,
            target_hash=hash_pii(target.id),
            new_msg_id=result.new_msg_id,
        )
        return result

    def send_media(self, to: str, media_url: str) -> SendResult:
        """发送图片(代理只支持网络图片地址)"""
        if not media_url:
            raise ValueError("媒体地址不能为空")

        target = normalize_target(to)
        result = self.client.send_image(target.id, media_url)
        logger.info(
            "outbound_media_sent",
            kind=target.kind.value,
            target_hash=hash_pii(target.id),
            new_msg_id=result.new_msg_id,
        )
        return result
