"""微信代理客户端

每个代理能力对应一个方法,客户端在两次调用之间不保存会话状态。
"""

from typing import Any

from pydantic import ValidationError

from wxbridge.endpoints.base import EndpointAdapter
from wxbridge.endpoints.wechat.config import (
    DEFAULT_DEVICE_TYPE,
    DEFAULT_PROXY_LINE,
    ProxyClientConfig,
)
from wxbridge.endpoints.wechat.exceptions import InvalidResponseError
from wxbridge.endpoints.wechat.http_client import ProxyHTTPClient
from wxbridge.endpoints.wechat.models import (
    AccountStatus,
    ContactList,
    LoginLoggedIn,
    LoginNeedVerify,
    LoginStatus,
    LoginWaiting,
    ProxyRequest,
    ProxyResult,
    QRCodeResult,
    SendResult,
)
from wxbridge.endpoints.wechat.protocols import HTTPClientProtocol, ResponseParserProtocol
from wxbridge.endpoints.wechat.response_parser import ProxyResponseParser
from wxbridge.utils.logging import get_logger

logger = get_logger(__name__)


class ProxyClient(EndpointAdapter):
    """微信代理客户端

    实现端点适配器接口,提供状态查询、二维码登录、消息发送、通讯录和回调注册。
    """

    def __init__(
        self,
        config: ProxyClientConfig,
        http_client: HTTPClientProtocol | None = None,
        response_parser: ResponseParserProtocol | None = None,
    ):
        """初始化客户端

        Args:
            config: 代理客户端配置
            http_client: HTTP 客户端(可选,默认 ProxyHTTPClient)
            response_parser: 响应解析器(可选,默认 ProxyResponseParser)

        Raises:
            ConfigurationError: 未配置代理服务地址
        """
        self.config = config
        self.http_client = http_client or ProxyHTTPClient(config)
        self.response_parser = response_parser or ProxyResponseParser()

        logger.info("proxy_client_initialized", account_id=config.account_id)

    def __enter__(self) -> "ProxyClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """关闭 HTTP 客户端"""
        self.http_client.close()

    def authenticate(self) -> bool:
        """验证 API Key

        Raises:
            ProxyRequestError: 代理调用失败
        """
        status = self.get_status()
        logger.info("authentication_checked", valid=status.valid)
        return status.valid

    def request(self, endpoint: str, data: dict[str, Any] | None = None) -> ProxyResult:
        """发送一次代理请求并解包响应信封

        Raises:
            ProxyRequestError: 网络失败、非成功业务码或响应格式无效
        """
        request = ProxyRequest(path=endpoint, data=data)
        response_data = self.http_client.send_request(request)
        result = self.response_parser.unwrap(response_data)

        if result.code is not None and result.code != "1000":
            logger.warning("proxy_success_with_notice", path=endpoint, proxy_code=result.code)

        return result

    # ===== 账号状态 =====

    def get_status(self) -> AccountStatus:
        """获取账号状态(有效性、登录状态、配额)"""
        result = self.request("/v1/account/status")
        return self._build(AccountStatus, result.as_dict())

    # ===== 登录流程 =====

    def get_qr_code(self, device_type: str | None = None, proxy: str | None = None) -> QRCodeResult:
        """签发登录二维码

        Args:
            device_type: 设备类型(默认 mac)
            proxy: 代理线路(默认 10)
        """
        result = self.request(
            "/v1/iPadLogin",
            {
                "deviceType": device_type or DEFAULT_DEVICE_TYPE,
                "proxy": proxy or DEFAULT_PROXY_LINE,
            },
        )
        return self._build(QRCodeResult, result.as_dict())

    def check_login(self, w_id: str) -> LoginStatus:
        """查询登录状态

        未识别的状态一律视为 waiting。
        """
        data = self.request("/v1/getIPadLoginInfo", {"wId": w_id}).as_dict()
        status = data.get("status")

        if status == "logged_in":
            return LoginLoggedIn(
                wc_id=str(data.get("wcId") or ""),
                nick_name=str(data.get("nickName") or ""),
                head_url=data.get("headUrl"),
            )

        if status == "need_verify":
            return LoginNeedVerify(verify_url=str(data.get("verifyUrl") or ""))

        if status not in (None, "waiting"):
            logger.debug("login_status_unrecognized", status=status)

        return LoginWaiting()

    # ===== 消息发送 =====

    def send_text(self, wc_id: str, content: str) -> SendResult:
        """发送文本消息(代理根据 wcId 自动查找会话)"""
        result = self.request("/v1/sendText", {"wcId": wc_id, "content": content})
        return self._build(SendResult, result.as_dict())

    def send_image(self, wc_id: str, image_url: str) -> SendResult:
        """发送网络图片"""
        result = self.request("/v1/sendImage2", {"wcId": wc_id, "imageUrl": image_url})
        return self._build(SendResult, result.as_dict())

    # ===== 通讯录 =====

    def get_contacts(self, wc_id: str) -> ContactList:
        """获取好友和群聊列表"""
        result = self.request("/v1/getAddressList", {"wcId": wc_id})
        return self._build(ContactList, result.as_dict())

    # ===== 回调 =====

    def register_webhook(self, webhook_url: str) -> None:
        """向代理注册回调地址,代理随后把入站事件推送到该地址"""
        self.request("/v1/webhook/register", {"webhookUrl": webhook_url})
        logger.info("webhook_registered", webhook_url=webhook_url)

    def _build(self, model: type, data: dict[str, Any]) -> Any:
        """把响应数据构建为模型

        Raises:
            InvalidResponseError: 响应缺少必需字段
        """
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise InvalidResponseError(f"无效的响应数据 ({model.__name__}): {e}") from e
