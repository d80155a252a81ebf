"""微信代理数据模型

使用 Pydantic 定义代理请求/响应、登录状态、入站事件和规范化消息的数据结构。
"""

import math
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator

# 代理业务码: 1000 成功, 1001 成功但需要登录, 1002 成功但带警告
SUCCESS_CODES = frozenset({"1000", "1001", "1002"})


class ProxyRequest(BaseModel):
    """代理 API 请求模型"""

    path: str = Field(..., pattern=r"^/[\w/]+$", description="API 路径")
    data: dict[str, Any] | None = Field(default=None, description="业务参数")

    def to_json(self) -> dict[str, Any] | None:
        """转换为 JSON 请求体,无参数时不发送 body"""
        return self.data


class ProxyResponse(BaseModel):
    """代理响应信封 ``{code, message, data}``

    error 字段来自部分非 2xx 响应。数字业务码会被规范化为字符串。
    """

    code: str | None = Field(default=None, description="业务码")
    message: str | None = Field(default=None, description="业务信息")
    data: Any = Field(default=None, description="业务数据")
    error: str | None = Field(default=None, description="HTTP 层错误信息")

    model_config = {"extra": "allow"}

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v: Any) -> str | None:
        """业务码统一为字符串,空字符串视为缺省"""
        if v is None or v == "":
            return None
        return str(v)

    def is_success(self) -> bool:
        """业务码属于成功码集合"""
        return self.code in SUCCESS_CODES

    def get_error_msg(self) -> str:
        """获取错误信息,无 message 时根据业务码生成"""
        return self.message or f"Error: {self.code}"


class ProxyResult(BaseModel):
    """解包后的代理结果

    code 保留原始成功码(1000/1001/1002),便于诊断登录提示和警告。
    """

    code: str | None = None
    data: Any = None

    def as_dict(self) -> dict[str, Any]:
        """以字典形式返回数据,非字典数据返回空字典"""
        return self.data if isinstance(self.data, dict) else {}


class Quota(BaseModel):
    """账号配额"""

    max_messages_per_day: int = Field(default=0, alias="maxMessagesPerDay")
    used_today: int = Field(default=0, alias="usedToday")

    model_config = {"populate_by_name": True}


class AccountStatus(BaseModel):
    """账号状态"""

    valid: bool = True
    wc_id: str | None = Field(default=None, alias="wcId")
    is_logged_in: bool = Field(default=False, alias="isLoggedIn")
    nick_name: str | None = Field(default=None, alias="nickName")
    tier: str | None = None
    quota: Quota | None = None

    model_config = {"populate_by_name": True}


class QRCodeResult(BaseModel):
    """二维码签发结果"""

    qr_code_url: str = Field(..., alias="qrCodeUrl")
    w_id: str = Field(..., alias="wId")

    model_config = {"populate_by_name": True}


class LoginWaiting(BaseModel):
    """等待扫码"""

    status: Literal["waiting"] = "waiting"


class LoginNeedVerify(BaseModel):
    """需要用户在验证页面完成验证"""

    status: Literal["need_verify"] = "need_verify"
    verify_url: str = ""


class LoginLoggedIn(BaseModel):
    """登录成功"""

    status: Literal["logged_in"] = "logged_in"
    wc_id: str
    nick_name: str = ""
    head_url: str | None = None


LoginStatus = Annotated[
    LoginWaiting | LoginNeedVerify | LoginLoggedIn, Field(discriminator="status")
]

# 登录状态的单调顺序
LOGIN_STATUS_RANK = {"waiting": 0, "need_verify": 1, "logged_in": 2}


class LoginSession(BaseModel):
    """一次登录会话

    由二维码签发创建,只由轮询更新 attempts / last_status。
    """

    w_id: str
    qr_code_url: str
    device_type: str
    proxy_line: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    attempts: int = 0
    last_status: LoginStatus = Field(default_factory=LoginWaiting)


class SendResult(BaseModel):
    """消息发送结果"""

    msg_id: int | None = Field(default=None, alias="msgId")
    new_msg_id: int | None = Field(default=None, alias="newMsgId")
    create_time: int | None = Field(default=None, alias="createTime")

    model_config = {"populate_by_name": True}


class ContactList(BaseModel):
    """通讯录"""

    friends: list[str] = Field(default_factory=list)
    chatrooms: list[str] = Field(default_factory=list)

    @field_validator("friends", "chatrooms", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return v or []


class RequestLog(BaseModel):
    """代理请求日志模型

    记录一次代理调用的脱敏信息,用于调试和审计。
    """

    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="请求 ID")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="请求时间"
    )
    endpoint: str = Field(..., description="API 路径")
    request_params: dict[str, Any] = Field(default_factory=dict, description="脱敏后的请求参数")
    response_status: int = Field(..., description="HTTP 状态码")
    response_data: dict[str, Any] | None = Field(default=None, description="响应数据")
    response_time_ms: int = Field(..., ge=0, description="响应时间(毫秒)")
    error: str | None = Field(default=None, description="错误信息")

    def to_json(self) -> dict[str, Any]:
        """转换为 JSON 日志格式"""
        return self.model_dump(mode="json")


class InboundEvent(BaseModel):
    """代理推送的原始事件"""

    message_type: str = Field(..., alias="messageType")
    wc_id: str = Field(default="", alias="wcId")
    timestamp: int | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator("message_type", mode="before")
    @classmethod
    def coerce_message_type(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("wc_id", mode="before")
    @classmethod
    def coerce_wc_id(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(v)
        return ""

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: Any) -> Any:
        # 外层时间戳仅作兜底,无法识别时视为缺失
        if isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        if isinstance(v, str):
            try:
                v = float(v)
            except ValueError:
                return None
        if isinstance(v, float) and math.isfinite(v):
            return int(v)
        return None

    @field_validator("data", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class MessageType(str, Enum):
    """规范化消息类型"""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    FILE = "file"
    VOICE = "voice"
    UNKNOWN = "unknown"


class Sender(BaseModel):
    id: str
    name: str = ""


class Recipient(BaseModel):
    id: str


class GroupInfo(BaseModel):
    id: str
    name: str = ""


class WechatMessageContext(BaseModel):
    """交给宿主的规范化消息

    由 InboundEvent 一对一派生,本模块不做持久化。
    """

    id: str
    type: MessageType
    sender: Sender
    recipient: Recipient
    content: str = ""
    timestamp: int
    thread_id: str = Field(..., alias="threadId")
    group: GroupInfo | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    def to_host_dict(self) -> dict[str, Any]:
        """按宿主约定的驼峰字段输出"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TargetKind(str, Enum):
    USER = "user"
    GROUP = "group"


class RecipientTarget(BaseModel):
    """规范化的消息目标"""

    kind: TargetKind
    id: str

    model_config = {"frozen": True}
