"""
Webhook request handler

Authenticate proxy deliveries, parse them into InboundEvents, classify the
proxy message codes and normalize message events into WechatMessageContext.
"""

import hashlib
import threading
import time
import uuid
from collections import OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import orjson
from pydantic import ValidationError

from wxbridge.utils.security import secrets_match

from .config import DEFAULT_WEBHOOK_PATH
from .exceptions import AuthenticationError
from .models import (
    GroupInfo,
    InboundEvent,
    MessageType,
    Recipient,
    Sender,
    WechatMessageContext,
)
from .targets import CHATROOM_SUFFIX
from .webhook_config import WebhookConfig


class InvalidPayloadError(ValueError):
    """Delivery body could not be turned into an InboundEvent or message."""


class EventCategory(str, Enum):
    """Semantic category of a proxy messageType code"""

    MESSAGE = "message"
    LOGIN_STATUS = "login_status"
    OTHER = "other"


# messageType -> (is_group, MessageType)
MESSAGE_TYPE_MAP: dict[str, tuple[bool, MessageType]] = {
    "60001": (False, MessageType.TEXT),
    "60002": (False, MessageType.IMAGE),
    "60003": (False, MessageType.VIDEO),
    "60004": (False, MessageType.VOICE),
    "60008": (False, MessageType.FILE),
    "80001": (True, MessageType.TEXT),
    "80002": (True, MessageType.IMAGE),
    "80003": (True, MessageType.VIDEO),
    "80004": (True, MessageType.VOICE),
    "80008": (True, MessageType.FILE),
}

PRIVATE_MESSAGE_PREFIX = "600"
GROUP_MESSAGE_PREFIX = "800"
LOGIN_STATUS_CODES = frozenset({"30000", "30001"})


@dataclass
class WebhookRequest:
    """Webhook delivery record

    Per-request metadata used for logging; never carries headers or body text.
    """

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(UTC).isoformat().replace("+00:00", "Z")
    )
    client_ip: str = ""
    method: str = "POST"
    path: str = DEFAULT_WEBHOOK_PATH
    body_bytes_length: int = 0
    content_type: str | None = None
    message_type: str | None = None
    category: str | None = None
    message_id: str | None = None
    parse_error: str | None = None

    def to_log_dict(self) -> dict[str, Any]:
        """Convert to log dictionary"""
        return {
            "request_id": self.request_id,
            "timestamp": self.timestamp,
            "client_ip": self.client_ip,
            "method": self.method,
            "path": self.path,
            "body_length": self.body_bytes_length,
            "content_type": self.content_type,
            "message_type": self.message_type,
            "category": self.category,
            "message_id": self.message_id,
            "parse_error": self.parse_error,
        }


def authenticate_request(
    headers: Mapping[str, str],
    query_params: Mapping[str, str],
    config: WebhookConfig,
) -> None:
    """
    Verify the shared API key of a delivery

    The header is checked first; the query parameter is the fallback for
    proxies that cannot set custom headers.

    Raises:
        AuthenticationError: key missing or wrong
    """
    provided = headers.get(config.api_key_header) or query_params.get(config.api_key_query_param)
    if not provided:
        raise AuthenticationError("missing api key")
    if not secrets_match(provided, config.api_key):
        raise AuthenticationError("invalid api key")


def parse_inbound_event(body: bytes) -> InboundEvent:
    """
    Parse a delivery body

    Raises:
        InvalidPayloadError: not JSON, not an object or missing messageType
    """
    if not body:
        raise InvalidPayloadError("empty body")
    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError as e:
        raise InvalidPayloadError(f"JSON decode error: {e}") from e

    if not isinstance(payload, dict):
        raise InvalidPayloadError(f"expected JSON object, got {type(payload).__name__}")

    try:
        return InboundEvent.model_validate(payload)
    except ValidationError as e:
        raise InvalidPayloadError(f"invalid event shape: {e.errors()[0]['msg']}") from e


def classify_event(message_type: str) -> EventCategory:
    """Map a proxy messageType code to its category"""
    if message_type in MESSAGE_TYPE_MAP:
        return EventCategory.MESSAGE
    if (
        len(message_type) == 5
        and message_type.isdigit()
        and message_type.startswith((PRIVATE_MESSAGE_PREFIX, GROUP_MESSAGE_PREFIX))
    ):
        return EventCategory.MESSAGE
    if message_type in LOGIN_STATUS_CODES:
        return EventCategory.LOGIN_STATUS
    return EventCategory.OTHER


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict):
        # 部分字段使用 {"string": "value"} 格式
        return str(value.get("string", ""))
    return str(value)


def _message_id(event: InboundEvent) -> str:
    data = event.data
    msg_id = data.get("newMsgId") or data.get("msgId")
    if msg_id not in (None, ""):
        return str(msg_id)
    # 无消息 ID 时用内容摘要,保证同一投递得到同一 ID
    digest = hashlib.sha256(
        orjson.dumps(event.model_dump(by_alias=True), option=orjson.OPT_SORT_KEYS)
    ).hexdigest()
    return f"h_{digest[:16]}"


def to_message_context(
    event: InboundEvent, received_at_ms: int | None = None
) -> WechatMessageContext:
    """
    Normalize a message-received event

    Unmapped 600xx/800xx subtypes become type ``unknown``.

    Raises:
        InvalidPayloadError: no sender could be determined
    """
    data = event.data
    is_group, msg_type = MESSAGE_TYPE_MAP.get(
        event.message_type,
        (event.message_type.startswith(GROUP_MESSAGE_PREFIX), MessageType.UNKNOWN),
    )

    sender_id = _text(data.get("fromUser"))
    to_user = _text(data.get("toUser"))
    group_id = _text(data.get("fromGroup"))
    if not group_id and sender_id.endswith(CHATROOM_SUFFIX):
        group_id = sender_id
        sender_id = _text(data.get("sender") or data.get("realFromUser")) or sender_id
    if not group_id and to_user.endswith(CHATROOM_SUFFIX):
        group_id = to_user
    if group_id:
        is_group = True

    if not sender_id:
        raise InvalidPayloadError("message event without fromUser")

    timestamp = data.get("timestamp") or event.timestamp
    if timestamp in (None, ""):
        timestamp = received_at_ms if received_at_ms is not None else int(time.time() * 1000)
    try:
        timestamp = int(timestamp)
    except (TypeError, ValueError) as e:
        raise InvalidPayloadError(f"invalid timestamp: {timestamp!r}") from e

    group = None
    if is_group and group_id:
        group = GroupInfo(id=group_id, name=_text(data.get("groupName") or data.get("fromGroupName")))

    return WechatMessageContext(
        id=_message_id(event),
        type=msg_type,
        sender=Sender(
            id=sender_id,
            name=_text(data.get("fromUserName") or data.get("senderName") or data.get("nickName")),
        ),
        recipient=Recipient(id=to_user or event.wc_id),
        content=_text(data.get("content")),
        timestamp=timestamp,
        thread_id=group.id if group else sender_id,
        group=group,
        raw=event.model_dump(by_alias=True),
    )


class RecentMessageIds:
    """Bounded window of recently forwarded message ids"""

    def __init__(self, capacity: int):
        self.capacity = capacity
        self._ids: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.Lock()

    def add(self, message_id: str) -> bool:
        """Record an id; False when it is already in the window"""
        if self.capacity <= 0:
            return True
        with self._lock:
            if message_id in self._ids:
                self._ids.move_to_end(message_id)
                return False
            self._ids[message_id] = None
            while len(self._ids) > self.capacity:
                self._ids.popitem(last=False)
            return True

    def __len__(self) -> int:
        return len(self._ids)
