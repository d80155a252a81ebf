"""消息目标解析

把宿主传入的目标字符串(带 user:/group: 前缀或原始 ID)规范化为 RecipientTarget。
"""

import re

from wxbridge.endpoints.wechat.models import RecipientTarget, TargetKind

USER_PREFIX = "user:"
GROUP_PREFIX = "group:"
CHATROOM_SUFFIX = "@chatroom"

TARGET_HINT = "<wxid_xxx|xxx@chatroom|user:ID|group:ID>"

_WXID_RE = re.compile(r"^wxid_[A-Za-z0-9_-]+$")
_CHATROOM_RE = re.compile(r"^[A-Za-z0-9_-]+@chatroom$")


def normalize_target(raw: str) -> RecipientTarget:
    """规范化消息目标

    规则按顺序匹配:
        1. ``user:`` 前缀 -> 用户
        2. ``group:`` 前缀 -> 群聊
        3. 以 ``@chatroom`` 结尾 -> 群聊
        4. 其他 -> 用户

    Raises:
        ValueError: 目标为空
    """
    value = raw.strip()
    if value.startswith(USER_PREFIX):
        target = RecipientTarget(kind=TargetKind.USER, id=value[len(USER_PREFIX) :].strip())
    elif value.startswith(GROUP_PREFIX):
        target = RecipientTarget(kind=TargetKind.GROUP, id=value[len(GROUP_PREFIX) :].strip())
    elif value.endswith(CHATROOM_SUFFIX):
        target = RecipientTarget(kind=TargetKind.GROUP, id=value)
    else:
        target = RecipientTarget(kind=TargetKind.USER, id=value)

    if not target.id:
        raise ValueError(f"消息目标为空: {raw!r}")
    return target


def looks_like_id(candidate: str) -> bool:
    """判断字符串是否像一个可直接寻址的微信 ID

    这是启发式判断,不是校验: 自定义微信号(非 wxid_ 开头)会被判为 False,
    而形如 wxid_ 的昵称会被判为 True。宿主据此决定是否需要先按昵称解析。
    """
    value = candidate.strip()
    if value.startswith((USER_PREFIX, GROUP_PREFIX)):
        return len(value.split(":", 1)[1].strip()) > 0
    return bool(_CHATROOM_RE.match(value) or _WXID_RE.match(value))
