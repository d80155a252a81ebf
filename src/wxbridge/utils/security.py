"""敏感数据安全处理工具

日志里的凭证只保留前缀,微信账号标识只保留短哈希;回调鉴权使用常量时间比较。
"""

import hashlib
import hmac
from typing import Any

from structlog.types import EventDict

# 字段名统一为小写下划线形式后比较
SENSITIVE_FIELDS = frozenset(
    {"api_key", "apikey", "x_api_key", "password", "token", "secret", "authorization"}
)

# 默认按 PII 处理的字段(微信账号标识和昵称)
DEFAULT_PII_FIELDS = {"wcId", "wc_id", "nickName", "nick_name", "fromUser", "toUser"}


def is_sensitive_field(name: str) -> bool:
    """判断字段名是否为凭证类字段(X-API-Key 与 api_key 等价)"""
    return name.lower().replace("-", "_") in SENSITIVE_FIELDS


def mask_secret(secret: str, show_chars: int = 4) -> str:
    """脱敏 API 密钥

    Examples:
        >>> mask_secret("wc_live_test_xxxxxxxx")
        'wc_l***'
        >>> mask_secret("short", show_chars=5)
        '***'
    """
    if len(secret) <= show_chars:
        return "***"
    return secret[:show_chars] + "***"


def hash_pii(data: str, hash_length: int = 8) -> str:
    """SHA-256 截断哈希,用于日志去标识化"""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()[:hash_length]


def secrets_match(provided: str | None, expected: str) -> bool:
    """常量时间比较共享密钥,任一方为空时不匹配"""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def mask_sensitive_data(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Structlog 处理器:脱敏顶层凭证字段

    Examples:
        >>> mask_sensitive_data(None, "info", {"api_key": "wc_live_123", "user": "test"})
        {'api_key': 'wc_l***', 'user': 'test'}
    """
    for key, value in event_dict.items():
        if isinstance(value, str) and is_sensitive_field(key):
            event_dict[key] = mask_secret(value)
    return event_dict


def _sanitize_value(value: Any, pii_fields: set[str]) -> Any:
    if isinstance(value, dict):
        return sanitize_dict(value, pii_fields)
    if isinstance(value, list):
        return [_sanitize_value(item, pii_fields) for item in value]
    return value


def sanitize_dict(data: dict[str, Any], pii_fields: set[str] | None = None) -> dict[str, Any]:
    """返回脱敏后的副本

    凭证字段打码,PII 字段替换为 ``<key>_hash``,嵌套的字典和列表递归处理。

    Examples:
        >>> sanitize_dict({"X-API-Key": "wc_live_123", "wcId": "wxid_a"}, pii_fields={"wcId"})
        {'X-API-Key': 'wc_l***', 'wcId_hash': '...'}
    """
    pii_fields = pii_fields or set()
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        if isinstance(value, str) and is_sensitive_field(key):
            sanitized[key] = mask_secret(value)
        elif isinstance(value, str) and key in pii_fields:
            sanitized[f"{key}_hash"] = hash_pii(value)
        else:
            sanitized[key] = _sanitize_value(value, pii_fields)

    return sanitized
