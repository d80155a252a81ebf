"""通用工具模块

- logging: 结构化日志配置
- security: 凭证脱敏、PII 哈希和密钥比较
"""

from wxbridge.utils.logging import configure_logging, get_logger
from wxbridge.utils.security import hash_pii, mask_secret, sanitize_dict, secrets_match

__all__ = [
    "configure_logging",
    "get_logger",
    "mask_secret",
    "hash_pii",
    "sanitize_dict",
    "secrets_match",
]
