"""
Webhook logger configuration

The callback listener logs JSON lines to stderr or, when ``log_file`` is set,
to a size-rotated file.
"""

from os import W_OK, access
from pathlib import Path

import structlog

from wxbridge.utils.logging import configure_logging

from .webhook_config import WebhookConfig


def setup_webhook_logger(config: WebhookConfig) -> None:
    """Apply the listener's logging settings"""
    configure_logging(
        level=config.log_level,
        log_file=config.log_file,
        max_bytes=config.log_max_size_mb * 1024 * 1024,
        backup_count=config.log_backup_count,
    )


def get_webhook_logger():
    """Get webhook logger instance"""
    return structlog.get_logger("webhook")


def check_log_writable(log_file: str | None) -> tuple[bool, str | None]:
    """
    Check that the configured log file can be appended to

    Returns:
        (is_writable, error_message)
    """
    if not log_file:
        return True, None

    path = Path(log_file)
    target = path if path.exists() else path.parent
    if not target.exists():
        return False, f"Log directory does not exist: {target}"
    if not access(target, W_OK):
        return False, f"Permission denied: {target}"
    return True, None
