"""
Webhook configuration model

Callback listener settings, loaded from keyword arguments or WEBHOOK_*
environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class WebhookConfig(BaseSettings):
    """Webhook listener configuration"""

    # Service configuration
    host: str = Field(default="0.0.0.0", description="Listen address")
    port: int = Field(default=18790, ge=0, le=65535, description="Listen port (0 = ephemeral)")
    webhook_path: str = Field(default="/webhook/wechat", description="Webhook path")
    health_check_path: str = Field(default="/health", description="Health check path")

    # Authentication
    api_key: str = Field(default="", description="Shared secret expected on every delivery")
    api_key_header: str = Field(default="X-API-Key", description="Header carrying the key")
    api_key_query_param: str = Field(default="key", description="Query fallback for the key")

    # Delivery handling
    dedupe_window: int = Field(default=1024, ge=0, description="Recent message ids kept")
    shutdown_timeout: float = Field(default=5.0, gt=0, description="Max drain on stop (s)")
    startup_timeout: float = Field(default=5.0, gt=0, description="Max wait for startup (s)")

    # Logging configuration
    log_file: str | None = Field(default=None, description="Log file path (None = stderr)")
    log_max_size_mb: int = Field(default=100, gt=0, description="Max log file size (MB)")
    log_backup_count: int = Field(default=10, ge=0, description="Log backup count")
    log_level: str = Field(default="INFO", description="Log level")

    # Service information
    service_name: str = Field(default="wxbridge-webhook", description="Service name")
    service_version: str = Field(default="0.1.0", description="Service version")

    model_config = {
        "env_prefix": "WEBHOOK_",
        "extra": "ignore",
    }
