"""微信代理配置加载

使用 Pydantic Settings 从 YAML 文件和环境变量加载账号配置,
并解析为代理客户端和回调监听器所需的配置对象。
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from wxbridge.endpoints.wechat.exceptions import ConfigurationError
from wxbridge.endpoints.wechat.webhook_config import WebhookConfig
from wxbridge.utils.security import mask_secret

DEFAULT_ACCOUNT_ID = "default"
DEFAULT_DEVICE_TYPE = "mac"
DEFAULT_PROXY_LINE = "10"
DEFAULT_WEBHOOK_PORT = 18790
DEFAULT_WEBHOOK_PATH = "/webhook/wechat"


class TimeoutConfig(BaseModel):
    """超时配置"""

    connect: float = Field(default=10, ge=1, le=60, description="连接超时(秒)")
    read: float = Field(default=30, ge=1, le=300, description="读取超时(秒)")


class ProxyClientConfig(BaseModel):
    """代理客户端配置

    base_url 允许为空,由 ProxyClient 在构造时报告 ConfigurationError。
    """

    api_key: str = Field(..., description="代理服务 API Key")
    account_id: str = Field(default=DEFAULT_ACCOUNT_ID, description="账号 ID")
    base_url: str | None = Field(default=None, description="代理服务地址")
    timeout: TimeoutConfig = Field(default_factory=TimeoutConfig, description="超时配置")


class AccountConfig(BaseModel):
    """单个账号的 YAML 配置"""

    enabled: bool = True
    name: str | None = None
    api_key: str | None = Field(default=None, alias="apiKey")
    proxy_url: str | None = Field(default=None, alias="proxyUrl")
    device_type: str | None = Field(default=None, alias="deviceType")
    proxy: str | None = None
    wc_id: str | None = Field(default=None, alias="wcId")
    nick_name: str | None = Field(default=None, alias="nickName")
    head_url: str | None = Field(default=None, alias="headUrl")
    webhook_host: str | None = Field(default=None, alias="webhookHost")
    webhook_port: int | None = Field(default=None, ge=0, le=65535, alias="webhookPort")
    webhook_path: str | None = Field(default=None, alias="webhookPath")

    model_config = {"populate_by_name": True, "extra": "ignore"}


class EnvOverrides(BaseSettings):
    """环境变量覆盖项(WECHAT_ 前缀),仅作用于默认账号"""

    api_key: str | None = None
    proxy_url: str | None = None

    model_config = SettingsConfigDict(env_prefix="WECHAT_", extra="ignore")


class BridgeConfig(BaseModel):
    """桥接服务完整配置

    从 YAML 文件加载,结构为 ``accounts: {<id>: {...}}``。
    """

    accounts: dict[str, AccountConfig] = Field(default_factory=dict, description="账号表")
    timeout: TimeoutConfig = Field(default_factory=TimeoutConfig, description="超时配置")

    model_config = {"extra": "ignore"}

    @classmethod
    def load_from_yaml(cls, config_path: str | Path) -> "BridgeConfig":
        """从 YAML 文件加载配置

        Raises:
            FileNotFoundError: 配置文件不存在
            ValueError: 配置格式无效
            ValidationError: 配置验证失败
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"配置文件不存在: {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                config_data: dict[str, Any] = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"无效的 YAML 格式: {e}") from e

        return cls(**config_data)


class ResolvedAccount(BaseModel):
    """合并默认值和环境变量后的账号"""

    account_id: str
    enabled: bool = True
    configured: bool = False
    name: str | None = None
    api_key: str = ""
    proxy_url: str = ""
    wc_id: str | None = None
    is_logged_in: bool = False
    nick_name: str | None = None
    head_url: str | None = None
    device_type: str = DEFAULT_DEVICE_TYPE
    proxy: str = DEFAULT_PROXY_LINE
    webhook_host: str | None = None
    webhook_port: int = DEFAULT_WEBHOOK_PORT
    webhook_path: str = DEFAULT_WEBHOOK_PATH
    timeout: TimeoutConfig = Field(default_factory=TimeoutConfig)

    def proxy_client_config(self) -> ProxyClientConfig:
        """构建该账号的代理客户端配置"""
        return ProxyClientConfig(
            api_key=self.api_key,
            account_id=self.account_id,
            base_url=self.proxy_url or None,
            timeout=self.timeout,
        )

    def webhook_config(self, **overrides: Any) -> WebhookConfig:
        """构建该账号的回调监听器配置"""
        values: dict[str, Any] = {
            "port": self.webhook_port,
            "webhook_path": self.webhook_path,
            "api_key": self.api_key,
        }
        values.update(overrides)
        return WebhookConfig(**values)

    def webhook_url(self) -> str | None:
        """拼接向代理注册的公网回调地址,未配置 webhook_host 时返回 None"""
        if not self.webhook_host:
            return None
        host = self.webhook_host.rstrip("/")
        if not host.startswith(("http://", "https://")):
            host = f"http://{host}:{self.webhook_port}"
        return f"{host}{self.webhook_path}"


def list_account_ids(config: BridgeConfig) -> list[str]:
    """列出配置中的账号 ID,未配置任何账号时返回默认账号"""
    ids = list(config.accounts.keys())
    return ids or [DEFAULT_ACCOUNT_ID]


def resolve_account(
    config: BridgeConfig,
    account_id: str = DEFAULT_ACCOUNT_ID,
    env: EnvOverrides | None = None,
) -> ResolvedAccount:
    """解析账号配置

    Args:
        config: 桥接配置
        account_id: 账号 ID
        env: 环境变量覆盖项(默认从进程环境读取)

    Raises:
        ConfigurationError: 账号不存在
    """
    account = config.accounts.get(account_id)
    if account is None:
        if account_id != DEFAULT_ACCOUNT_ID:
            raise ConfigurationError(f"账号不存在: {account_id}")
        account = AccountConfig()

    env = env if env is not None else EnvOverrides()
    api_key = account.api_key
    proxy_url = account.proxy_url
    if account_id == DEFAULT_ACCOUNT_ID:
        api_key = api_key or env.api_key
        proxy_url = proxy_url or env.proxy_url

    return ResolvedAccount(
        account_id=account_id,
        enabled=account.enabled,
        configured=bool(api_key and proxy_url),
        name=account.name,
        api_key=api_key or "",
        proxy_url=proxy_url or "",
        wc_id=account.wc_id,
        is_logged_in=bool(account.wc_id),
        nick_name=account.nick_name,
        head_url=account.head_url,
        device_type=account.device_type or DEFAULT_DEVICE_TYPE,
        proxy=account.proxy or DEFAULT_PROXY_LINE,
        webhook_host=account.webhook_host,
        webhook_port=(
            account.webhook_port if account.webhook_port is not None else DEFAULT_WEBHOOK_PORT
        ),
        webhook_path=account.webhook_path or DEFAULT_WEBHOOK_PATH,
        timeout=config.timeout,
    )


def describe_account(account: ResolvedAccount) -> dict[str, Any]:
    """生成账号摘要(API Key 脱敏)"""
    return {
        "accountId": account.account_id,
        "name": account.name,
        "enabled": account.enabled,
        "configured": account.configured,
        "isLoggedIn": account.is_logged_in,
        "wcId": account.wc_id,
        "nickName": account.nick_name,
        "apiKey": mask_secret(account.api_key) if account.api_key else None,
        "proxyUrl": account.proxy_url or None,
        "webhook": f":{account.webhook_port}{account.webhook_path}",
    }
