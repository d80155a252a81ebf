import json
from pathlib import Path

import click

from wxbridge.config import get_config_path
from wxbridge.endpoints.wechat.client import ProxyClient
from wxbridge.endpoints.wechat.config import BridgeConfig, ResolvedAccount, resolve_account
from wxbridge.endpoints.wechat.exceptions import ConfigurationError

config_option = click.option(
    "--config",
    "-c",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="账号配置文件路径 (默认: config/wechat.yaml 或 WXBRIDGE_CONFIG)",
)

account_option = click.option(
    "--account",
    "-a",
    default="default",
    show_default=True,
    help="账号 ID",
)

json_option = click.option(
    "--json-only",
    "-j",
    is_flag=True,
    help="仅输出 JSON 格式的响应数据",
)


def load_bridge_config(config: Path | None) -> BridgeConfig:
    """加载配置文件;默认路径不存在时只使用环境变量"""
    explicit = config is not None
    path = config if explicit else get_config_path()

    if not path.exists():
        if explicit:
            click.secho(f"❌ 配置文件不存在: {path}", fg="red", err=True)
            click.echo("请先创建配置文件,参考: config/wechat.yaml.example", err=True)
            raise SystemExit(1)
        return BridgeConfig()

    try:
        return BridgeConfig.load_from_yaml(path)
    except Exception as e:
        click.secho(f"❌ 配置文件加载失败: {e}", fg="red", err=True)
        raise SystemExit(1) from e


def load_account(config: Path | None, account_id: str) -> ResolvedAccount:
    """加载并解析账号,未配置凭证时退出"""
    bridge_config = load_bridge_config(config)
    try:
        account = resolve_account(bridge_config, account_id)
    except ConfigurationError as e:
        click.secho(f"❌ {e.message}", fg="red", err=True)
        raise SystemExit(1) from e

    if not account.configured:
        click.secho(f"❌ 账号 {account_id} 未配置 apiKey 或 proxyUrl", fg="red", err=True)
        click.echo("请在配置文件中填写,或设置 WECHAT_API_KEY / WECHAT_PROXY_URL", err=True)
        raise SystemExit(1)

    return account


def make_client(account: ResolvedAccount) -> ProxyClient:
    try:
        return ProxyClient(account.proxy_client_config())
    except ConfigurationError as e:
        click.secho(f"❌ {e.message}", fg="red", err=True)
        raise SystemExit(1) from e


def require_wc_id(account: ResolvedAccount) -> str:
    if not account.wc_id:
        click.secho(f"❌ 账号 {account.account_id} 尚未登录 (缺少 wcId)", fg="red", err=True)
        click.echo("请先执行 wxbridge login,并把输出的 wcId 写入配置文件", err=True)
        raise SystemExit(1)
    return account.wc_id


def echo_json(data: object, *, indent: int = 2) -> None:
    click.echo(json.dumps(data, indent=indent, ensure_ascii=False, default=str))


def fail(e: Exception, json_only: bool, title: str) -> None:
    """输出错误并以状态码 1 退出"""
    if json_only:
        echo_json({"success": False, "error": str(e)})
    else:
        click.secho(f"❌ {title}: {e}", fg="red", err=True)
    raise SystemExit(1) from e
