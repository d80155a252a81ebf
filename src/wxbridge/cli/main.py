#!/usr/bin/env python3
"""wxbridge CLI 工具

命令行工具,用于登录代理账号、发送消息和运行回调监听服务。

用法:
    wxbridge accounts              # 列出配置的账号
    wxbridge login                 # 扫码登录
    wxbridge send text --to wxid_xxx --content 你好
    wxbridge serve                 # 启动回调监听服务
"""

import os
import sys
import time
from pathlib import Path

import click
import orjson

from wxbridge.endpoints.wechat.config import describe_account, list_account_ids, resolve_account
from wxbridge.endpoints.wechat.exceptions import ConfigurationError, ListenerBindError, LoginTimeout
from wxbridge.endpoints.wechat.listener import CallbackListener
from wxbridge.endpoints.wechat.login import LoginFlowController
from wxbridge.endpoints.wechat.models import LoginNeedVerify, WechatMessageContext
from wxbridge.utils.logging import configure_logging

from .send import send
from .utils import (
    account_option,
    config_option,
    echo_json,
    fail,
    json_option,
    load_account,
    load_bridge_config,
    make_client,
    require_wc_id,
)


@click.group()
@click.version_option(version="0.1.0", prog_name="wxbridge")
def cli():
    """wxbridge - 微信自动化代理桥接命令行工具"""
    # 日志只写 stderr,stdout 留给命令输出
    configure_logging(level=os.getenv("WXBRIDGE_LOG_LEVEL", "WARNING"))


# 注册 send 子命令组
cli.add_command(send)


@cli.command()
@config_option
@json_option
def accounts(config: Path | None, json_only: bool):
    """列出配置的账号(API Key 脱敏)"""
    bridge_config = load_bridge_config(config)

    summaries = []
    for account_id in list_account_ids(bridge_config):
        summaries.append(describe_account(resolve_account(bridge_config, account_id)))

    if json_only:
        echo_json(summaries)
        return

    for summary in summaries:
        state = "✅" if summary["configured"] else "⚠️ "
        login = summary["nickName"] or summary["wcId"] or "未登录"
        click.echo(f"{state} {summary['accountId']:<12} {login:<16} {summary['webhook']}")


@cli.command()
@config_option
@account_option
@json_option
def status(config: Path | None, account: str, json_only: bool):
    """查询账号状态(有效性、登录状态、配额)"""
    resolved = load_account(config, account)

    try:
        with make_client(resolved) as client:
            account_status = client.get_status()
    except Exception as e:
        fail(e, json_only, "查询失败")

    if json_only:
        echo_json(account_status.model_dump(by_alias=True))
        return

    click.secho("=" * 60, fg="cyan")
    click.secho(f"📱 账号: {resolved.name or resolved.account_id}", fg="cyan", bold=True)
    click.secho("=" * 60, fg="cyan")
    click.echo(f"API Key 有效:  {'是' if account_status.valid else '否'}")
    click.echo(f"已登录:        {'是' if account_status.is_logged_in else '否'}")
    if account_status.wc_id:
        click.echo(f"微信 ID:       {account_status.wc_id}")
    if account_status.nick_name:
        click.echo(f"昵称:          {account_status.nick_name}")
    if account_status.quota:
        click.echo(
            f"今日额度:      {account_status.quota.used_today}"
            f"/{account_status.quota.max_messages_per_day}"
        )


@cli.command()
@config_option
@account_option
@click.option("--device-type", default=None, help="设备类型 (默认: 配置值或 mac)")
@click.option("--proxy", default=None, help="代理线路 (默认: 配置值或 10)")
@click.option("--interval", type=float, default=2.0, show_default=True, help="轮询间隔(秒)")
@click.option("--max-attempts", type=int, default=None, help="最多轮询次数")
@click.option("--timeout", type=float, default=300.0, show_default=True, help="最长等待(秒)")
def login(
    config: Path | None,
    account: str,
    device_type: str | None,
    proxy: str | None,
    interval: float,
    max_attempts: int | None,
    timeout: float,
):
    """扫码登录

    签发二维码,轮询直到登录成功,输出需要写入配置文件的 wcId。
    """
    resolved = load_account(config, account)
    shown_verify_urls: set[str] = set()

    def on_status(login_status):
        if isinstance(login_status, LoginNeedVerify) and login_status.verify_url not in shown_verify_urls:
            shown_verify_urls.add(login_status.verify_url)
            click.secho("🔐 需要验证,请在浏览器中打开:", fg="yellow")
            click.echo(f"   {login_status.verify_url}")

    try:
        with make_client(resolved) as client:
            controller = LoginFlowController(
                client,
                device_type=device_type or resolved.device_type,
                proxy=proxy or resolved.proxy,
            )
            session = controller.start()

            click.secho("📷 请使用微信扫描二维码:", fg="blue")
            click.echo(f"   {session.qr_code_url}")
            click.echo()
            click.secho("🔄 等待扫码...", fg="blue")

            logged_in = controller.wait_for_login(
                session,
                interval=interval,
                max_attempts=max_attempts,
                deadline=timeout,
                on_status=on_status,
            )
    except LoginTimeout as e:
        click.secho(f"⏰ {e.message}", fg="yellow", err=True)
        sys.exit(1)
    except Exception as e:
        fail(e, False, "登录失败")

    click.echo()
    click.secho("✅ 登录成功", fg="green", bold=True)
    click.echo(f"微信 ID:  {logged_in.wc_id}")
    click.echo(f"昵称:     {logged_in.nick_name}")
    click.echo()
    click.echo(f"请在配置文件 accounts.{resolved.account_id} 中写入:")
    click.echo(f"  wcId: {logged_in.wc_id}")


@cli.command()
@config_option
@account_option
@json_option
def contacts(config: Path | None, account: str, json_only: bool):
    """获取好友和群聊列表"""
    resolved = load_account(config, account)
    wc_id = require_wc_id(resolved)

    try:
        with make_client(resolved) as client:
            contact_list = client.get_contacts(wc_id)
    except Exception as e:
        fail(e, json_only, "获取失败")

    if json_only:
        echo_json(contact_list.model_dump())
        return

    click.secho(f"👥 好友 ({len(contact_list.friends)})", fg="cyan", bold=True)
    for friend in contact_list.friends:
        click.echo(f"  user:{friend}")
    click.secho(f"💬 群聊 ({len(contact_list.chatrooms)})", fg="cyan", bold=True)
    for chatroom in contact_list.chatrooms:
        click.echo(f"  group:{chatroom}")


@cli.command(name="register-webhook")
@config_option
@account_option
@click.option("--url", default=None, help="回调地址 (默认: 由 webhookHost/Port/Path 拼接)")
def register_webhook(config: Path | None, account: str, url: str | None):
    """向代理注册回调地址"""
    resolved = load_account(config, account)
    webhook_url = url or resolved.webhook_url()

    if not webhook_url:
        click.secho("❌ 未指定 --url,且账号未配置 webhookHost", fg="red", err=True)
        sys.exit(1)

    try:
        with make_client(resolved) as client:
            client.register_webhook(webhook_url)
    except Exception as e:
        fail(e, False, "注册失败")

    click.secho(f"✅ 已注册回调地址: {webhook_url}", fg="green")


def echo_message(message: WechatMessageContext) -> None:
    """默认消息消费者:每条消息输出一行 JSON"""
    click.echo(orjson.dumps(message.to_host_dict()).decode("utf-8"))


@cli.command()
@config_option
@account_option
@click.option(
    "--host",
    "-h",
    type=str,
    help="Host to bind (default: 0.0.0.0)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    help="Port to bind (default: account webhookPort or 18790)",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (default: INFO)",
)
def serve(config: Path | None, account: str, host, port, log_level):
    """启动回调监听服务

    接收代理推送的消息,并以 JSON 行的形式输出到标准输出。

    示例:
        wxbridge serve
        wxbridge serve --port 9000
        wxbridge serve --account work --log-level DEBUG
    """
    resolved = load_account(config, account)

    # 命令行参数覆盖配置文件
    overrides = {}
    if host:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if log_level:
        overrides["log_level"] = log_level.upper()
    webhook_config = resolved.webhook_config(**overrides)

    try:
        listener = CallbackListener(webhook_config, echo_message)
        handle = listener.start()
    except (ConfigurationError, ListenerBindError) as e:
        click.secho(f"❌ {e.message}", fg="red", err=True)
        sys.exit(1)

    # stdout 只留给消息
    click.secho(
        f"🚀 {webhook_config.service_name} v{webhook_config.service_version}"
        f" | account={resolved.account_id}",
        fg="cyan",
        bold=True,
        err=True,
    )
    for label, value in (
        ("listen", f"{handle.host}:{handle.port}"),
        ("webhook", webhook_config.webhook_path),
        ("health", webhook_config.health_check_path),
        ("log", f"{webhook_config.log_level} -> {webhook_config.log_file or 'stderr'}"),
    ):
        click.echo(f"   {label:<8} {value}", err=True)
    click.secho("🏁 Press Ctrl+C to stop", fg="green", err=True)

    try:
        while listener.running:
            time.sleep(0.5)
    except KeyboardInterrupt:
        click.secho("🛑 Server stopped by user", fg="yellow", err=True)
        return
    finally:
        handle.stop()

    click.secho("❌ 监听服务意外退出", fg="red", err=True)
    sys.exit(1)


if __name__ == "__main__":
    cli()
