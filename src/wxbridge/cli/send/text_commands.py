from pathlib import Path

import click

from wxbridge.endpoints.wechat.outbound import OutboundSender
from wxbridge.endpoints.wechat.targets import TARGET_HINT, normalize_target

from ..utils import (
    account_option,
    config_option,
    echo_json,
    fail,
    json_option,
    load_account,
    make_client,
)


@click.command()
@config_option
@account_option
@click.option("--to", "to", required=True, help=f"接收方 {TARGET_HINT}")
@click.option("--content", required=True, help="文本内容")
@json_option
def send_text(config: Path | None, account: str, to: str, content: str, json_only: bool) -> None:
    """发送文本消息（/v1/sendText）"""
    resolved = load_account(config, account)

    try:
        target = normalize_target(to)
    except ValueError as e:
        fail(e, json_only, "目标无效")

    if not json_only:
        click.secho("📡 加载配置...", fg="blue")
        click.echo(f"👤 账号: {resolved.name or resolved.account_id}")
        click.echo(f"➡️  目标: {target.kind.value}:{target.id}")
        click.echo()
        click.secho("🔄 正在发送文本消息...", fg="blue")
        click.echo()

    try:
        with make_client(resolved) as client:
            result = OutboundSender(client).send_text(to, content)
    except Exception as e:
        fail(e, json_only, "发送失败")

    if not json_only:
        click.secho("✅ 发送请求完成", fg="green")
    echo_json(result.model_dump(by_alias=True))
