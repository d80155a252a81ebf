from pathlib import Path

import click

from wxbridge.endpoints.wechat.outbound import OutboundSender
from wxbridge.endpoints.wechat.targets import TARGET_HINT

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
@click.option("--url", "image_url", required=True, help="图片网络地址")
@json_option
def send_image(
    config: Path | None, account: str, to: str, image_url: str, json_only: bool
) -> None:
    """发送网络图片（/v1/sendImage2）"""
    resolved = load_account(config, account)

    if not json_only:
        click.secho(f"🔄 正在发送图片到 {to}...", fg="blue")
        click.echo()

    try:
        with make_client(resolved) as client:
            result = OutboundSender(client).send_media(to, image_url)
    except Exception as e:
        fail(e, json_only, "发送失败")

    if not json_only:
        click.secho("✅ 发送请求完成", fg="green")
    echo_json(result.model_dump(by_alias=True))
