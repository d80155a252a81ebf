"""Pytest 全局配置和 fixtures"""

import pytest

from wxbridge.endpoints.wechat.config import ProxyClientConfig, TimeoutConfig
from wxbridge.endpoints.wechat.webhook_config import WebhookConfig

PROXY_URL = "https://proxy.example.com"
API_KEY = "wc_live_test_key_123456"


@pytest.fixture
def proxy_config() -> ProxyClientConfig:
    """代理客户端配置"""
    return ProxyClientConfig(
        api_key=API_KEY,
        account_id="default",
        base_url=PROXY_URL,
        timeout=TimeoutConfig(connect=5, read=10),
    )


@pytest.fixture
def webhook_config() -> WebhookConfig:
    """回调监听器配置(只监听本机,端口由系统分配)"""
    return WebhookConfig(host="127.0.0.1", port=0, api_key=API_KEY)


@pytest.fixture
def text_message_payload() -> dict:
    """私聊文本消息推送"""
    return {
        "messageType": "60001",
        "wcId": "wxid_bot",
        "timestamp": 1700000000000,
        "data": {
            "newMsgId": 7000000001,
            "fromUser": "wxid_alice",
            "toUser": "wxid_bot",
            "content": "你好",
            "timestamp": 1700000000123,
        },
    }


@pytest.fixture
def group_message_payload() -> dict:
    """群聊文本消息推送"""
    return {
        "messageType": "80001",
        "wcId": "wxid_bot",
        "timestamp": 1700000001000,
        "data": {
            "newMsgId": 7000000002,
            "fromUser": "wxid_bob",
            "fromGroup": "12345@chatroom",
            "groupName": "测试群",
            "toUser": "wxid_bot",
            "content": "大家好",
            "timestamp": 1700000001000,
        },
    }


@pytest.fixture
def api_key() -> str:
    """测试用共享密钥"""
    return API_KEY
