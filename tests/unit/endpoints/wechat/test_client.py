"""代理客户端单元测试"""

import json
from unittest.mock import MagicMock

import pytest
from pytest_httpx import HTTPXMock

from wxbridge.endpoints.wechat.client import ProxyClient
from wxbridge.endpoints.wechat.config import ProxyClientConfig
from wxbridge.endpoints.wechat.exceptions import (
    ConfigurationError,
    InvalidResponseError,
    ProxyRequestError,
)
from wxbridge.endpoints.wechat.models import LoginLoggedIn, LoginNeedVerify, LoginWaiting

BASE_URL = "https://proxy.example.com"


@pytest.fixture
def client(proxy_config: ProxyClientConfig) -> ProxyClient:
    with ProxyClient(proxy_config) as c:
        yield c


def sent_body(httpx_mock: HTTPXMock) -> dict:
    return json.loads(httpx_mock.get_request().content)


class TestConstruction:
    def test_missing_base_url(self, api_key):
        with pytest.raises(ConfigurationError):
            ProxyClient(ProxyClientConfig(api_key=api_key, base_url=None))

    def test_injected_http_client_is_used(self, proxy_config):
        http_client = MagicMock()
        http_client.send_request.return_value = {"code": "1000", "data": {"valid": True}}

        client = ProxyClient(proxy_config, http_client=http_client)

        assert client.authenticate() is True
        request = http_client.send_request.call_args[0][0]
        assert request.path == "/v1/account/status"

    def test_close_closes_http_client(self, proxy_config):
        http_client = MagicMock()

        with ProxyClient(proxy_config, http_client=http_client):
            pass

        http_client.close.assert_called_once()


class TestEnvelope:
    """信封处理"""

    @pytest.mark.parametrize("code", ["1000", "1001", "1002"])
    def test_success_codes_never_raise(self, client, httpx_mock, code):
        httpx_mock.add_response(json={"code": code, "data": {"x": 1}})

        result = client.request("/v1/account/status")

        assert result.data == {"x": 1}
        assert result.code == code

    def test_missing_data_returns_envelope(self, client, httpx_mock):
        envelope = {"code": "1000", "message": "ok"}
        httpx_mock.add_response(json=envelope)

        assert client.request("/v1/webhook/register", {"webhookUrl": "x"}).data == envelope

    def test_error_code_message(self, client, httpx_mock):
        httpx_mock.add_response(json={"code": "2001", "message": "余额不足"})

        with pytest.raises(ProxyRequestError, match="余额不足"):
            client.request("/v1/sendText", {"wcId": "a", "content": "b"})

    def test_error_code_without_message(self, client, httpx_mock):
        httpx_mock.add_response(json={"code": "2002"})

        with pytest.raises(ProxyRequestError, match="Error: 2002"):
            client.request("/v1/sendText", {"wcId": "a", "content": "b"})

    def test_http_error_with_unparseable_body(self, client, httpx_mock):
        httpx_mock.add_response(status_code=500, text="Internal Server Error page")

        with pytest.raises(ProxyRequestError, match="HTTP 500: Internal Server Error"):
            client.get_status()


class TestStatus:
    def test_get_status(self, client, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE_URL}/v1/account/status",
            json={
                "code": "1000",
                "data": {
                    "valid": True,
                    "wcId": "wxid_bot",
                    "isLoggedIn": True,
                    "nickName": "机器人",
                    "tier": "pro",
                    "quota": {"maxMessagesPerDay": 1000, "usedToday": 12},
                },
            },
        )

        status = client.get_status()

        assert status.valid is True
        assert status.is_logged_in is True
        assert status.quota.max_messages_per_day == 1000

    def test_authenticate_false(self, client, httpx_mock):
        httpx_mock.add_response(json={"code": "1001", "data": {"valid": False}})

        assert client.authenticate() is False


class TestLogin:
    def test_get_qr_code_defaults(self, client, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE_URL}/v1/iPadLogin",
            json={"code": "1000", "data": {"wId": "w-1", "qrCodeUrl": "https://qr/1"}},
        )

        qr = client.get_qr_code()

        assert qr.w_id == "w-1"
        assert qr.qr_code_url == "https://qr/1"
        assert sent_body(httpx_mock) == {"deviceType": "mac", "proxy": "10"}

    def test_get_qr_code_custom(self, client, httpx_mock):
        httpx_mock.add_response(json={"code": "1000", "data": {"wId": "w", "qrCodeUrl": "q"}})

        client.get_qr_code(device_type="ipad", proxy="3")

        assert sent_body(httpx_mock) == {"deviceType": "ipad", "proxy": "3"}

    def test_get_qr_code_missing_fields(self, client, httpx_mock):
        httpx_mock.add_response(json={"code": "1000", "data": {"wId": "w"}})

        with pytest.raises(InvalidResponseError):
            client.get_qr_code()

    def test_check_login_logged_in(self, client, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE_URL}/v1/getIPadLoginInfo",
            json={
                "code": "1000",
                "data": {
                    "status": "logged_in",
                    "wcId": "wxid_bot",
                    "nickName": "机器人",
                    "headUrl": "https://head",
                },
            },
        )

        status = client.check_login("w-1")

        assert status == LoginLoggedIn(wc_id="wxid_bot", nick_name="机器人", head_url="https://head")
        assert sent_body(httpx_mock) == {"wId": "w-1"}

    def test_check_login_need_verify(self, client, httpx_mock):
        httpx_mock.add_response(
            json={"code": "1000", "data": {"status": "need_verify", "verifyUrl": "https://verify"}}
        )

        assert client.check_login("w-1") == LoginNeedVerify(verify_url="https://verify")

    @pytest.mark.parametrize("data", [{"status": "scanning"}, {"status": "waiting"}, {}])
    def test_check_login_unknown_status_is_waiting(self, client, httpx_mock, data):
        """未识别的状态不导致轮询失败"""
        httpx_mock.add_response(json={"code": "1000", "data": data})

        assert client.check_login("w-1") == LoginWaiting()


class TestMessaging:
    def test_send_text(self, client, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE_URL}/v1/sendText",
            json={"code": "1000", "data": {"msgId": 1, "newMsgId": 2, "createTime": 3}},
        )

        result = client.send_text("wxid_alice", "你好")

        assert (result.msg_id, result.new_msg_id, result.create_time) == (1, 2, 3)
        assert sent_body(httpx_mock) == {"wcId": "wxid_alice", "content": "你好"}

    def test_send_image(self, client, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE_URL}/v1/sendImage2",
            json={"code": "1000", "data": {"newMsgId": 9}},
        )

        result = client.send_image("1@chatroom", "https://img/1.png")

        assert result.new_msg_id == 9
        assert sent_body(httpx_mock) == {"wcId": "1@chatroom", "imageUrl": "https://img/1.png"}

    def test_get_contacts(self, client, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE_URL}/v1/getAddressList",
            json={"code": "1000", "data": {"friends": ["wxid_a"], "chatrooms": None}},
        )

        contacts = client.get_contacts("wxid_bot")

        assert contacts.friends == ["wxid_a"]
        assert contacts.chatrooms == []

    def test_register_webhook(self, client, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE_URL}/v1/webhook/register", json={"code": "1000", "message": "ok"}
        )

        assert client.register_webhook("https://bridge/webhook/wechat") is None
        assert sent_body(httpx_mock) == {"webhookUrl": "https://bridge/webhook/wechat"}
