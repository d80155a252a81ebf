"""
回调应用集成测试

通过 TestClient 验证认证、解析、分类、去重和消费者调用。
TestClient 在返回响应前执行完后台任务,因此可以直接断言消费者调用次数。
"""

import asyncio
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from wxbridge.endpoints.wechat.exceptions import ConfigurationError
from wxbridge.endpoints.wechat.models import MessageType, WechatMessageContext
from wxbridge.endpoints.wechat.webhook_app import create_app
from wxbridge.endpoints.wechat.webhook_config import WebhookConfig

WEBHOOK_PATH = "/webhook/wechat"


class RecordingConsumer:
    def __init__(self, error: Exception | None = None):
        self.messages: list[WechatMessageContext] = []
        self.error = error

    def __call__(self, message: WechatMessageContext) -> None:
        self.messages.append(message)
        if self.error is not None:
            raise self.error


@pytest.fixture
def consumer() -> RecordingConsumer:
    return RecordingConsumer()


@pytest.fixture
def client(webhook_config, consumer):
    """创建测试客户端(触发 lifespan 事件)"""
    with TestClient(create_app(webhook_config, consumer)) as c:
        yield c


@pytest.fixture
def auth(api_key) -> dict:
    return {"X-API-Key": api_key}


def counters(client: TestClient) -> dict:
    return client.get("/health").json()["counters"]


class TestAuthentication:
    def test_missing_key_rejected(self, client, consumer, text_message_payload):
        response = client.post(WEBHOOK_PATH, json=text_message_payload)

        assert response.status_code == 401
        assert response.json()["reason"] == "unauthorized"
        assert consumer.messages == []

    def test_wrong_key_rejected(self, client, consumer, text_message_payload):
        response = client.post(
            WEBHOOK_PATH, json=text_message_payload, headers={"X-API-Key": "wrong"}
        )

        assert response.status_code == 401
        assert consumer.messages == []
        assert counters(client)["rejected_auth"] == 1

    def test_auth_checked_before_parsing(self, client, consumer):
        """未认证的畸形请求返回 401 而不是 400"""
        response = client.post(WEBHOOK_PATH, content=b"{broken")

        assert response.status_code == 401
        assert counters(client)["parse_failures"] == 0

    def test_query_key_accepted(self, client, consumer, api_key, text_message_payload):
        response = client.post(f"{WEBHOOK_PATH}?key={api_key}", json=text_message_payload)

        assert response.status_code == 200
        assert len(consumer.messages) == 1

    def test_app_requires_api_key(self, consumer):
        with pytest.raises(ConfigurationError):
            create_app(WebhookConfig(api_key=""), consumer)


class TestParsing:
    @pytest.mark.parametrize("body", [b"not json", b"[1,2,3]", b'{"wcId": "wxid_bot"}', b""])
    def test_invalid_payload(self, client, consumer, auth, body):
        response = client.post(WEBHOOK_PATH, content=body, headers=auth)

        assert response.status_code == 400
        assert response.json()["reason"] == "invalid_payload"
        assert consumer.messages == []
        assert counters(client)["parse_failures"] == 1


class TestMessageForwarding:
    def test_text_message_forwarded_once(self, client, consumer, auth, text_message_payload):
        response = client.post(WEBHOOK_PATH, json=text_message_payload, headers=auth)

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["category"] == "message"
        assert len(consumer.messages) == 1

        message = consumer.messages[0]
        assert message.id == "7000000001"
        assert message.type is MessageType.TEXT
        assert message.sender.id == "wxid_alice"
        assert message.recipient.id == "wxid_bot"
        assert message.content == "你好"
        assert message.timestamp == 1700000000123
        assert message.thread_id == "wxid_alice"
        assert message.group is None

    def test_fractional_envelope_timestamp_accepted(
        self, client, consumer, auth, text_message_payload
    ):
        text_message_payload["timestamp"] = 1700000000.5

        response = client.post(WEBHOOK_PATH, json=text_message_payload, headers=auth)

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert len(consumer.messages) == 1
        assert consumer.messages[0].timestamp == 1700000000123

    def test_envelope_timestamp_used_when_data_has_none(
        self, client, consumer, auth, text_message_payload
    ):
        text_message_payload["timestamp"] = 1700000000.5
        del text_message_payload["data"]["timestamp"]

        response = client.post(WEBHOOK_PATH, json=text_message_payload, headers=auth)

        assert response.status_code == 200
        assert consumer.messages[0].timestamp == 1700000000

    def test_numeric_wc_id_accepted(self, client, consumer, auth, text_message_payload):
        text_message_payload["wcId"] = 123456
        del text_message_payload["data"]["toUser"]

        response = client.post(WEBHOOK_PATH, json=text_message_payload, headers=auth)

        assert response.status_code == 200
        assert len(consumer.messages) == 1
        assert consumer.messages[0].recipient.id == "123456"

    def test_same_payload_gives_same_context(self, webhook_config, auth, text_message_payload):
        """消息上下文只由推送内容决定"""
        first, second = RecordingConsumer(), RecordingConsumer()
        for consumer in (first, second):
            with TestClient(create_app(webhook_config, consumer)) as c:
                c.post(WEBHOOK_PATH, json=text_message_payload, headers=auth)

        assert first.messages == second.messages

    def test_group_message(self, client, consumer, auth, group_message_payload):
        client.post(WEBHOOK_PATH, json=group_message_payload, headers=auth)

        message = consumer.messages[0]
        assert message.group.id == "12345@chatroom"
        assert message.thread_id == "12345@chatroom"

    def test_unknown_subtype_forwarded_as_unknown(self, client, consumer, auth, text_message_payload):
        text_message_payload["messageType"] = "60077"

        response = client.post(WEBHOOK_PATH, json=text_message_payload, headers=auth)

        assert response.status_code == 200
        assert consumer.messages[0].type is MessageType.UNKNOWN

    def test_duplicate_delivery_not_forwarded_twice(
        self, client, consumer, auth, text_message_payload
    ):
        client.post(WEBHOOK_PATH, json=text_message_payload, headers=auth)
        response = client.post(WEBHOOK_PATH, json=text_message_payload, headers=auth)

        assert response.status_code == 200
        assert response.json()["status"] == "duplicate"
        assert len(consumer.messages) == 1
        assert counters(client)["duplicates"] == 1

    def test_message_without_sender_dropped(self, client, consumer, auth, text_message_payload):
        del text_message_payload["data"]["fromUser"]

        response = client.post(WEBHOOK_PATH, json=text_message_payload, headers=auth)

        assert response.status_code == 200
        assert response.json()["status"] == "dropped"
        assert "fromUser" in response.json()["reason"]
        assert consumer.messages == []
        assert counters(client)["dropped"] == 1

    @pytest.mark.parametrize(("code", "category"), [("30000", "login_status"), ("10001", "other")])
    def test_non_message_events_acknowledged(self, client, consumer, auth, code, category):
        response = client.post(
            WEBHOOK_PATH,
            json={"messageType": code, "wcId": "wxid_bot", "data": {"status": 1}},
            headers=auth,
        )

        assert response.status_code == 200
        assert response.json()["category"] == category
        assert consumer.messages == []
        assert counters(client)["ignored"] == 1


class TestConsumers:
    def test_consumer_failure_still_acknowledged(
        self, webhook_config, auth, text_message_payload
    ):
        consumer = RecordingConsumer(error=RuntimeError("host crashed"))

        with TestClient(create_app(webhook_config, consumer)) as client:
            response = client.post(WEBHOOK_PATH, json=text_message_payload, headers=auth)

            assert response.status_code == 200
            assert len(consumer.messages) == 1
            assert counters(client)["consumer_failures"] == 1
            assert counters(client)["forwarded"] == 0

    def test_async_consumer(self, webhook_config, auth, text_message_payload):
        received = []

        async def consumer(message):
            await asyncio.sleep(0)
            received.append(message.id)

        with TestClient(create_app(webhook_config, consumer)) as client:
            client.post(WEBHOOK_PATH, json=text_message_payload, headers=auth)

            assert received == ["7000000001"]
            assert counters(client)["forwarded"] == 1


class TestHealth:
    def test_health(self, client, auth, text_message_payload):
        client.post(WEBHOOK_PATH, json=text_message_payload, headers=auth)

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "wxbridge-webhook"
        assert data["log_writable"] is True
        assert data["counters"]["received"] == 1
        assert data["counters"]["forwarded"] == 1

    def test_health_does_not_require_key(self, client):
        assert client.get("/health").status_code == 200

    def test_unwritable_log_reports_unhealthy(self, client):
        with patch(
            "wxbridge.endpoints.wechat.webhook_app.check_log_writable",
            return_value=(False, "Permission denied"),
        ):
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["error"] == "Permission denied"
