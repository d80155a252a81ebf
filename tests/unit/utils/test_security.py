"""敏感数据处理单元测试"""

from wxbridge.utils.security import (
    hash_pii,
    mask_secret,
    mask_sensitive_data,
    sanitize_dict,
    secrets_match,
)


class TestMaskSecret:
    def test_mask(self):
        assert mask_secret("wc_live_test_xxxxxxxx") == "wc_l***"

    def test_short_secret_fully_masked(self):
        assert mask_secret("abcd") == "***"


class TestHashPii:
    def test_stable_and_short(self):
        assert hash_pii("wxid_alice") == hash_pii("wxid_alice")
        assert len(hash_pii("wxid_alice")) == 8
        assert hash_pii("wxid_alice") != hash_pii("wxid_bob")


class TestSecretsMatch:
    def test_match(self):
        assert secrets_match("secret-key", "secret-key") is True

    def test_mismatch(self):
        assert secrets_match("secret-kez", "secret-key") is False

    def test_empty_never_matches(self):
        assert secrets_match(None, "secret-key") is False
        assert secrets_match("", "") is False


class TestMaskSensitiveData:
    def test_processor_masks_known_keys(self):
        event = {"event": "x", "api_key": "wc_live_123", "user": "test"}

        result = mask_sensitive_data(None, "info", event)

        assert result == {"event": "x", "api_key": "wc_l***", "user": "test"}


class TestSanitizeDict:
    def test_secrets_and_pii(self):
        data = {
            "X-API-Key": "wc_live_123",
            "wcId": "wxid_alice",
            "content": "hi",
            "nested": {"token": "abcdefgh"},
        }

        result = sanitize_dict(data, pii_fields={"wcId"})

        assert result["X-API-Key"] == "wc_l***"
        assert result["wcId_hash"] == hash_pii("wxid_alice")
        assert "wcId" not in result
        assert result["content"] == "hi"
        assert result["nested"] == {"token": "abcd***"}

    def test_lists_of_dicts_are_sanitized(self):
        data = {"contacts": [{"wcId": "wxid_alice"}, "plain"]}

        result = sanitize_dict(data, pii_fields={"wcId"})

        assert result["contacts"] == [{"wcId_hash": hash_pii("wxid_alice")}, "plain"]

    def test_original_untouched(self):
        data = {"api_key": "wc_live_123"}

        sanitize_dict(data)

        assert data == {"api_key": "wc_live_123"}
