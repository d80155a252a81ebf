"""消息目标解析单元测试"""

import pytest

from wxbridge.endpoints.wechat.models import RecipientTarget, TargetKind
from wxbridge.endpoints.wechat.targets import looks_like_id, normalize_target


class TestNormalizeTarget:
    @pytest.mark.parametrize(
        ("raw", "kind", "target_id"),
        [
            ("user:wxid_abc123", TargetKind.USER, "wxid_abc123"),
            ("group:12345@chatroom", TargetKind.GROUP, "12345@chatroom"),
            ("wxid_direct", TargetKind.USER, "wxid_direct"),
            ("wxid_xxx@chatroom", TargetKind.GROUP, "wxid_xxx@chatroom"),
        ],
    )
    def test_rules(self, raw, kind, target_id):
        assert normalize_target(raw) == RecipientTarget(kind=kind, id=target_id)

    def test_prefix_wins_over_suffix(self):
        """user: 前缀优先于 @chatroom 后缀"""
        assert normalize_target("user:odd@chatroom").kind is TargetKind.USER

    def test_group_prefix_without_suffix(self):
        assert normalize_target("group:98765") == RecipientTarget(kind=TargetKind.GROUP, id="98765")

    def test_custom_wechat_id_defaults_to_user(self):
        assert normalize_target("alice_2024").kind is TargetKind.USER

    def test_whitespace_stripped(self):
        assert normalize_target("  group: 1@chatroom ").id == "1@chatroom"

    @pytest.mark.parametrize("raw", ["", "   ", "user:", "group:  "])
    def test_empty_target_rejected(self, raw):
        with pytest.raises(ValueError):
            normalize_target(raw)


class TestLooksLikeId:
    @pytest.mark.parametrize(
        "candidate",
        ["12345@chatroom", "wxid_abc123", "user:alice", "group:1@chatroom", " wxid_a "],
    )
    def test_true(self, candidate):
        assert looks_like_id(candidate) is True

    @pytest.mark.parametrize("candidate", ["invalid_id", "张三", "user:", "", "wxid_", "a b@chatroom"])
    def test_false(self, candidate):
        assert looks_like_id(candidate) is False
