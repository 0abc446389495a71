import hashlib
import re
from datetime import datetime

import pytest

from memos_mcp.identifiers import (
    DEFAULT_CHANNEL,
    KNOWN_CHANNELS,
    derive_conversation_id,
    effective_user_id,
    generate_chat_time,
    is_known_channel,
    normalize_channel,
)


class TestDeriveConversationId:
    def test_deterministic(self):
        first = derive_conversation_id("alice", "What's the weather today?")
        second = derive_conversation_id("alice", "What's the weather today?")
        assert first == second

    def test_md5_of_user_and_message_joined_by_newline(self):
        expected = hashlib.md5("alice\nhello".encode("utf-8")).hexdigest()
        assert derive_conversation_id("alice", "hello") == expected

    def test_is_32_lowercase_hex_chars(self):
        assert re.fullmatch(r"[0-9a-f]{32}", derive_conversation_id("alice", "hello"))

    @pytest.mark.parametrize(
        "other",
        [("bob", "hello"), ("alice", "hello!"), ("alice\nhello", ""), ("", "alice\nhello")],
    )
    def test_distinct_pairs_give_distinct_ids(self, other):
        assert derive_conversation_id("alice", "hello") != derive_conversation_id(*other)

    def test_empty_strings_are_hashed(self):
        assert derive_conversation_id("", "") == hashlib.md5(b"\n").hexdigest()

    def test_non_ascii_message(self):
        assert len(derive_conversation_id("alice", "今天天气怎么样？")) == 32


class TestChannels:
    @pytest.mark.parametrize("channel", KNOWN_CHANNELS)
    def test_known_channels_accepted(self, channel):
        assert is_known_channel(channel)

    @pytest.mark.parametrize("channel", ["modelscope", "McpSo", "memos"])
    def test_lookup_is_case_insensitive(self, channel):
        assert is_known_channel(channel)

    @pytest.mark.parametrize("channel", ["", "GITHUB", "MEMOS-DEV", " MEMOS"])
    def test_unknown_channels_rejected(self, channel):
        assert not is_known_channel(channel)

    def test_normalize_upper_cases(self):
        assert normalize_channel("mcpmarketcn") == "MCPMARKETCN"

    @pytest.mark.parametrize("value", [None, ""])
    def test_normalize_defaults(self, value):
        assert normalize_channel(value) == DEFAULT_CHANNEL


class TestEffectiveUserId:
    def test_default_channel_keeps_bare_id(self):
        assert effective_user_id("alice", DEFAULT_CHANNEL) == "alice"

    def test_other_channel_is_suffixed(self):
        assert effective_user_id("alice", "MODELSCOPE") == "alice-MODELSCOPE"


class TestChatTime:
    def test_format(self):
        assert generate_chat_time(datetime(2024, 3, 5, 7, 8, 9, 123456)) == "2024-03-05 07:08:09.123"

    def test_defaults_to_now(self):
        before = datetime.now().replace(microsecond=0)
        value = generate_chat_time()
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}", value)
        assert datetime.strptime(value, "%Y-%m-%d %H:%M:%S.%f") >= before
