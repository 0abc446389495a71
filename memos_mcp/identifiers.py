"""Identifier derivation and channel handling shared by every tool."""

import hashlib
from datetime import datetime
from typing import Optional

DEFAULT_CHANNEL = "MEMOS"

KNOWN_CHANNELS = ("MODELSCOPE", "MCPSO", "MCPMARKETCN", "MCPMARKETCOM", DEFAULT_CHANNEL)

CHAT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def derive_conversation_id(user_id: str, first_message: str) -> str:
    """Derive the conversation ID for a thread.

    The same user and first message always map to the same 32-character
    lowercase hex digest, so earlier conversations can be found again
    without keeping a local index. Empty strings are hashed like any other.
    """
    return hashlib.md5(f"{user_id}\n{first_message}".encode("utf-8")).hexdigest()


def normalize_channel(channel: Optional[str]) -> str:
    """Upper-case a channel tag, falling back to the default channel."""
    if not channel:
        return DEFAULT_CHANNEL
    return channel.strip().upper()


def is_known_channel(channel: str) -> bool:
    return channel.upper() in KNOWN_CHANNELS


def effective_user_id(user_id: str, channel: str) -> str:
    """Namespace the configured user ID by channel.

    The default channel keeps the bare ID; any other channel gets a
    ``-<CHANNEL>`` suffix so integrations sharing one identity don't collide.
    """
    if channel == DEFAULT_CHANNEL:
        return user_id
    return f"{user_id}-{channel}"


def generate_chat_time(now: Optional[datetime] = None) -> str:
    """Format a timestamp as ``YYYY-MM-DD HH:mm:ss.SSS`` (local time)."""
    now = now or datetime.now()
    # %f is microseconds; trim to milliseconds
    return now.strftime(CHAT_TIME_FORMAT)[:-3]
