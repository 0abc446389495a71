"""Process-wide configuration, read once from the environment at startup."""

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .identifiers import DEFAULT_CHANNEL, effective_user_id, is_known_channel, normalize_channel

DEFAULT_BASE_URL = "https://memos.memtensor.cn/api/openmem/v1"

ENV_API_KEY = "MEMOS_API_KEY"
ENV_USER_ID = "MEMOS_USER_ID"
ENV_BASE_URL = "MEMOS_BASE_URL"
ENV_CHANNEL = "MEMOS_CHANNEL"
ENV_LOG_LEVEL = "MEMOS_LOG_LEVEL"
ENV_AUDIT_LOG = "MEMOS_AUDIT_LOG"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """Immutable configuration handed to the server and every tool handler.

    ``api_key`` and ``user_id`` may be missing: the server still starts, and
    each tool call reports the missing value instead of reaching the network.
    """
    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = Field(default=None, repr=False)
    user_id: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    channel: str = DEFAULT_CHANNEL
    log_level: str = "WARNING"
    audit_log_path: Optional[Path] = None

    @field_validator("api_key", "user_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("api_key", mode="after")
    @classmethod
    def _strip_api_key(cls, value):
        # user_id is hashed verbatim, only the key is trimmed
        return value.strip() if value is not None else None

    @field_validator("base_url", mode="before")
    @classmethod
    def _default_base_url(cls, value):
        return value or DEFAULT_BASE_URL

    @field_validator("channel", mode="before")
    @classmethod
    def _normalize_channel(cls, value):
        return normalize_channel(value)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        level = (value or "WARNING").upper()
        return level if level in LOG_LEVELS else "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``os.environ`` (or the given mapping)."""
        env = os.environ if environ is None else environ
        return cls(
            api_key=env.get(ENV_API_KEY),
            user_id=env.get(ENV_USER_ID),
            base_url=env.get(ENV_BASE_URL) or DEFAULT_BASE_URL,
            channel=env.get(ENV_CHANNEL),
            log_level=env.get(ENV_LOG_LEVEL),
            audit_log_path=env.get(ENV_AUDIT_LOG) or None,
        )

    @property
    def channel_known(self) -> bool:
        return is_known_channel(self.channel)

    @property
    def effective_user_id(self) -> Optional[str]:
        if self.user_id is None:
            return None
        return effective_user_id(self.user_id, self.channel)
