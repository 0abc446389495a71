"""Exceptions raised while handling a tool call."""

from typing import Optional


class MemosError(Exception):
    """Base class for failures reported back to the caller as tool errors."""


class ConfigError(MemosError):
    """Required configuration is missing or invalid."""


class TransportError(MemosError):
    """The MemOS API could not be reached."""


class RemoteError(MemosError):
    """The MemOS API answered with a non-success HTTP status."""

    def __init__(self, status_code: int, reason: str = "", body: str = "", path: Optional[str] = None):
        self.status_code = status_code
        self.reason = reason
        self.body = body
        self.path = path
        super().__init__(f"HTTP {status_code} {reason}: {body}")
