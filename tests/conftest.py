"""Shared fixtures: settings and a recording fake of the MemOS API."""

import json
from typing import Any, List, Optional

import httpx
import pytest

from memos_mcp.config import Settings


class FakeMemos:
    """Records outgoing requests and answers each with a canned response."""

    def __init__(self, status_code: int = 200, body: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self.body = {"code": 200, "message": "ok", "data": {}} if body is None else body
        self.text = text
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "no request was sent"
        return self.requests[-1]

    @property
    def last_body(self) -> dict:
        return json.loads(self.last_request.content)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_key="test-key",
        user_id="alice",
        base_url="https://memos.example.test/api/openmem/v1",
    )


@pytest.fixture
def fake_memos() -> FakeMemos:
    return FakeMemos()


@pytest.fixture
def unreachable_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.MockTransport(handler)
