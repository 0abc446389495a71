"""HTTP client for the MemOS OpenMem API.

Every tool call turns into exactly one POST here. There is no retry and no
connection reuse between calls; each request opens its own
``httpx.AsyncClient`` and closes it once the response has been read.
"""

import json
import logging
from typing import Any, Mapping, Optional

import httpx

from .errors import RemoteError, TransportError

logger = logging.getLogger(__name__)

# Provenance tag injected into every request body
SOURCE_TAG = "MCP"


class MemosClient:
    """Sends authenticated JSON requests to the MemOS API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._transport = transport

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def send(self, path: str, body: Mapping[str, Any]) -> Any:
        """POST ``body`` to ``path`` and return the decoded response.

        Args:
            path: Endpoint path, e.g. ``/search/memory``.
            body: Operation-specific fields; ``source`` is added here.

        Returns:
            The parsed JSON payload, or the raw text if the body is not JSON.

        Raises:
            RemoteError: The API answered with a non-2xx status.
            TransportError: The request could not be completed.
        """
        url = self.url_for(path)
        payload = {**body, "source": SOURCE_TAG}
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Token {self._api_key}",
        }

        logger.debug("POST %s", url)
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.RequestError as e:
            logger.warning("Request to %s failed: %s", url, e)
            raise TransportError(f"Request to {path} failed: {e}") from e

        if not response.is_success:
            raise RemoteError(
                response.status_code,
                response.reason_phrase,
                _safe_text(response),
                path=path,
            )

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug("Non-JSON response from %s, returning text", url)
            return _safe_text(response)


def _safe_text(response: httpx.Response) -> str:
    try:
        return response.text
    except (UnicodeDecodeError, LookupError):
        return ""
