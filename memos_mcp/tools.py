"""Tool handlers.

Each handler runs the same sequence: check configuration, derive the
conversation and effective user IDs, build a typed request body and post it
once. Failures are raised as ``MemosError`` subclasses; turning them into
tool error results is the server's job.
"""

from typing import Any, List, Optional

import httpx

from .client import MemosClient
from .config import ENV_API_KEY, ENV_USER_ID, Settings
from .errors import ConfigError
from .identifiers import derive_conversation_id, generate_chat_time
from .models import (
    AddFeedbackRequest,
    AddMessageRequest,
    ChatMessage,
    DeleteMemoryRequest,
    GetMessageRequest,
    MemosRequest,
    SearchMemoryRequest,
)

DEFAULT_MEMORY_LIMIT = 6

ADD_MESSAGE_PATH = "/add/message"
SEARCH_MEMORY_PATH = "/search/memory"
GET_MESSAGE_PATH = "/get/message"
DELETE_MEMORY_PATH = "/delete/memory"
ADD_FEEDBACK_PATH = "/add/feedback"


def _missing(name: str) -> ConfigError:
    return ConfigError(f"{name} is not set, please set it in the environment variables or mcp.json file")


class MemosTools:
    """Implements the MemOS tools against one immutable ``Settings``.

    Args:
        settings: Configuration loaded at startup.
        transport: Optional httpx transport, passed to every client created
            for a call. Used to route requests somewhere other than the
            network.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    def check_config(self) -> str:
        """Validate configuration and return the effective user ID.

        Raises:
            ConfigError: API key or user ID missing, or unknown channel.
        """
        if not self.settings.api_key:
            raise _missing(ENV_API_KEY)
        if not self.settings.user_id:
            raise _missing(ENV_USER_ID)
        if not self.settings.channel_known:
            raise ConfigError(f"Unknown channel: {self.settings.channel}")
        return self.settings.effective_user_id

    def conversation_id(self, conversation_first_message: str) -> str:
        return derive_conversation_id(self.settings.user_id, conversation_first_message)

    async def _post(self, path: str, request: MemosRequest) -> Any:
        client = MemosClient(self.settings.base_url, self.settings.api_key, transport=self._transport)
        return await client.send(path, request.to_body())

    async def add_message(self, conversation_first_message: str, messages: List[ChatMessage]) -> Any:
        user_id = self.check_config()
        stamped = [
            ChatMessage(
                role=message.role,
                content=message.content,
                chat_time=message.chat_time or generate_chat_time(),
            )
            for message in messages
        ]
        request = AddMessageRequest(
            user_id=user_id,
            conversation_id=self.conversation_id(conversation_first_message),
            messages=stamped,
        )
        return await self._post(ADD_MESSAGE_PATH, request)

    async def search_memory(
        self,
        query: str,
        conversation_first_message: str,
        memory_limit_number: Optional[float] = None,
    ) -> Any:
        user_id = self.check_config()
        # fractional limits are truncated; anything below 1 means the default
        limit = int(memory_limit_number or 0) or DEFAULT_MEMORY_LIMIT
        request = SearchMemoryRequest(
            query=query,
            user_id=user_id,
            conversation_id=self.conversation_id(conversation_first_message),
            memory_limit_number=limit,
        )
        return await self._post(SEARCH_MEMORY_PATH, request)

    async def get_message(self, conversation_first_message: str) -> Any:
        user_id = self.check_config()
        request = GetMessageRequest(
            user_id=user_id,
            conversation_id=self.conversation_id(conversation_first_message),
        )
        return await self._post(GET_MESSAGE_PATH, request)

    async def delete_memory(self, memory_ids: List[str]) -> Any:
        user_id = self.check_config()
        request = DeleteMemoryRequest(user_ids=[user_id], memory_ids=memory_ids)
        return await self._post(DELETE_MEMORY_PATH, request)

    async def add_feedback(
        self,
        conversation_first_message: str,
        feedback_content: str,
        agent_id: Optional[str] = None,
        app_id: Optional[str] = None,
        feedback_time: Optional[str] = None,
        allow_public: Optional[bool] = None,
        allow_knowledgebase_ids: Optional[List[str]] = None,
    ) -> Any:
        """Submit feedback or a memory update.

        Posted exactly once. The result is returned as-is and never re-read
        to confirm the update took effect.
        """
        user_id = self.check_config()
        request = AddFeedbackRequest(
            user_id=user_id,
            conversation_id=self.conversation_id(conversation_first_message),
            feedback_content=feedback_content,
            agent_id=agent_id,
            app_id=app_id,
            feedback_time=feedback_time,
            allow_public=allow_public,
            allow_knowledgebase_ids=allow_knowledgebase_ids,
        )
        return await self._post(ADD_FEEDBACK_PATH, request)
