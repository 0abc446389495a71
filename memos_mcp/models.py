"""Message and request body schemas for the MemOS API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Tool Input Models
# ============================================================================

class ChatMessage(BaseModel):
    """A single conversation message as supplied by the client."""
    model_config = ConfigDict(extra='ignore')

    role: str = Field(..., description="Role of the message sender, e.g., user, assistant")
    content: str = Field(..., description="Message content")
    chat_time: Optional[str] = Field(None, description="Message chat time")


# ============================================================================
# Outbound Request Bodies
# ============================================================================

class MemosRequest(BaseModel):
    """Base for request bodies posted to the MemOS API."""
    model_config = ConfigDict(extra='forbid')

    def to_body(self) -> Dict[str, Any]:
        """Dump the request, dropping optional fields that were not given."""
        return self.model_dump(exclude_none=True)


class AddMessageRequest(MemosRequest):
    user_id: str
    conversation_id: str
    messages: List[ChatMessage]


class SearchMemoryRequest(MemosRequest):
    query: str
    user_id: str
    conversation_id: str
    memory_limit_number: int


class GetMessageRequest(MemosRequest):
    user_id: str
    conversation_id: str


class DeleteMemoryRequest(MemosRequest):
    user_ids: List[str]
    memory_ids: List[str]


class AddFeedbackRequest(MemosRequest):
    user_id: str
    conversation_id: str
    feedback_content: str
    agent_id: Optional[str] = None
    app_id: Optional[str] = None
    feedback_time: Optional[str] = None
    allow_public: Optional[bool] = None
    allow_knowledgebase_ids: Optional[List[str]] = None
