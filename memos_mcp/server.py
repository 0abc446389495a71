"""
MemOS API MCP Server

Exposes the MemOS cloud memory API to MCP clients over stdio. Every tool
call becomes one authenticated POST to the MemOS OpenMem endpoint; the
remote response is returned as-is, and failures come back as error-flagged
tool results rather than protocol faults.

Tools:
- add_message: save this turn's user question and assistant answer
- search_memory: retrieve candidate memories before answering
- get_message: fetch the stored messages of a conversation
- delete_memory: delete memories by ID
- add_feedback: submit feedback or update an existing memory

Prompts:
- usage-guide: the search → answer → save workflow clients must follow

Resources:
- memos://config: effective (non-secret) configuration
"""

import json
import logging
import sys
from typing import Annotated, Any, Awaitable, List, Optional

import httpx
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools.tool import ToolResult
from pydantic import Field

from . import __version__
from .audit import AuditLog
from .config import Settings
from .errors import MemosError
from .identifiers import KNOWN_CHANNELS
from .models import ChatMessage
from .tools import MemosTools

logger = logging.getLogger(__name__)

SERVER_NAME = "memos-api-mcp"

TOOL_NAMES = ("add_message", "search_memory", "get_message", "delete_memory", "add_feedback")

FIRST_MESSAGE_DESCRIPTION = (
    "The first message sent by the user in the entire conversation thread. "
    "Used to generate the conversation_id."
)


# ============================================================================
# Tool Descriptions
# ============================================================================

ADD_MESSAGE_DESCRIPTION = """
Trigger: MUST be auto-invoked by the client after completing every answer (final step of each turn).
Purpose: Persist this turn's user question and assistant answer for memory extraction,
personalization, and continuity. This MUST run even if no retrieved memories were used.
Parameters:
  - `conversation_first_message`: The first message the user sent in this conversation; used to generate the conversation_id.
  - `messages`: Array containing BOTH:
    1. `{ role: "user", content: "user's question" }`
    2. `{ role: "assistant", content: "your complete response" }`
Notes:
  - Skipping this call degrades personalization and continuity.
  - Store only the actual Q&A of this turn; do not store raw retrieval snippets.
"""

SEARCH_MEMORY_DESCRIPTION = """
Trigger: MUST be auto-invoked by the client before generating every answer (including greetings
like "hello"). Do not wait for the user to ask for memory or tool usage.
Purpose: MemOS retrieval API. Retrieve candidate memories before answering to improve
continuity and personalization.
Parameters:
  - `query`: The user's current question/message (a concise summary is fine)
  - `conversation_first_message`: First user message in the thread (used to generate conversation_id)
  - `memory_limit_number`: Maximum number of results to return, defaults to 6
Notes:
  - Results may include noise; judge relevance and use only relevant memories.
  - Prefer recent and important memories. If none are relevant, answer normally.
"""

GET_MESSAGE_DESCRIPTION = """
Trigger: When the stored messages of the current conversation are needed verbatim.
Purpose: Retrieve the messages MemOS has stored for this conversation.
Parameters:
  - `conversation_first_message`: First user message in the thread (used to generate conversation_id)
"""

DELETE_MEMORY_DESCRIPTION = """
Trigger: ONLY when the user explicitly requests to delete specific memories.
Purpose: Delete specific memories by their IDs.
Usage Guidelines:
  - Intended for developers or explicit user deletion requests.
  - DO NOT "update" a memory by deleting and re-adding it. To modify a memory, use `add_feedback`.
  - Memory search is paginated; make sure the IDs really are the memories meant for deletion.
Parameters:
  - `memory_ids`: List of memory IDs to delete.
"""

ADD_FEEDBACK_DESCRIPTION = """
Trigger: Auto-invoked when the user gives feedback OR wants to MODIFY or UPDATE an existing memory.
Purpose: Submit user feedback to MemOS, or update/modify existing memories.
This is a single call: do not call it again or search to confirm the update.
Parameters:
  - `conversation_first_message`: First user message in the thread (used to generate conversation_id)
  - `feedback_content`: Content of the feedback or the update instruction (required)
  - `agent_id`: Agent ID (optional)
  - `app_id`: App ID (optional)
  - `feedback_time`: Feedback time string (optional, default current UTC)
  - `allow_public`: Whether to allow public access (optional, default false)
  - `allow_knowledgebase_ids`: List of allowed knowledge base IDs (optional)
"""

USAGE_GUIDE = """# MemOS Automatic Memory System: Mandatory Usage

## Always-On (No User Opt-In Required)
This system must run **automatically for every turn**. Do **not** wait for the user to say
"use memory", "use MCP", or "call a tool". The **client/orchestrator is responsible** for
auto-invoking the tools.

## Mandatory 3-Step Workflow (Enforced by Client Each Turn)
```
Every user message
  -> 1) search_memory (AUTO, before answering)
  -> 2) Answer (use only relevant memories; ignore noise)
  -> 3) add_message (AUTO, after answering)
```

### 1) Search Memory (before answering)
- **Tool**: `search_memory`
- **Parameters**:
  - `query`: Current user message (concise summary allowed)
  - `conversation_first_message`: First user message in the thread (used to generate conversation_id)
  - `memory_limit_number`: default 6

**Relevance rule**: only use memories that are relevant. If results are irrelevant or noisy,
ignore them and proceed.

### 2) Answer
Use retrieved memories **only if relevant**. If none are relevant, answer normally.

### 3) Save Conversation (after answering)
- **Tool**: `add_message`
- **Parameters**:
  - `conversation_first_message`: Same as used in `search_memory`
  - `messages`: Array with both:
    1) `{ role: "user", content: "<user question>" }`
    2) `{ role: "assistant", content: "<your complete response>" }`

## Non-Negotiable Client Responsibilities
1. Auto-invoke `search_memory` before and `add_message` after **every** answer.
2. Do not wait for the user to mention memory, tools, or MCP.
3. Keep `conversation_first_message` stable across the thread.
4. Store both user and assistant messages every turn.
5. Sequence is strictly: Search -> Answer -> Save.

## Example
```javascript
// User: "What's the weather today?"
search_memory({ query: "What's the weather today?", conversation_first_message: "What's the weather today?", memory_limit_number: 6 })
// Model answers using only relevant items (or none)
add_message({
  conversation_first_message: "What's the weather today?",
  messages: [
    { role: "user", content: "What's the weather today?" },
    { role: "assistant", content: "[Your complete response]" }
  ]
})
```
"""


# ============================================================================
# Helper Functions
# ============================================================================

def to_tool_result(data: Any) -> ToolResult:
    """Render a MemOS payload as text plus structured content.

    Structured content must be a JSON object, so list or text payloads are
    returned as text only.
    """
    text = json.dumps(data, ensure_ascii=False)
    structured = data if isinstance(data, dict) else None
    return ToolResult(content=text, structured_content=structured)


def create_server(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastMCP:
    """Create the MCP server with all MemOS tools registered.

    Args:
        settings: Configuration read once at startup.
        transport: Optional httpx transport for outbound requests.

    Returns:
        Configured FastMCP server instance.
    """
    mcp = FastMCP(SERVER_NAME, version=__version__)
    tools = MemosTools(settings, transport=transport)
    audit_log = AuditLog(settings.audit_log_path)
    audit_user = settings.effective_user_id or "<unset>"

    async def respond(tool: str, call: Awaitable[Any]) -> ToolResult:
        try:
            data = await call
        except MemosError as e:
            logger.warning("%s failed: %s", tool, e)
            await audit_log.record(audit_user, tool, "error", str(e))
            raise ToolError(f"Error: {e}") from e

        logger.info("%s succeeded", tool)
        await audit_log.record(audit_user, tool, "ok")
        return to_tool_result(data)

    # ========================================================================
    # MCP Tools
    # ========================================================================

    @mcp.tool(
        name="add_message",
        description=ADD_MESSAGE_DESCRIPTION,
        annotations={
            "title": "Save Conversation Turn",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": False,
            "openWorldHint": True
        }
    )
    async def add_message(
        conversation_first_message: Annotated[str, Field(description=FIRST_MESSAGE_DESCRIPTION)],
        messages: Annotated[
            List[ChatMessage],
            Field(description="Array of messages containing role and content information"),
        ],
    ) -> ToolResult:
        return await respond("add_message", tools.add_message(conversation_first_message, messages))

    @mcp.tool(
        name="search_memory",
        description=SEARCH_MEMORY_DESCRIPTION,
        annotations={
            "title": "Search Memories",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": True
        }
    )
    async def search_memory(
        query: Annotated[str, Field(description="Search query to find relevant content in conversation history")],
        conversation_first_message: Annotated[str, Field(description=FIRST_MESSAGE_DESCRIPTION)],
        memory_limit_number: Annotated[
            Optional[float],
            Field(description="Maximum number of results to return, defaults to 6", ge=0),
        ] = None,
    ) -> ToolResult:
        return await respond(
            "search_memory",
            tools.search_memory(query, conversation_first_message, memory_limit_number),
        )

    @mcp.tool(
        name="get_message",
        description=GET_MESSAGE_DESCRIPTION,
        annotations={
            "title": "Get Conversation Messages",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": True
        }
    )
    async def get_message(
        conversation_first_message: Annotated[str, Field(description=FIRST_MESSAGE_DESCRIPTION)],
    ) -> ToolResult:
        return await respond("get_message", tools.get_message(conversation_first_message))

    @mcp.tool(
        name="delete_memory",
        description=DELETE_MEMORY_DESCRIPTION,
        annotations={
            "title": "Delete Memories",
            "readOnlyHint": False,
            "destructiveHint": True,
            "idempotentHint": True,
            "openWorldHint": True
        }
    )
    async def delete_memory(
        memory_ids: Annotated[List[str], Field(description="List of memory IDs to delete")],
    ) -> ToolResult:
        return await respond("delete_memory", tools.delete_memory(memory_ids))

    @mcp.tool(
        name="add_feedback",
        description=ADD_FEEDBACK_DESCRIPTION,
        annotations={
            "title": "Add Feedback",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": False,
            "openWorldHint": True
        }
    )
    async def add_feedback(
        conversation_first_message: Annotated[str, Field(description=FIRST_MESSAGE_DESCRIPTION)],
        feedback_content: Annotated[str, Field(description="The specific content of the feedback")],
        agent_id: Annotated[Optional[str], Field(description="Agent ID associated with the feedback")] = None,
        app_id: Annotated[Optional[str], Field(description="App ID associated with the feedback")] = None,
        feedback_time: Annotated[
            Optional[str], Field(description="Feedback time string. Default is current UTC time")
        ] = None,
        allow_public: Annotated[
            Optional[bool], Field(description="Whether to allow public access. Default is false")
        ] = None,
        allow_knowledgebase_ids: Annotated[
            Optional[List[str]], Field(description="List of knowledge base IDs allowed to be written to")
        ] = None,
    ) -> ToolResult:
        return await respond(
            "add_feedback",
            tools.add_feedback(
                conversation_first_message,
                feedback_content,
                agent_id=agent_id,
                app_id=app_id,
                feedback_time=feedback_time,
                allow_public=allow_public,
                allow_knowledgebase_ids=allow_knowledgebase_ids,
            ),
        )

    # ========================================================================
    # MCP Prompts
    # ========================================================================

    @mcp.prompt(name="usage-guide", description="Memorization and retrieval tools usage guide")
    def usage_guide() -> str:
        return USAGE_GUIDE

    # ========================================================================
    # MCP Resources
    # ========================================================================

    @mcp.resource("memos://config")
    def memos_config() -> str:
        """Provides the effective MemOS configuration (secrets excluded)."""
        channel_note = "" if settings.channel_known else " (unknown, tool calls will fail)"
        tool_list = "\n".join(f"- {name}" for name in TOOL_NAMES)
        return f"""# MemOS MCP Configuration

## Connection

- Base URL: {settings.base_url}
- API Key: {"set" if settings.api_key else "NOT SET"}
- User ID: {settings.user_id or "NOT SET"}
- Effective User ID: {settings.effective_user_id or "NOT SET"}

## Channel

- Channel: {settings.channel}{channel_note}
- Known Channels: {", ".join(KNOWN_CHANNELS)}

## Audit

- Audit Log: {settings.audit_log_path if audit_log.enabled else "disabled"}

## Tools

{tool_list}
"""

    return mcp


# ============================================================================
# Server Entry Point
# ============================================================================

def main() -> None:
    """Run the MCP server over stdio."""
    settings = Settings.from_env()

    # stdout carries the protocol, so logs go to stderr
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if not settings.channel_known:
        logger.warning("Unknown channel %s, every tool call will fail", settings.channel)

    mcp = create_server(settings)
    try:
        mcp.run(transport="stdio")
    except Exception as e:
        print(
            json.dumps({"error": "Server failed to start", "details": str(e)}),
            file=sys.stderr,
            flush=True,
        )
        sys.exit(1)
