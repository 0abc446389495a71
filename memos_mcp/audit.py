"""Optional append-only audit trail of tool calls."""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)


class AuditLog:
    """Writes one line per tool call when an audit path is configured.

    Format: ``timestamp | user_id | tool | outcome | details``. With no path
    configured every call is a no-op.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.path is not None

    async def record(self, user_id: str, tool: str, outcome: str, details: str = "") -> None:
        if self.path is None:
            return

        timestamp = datetime.now().isoformat()
        entry = f"{timestamp} | {user_id} | {tool} | {outcome} | {details}\n"

        async with self._lock:
            try:
                await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
                async with aiofiles.open(self.path, 'a') as f:
                    await f.write(entry)
            except OSError as e:
                # A broken audit file must not fail the tool call
                logger.error("Audit log write failed: %s", e)
