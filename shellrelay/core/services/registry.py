"""
Connection registry mapping session identifiers to active session records.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from ..domain.session import SessionRecord

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Mapping from session identifier to SessionRecord.

    Every operation is a single map operation performed under one lock. The
    registry never touches remote connections, so the lock is never held
    across network I/O.
    """

    def __init__(self) -> None:
        self._records: Dict[str, SessionRecord] = {}
        self._lock = asyncio.Lock()

    async def insert(self, session_id: str, record: SessionRecord) -> Optional[SessionRecord]:
        """
        Insert or replace the record for an identifier.

        Returns:
            The record that was replaced, if any
        """
        async with self._lock:
            previous = self._records.get(session_id)
            self._records[session_id] = record

        if previous is not None:
            logger.warning(f"Registry entry for session {session_id} replaced")
        return previous

    async def lookup(self, session_id: str) -> Optional[SessionRecord]:
        async with self._lock:
            return self._records.get(session_id)

    async def remove(self, session_id: str) -> bool:
        """Remove an entry; returns whether one existed."""
        return await self.pop(session_id) is not None

    async def pop(self, session_id: str) -> Optional[SessionRecord]:
        """Remove an entry and return it."""
        async with self._lock:
            return self._records.pop(session_id, None)

    async def remove_if(self, session_id: str, record: SessionRecord) -> bool:
        """Remove the entry only if it is still the given record."""
        async with self._lock:
            if self._records.get(session_id) is record:
                del self._records[session_id]
                return True
            return False

    async def contains(self, session_id: str) -> bool:
        async with self._lock:
            return session_id in self._records

    async def list_records(self) -> List[SessionRecord]:
        async with self._lock:
            return list(self._records.values())

    async def list_ids(self) -> List[str]:
        async with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        return len(self._records)
