"""In-memory session adapter."""

import asyncio
import copy
import time
from typing import Any, Callable, Dict, Optional, Tuple

from .base import SessionAdapter


class MemorySessionAdapter(SessionAdapter):
    """
    Keeps sessions in a process-local dict guarded by an asyncio.Lock.

    Suitable for development, testing, and single-process applications.
    Data is deep-copied on the way in and out so a Session never shares
    mutable state with the store.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._store: Dict[str, Tuple[Dict[str, Any], float]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def read(self, session_id: str) -> Optional[Dict[str, Any]]:
        async with self._lock:
            entry = self._store.get(session_id)
            if entry is None:
                return None
            return copy.deepcopy(entry[0])

    async def write(self, session_id: str, data: Dict[str, Any]) -> None:
        async with self._lock:
            self._store[session_id] = (copy.deepcopy(data), self._clock())

    async def destroy(self, session_id: str) -> None:
        async with self._lock:
            self._store.pop(session_id, None)

    async def gc(self, max_lifetime: int) -> int:
        async with self._lock:
            cutoff = self._clock() - max_lifetime
            expired = [sid for sid, (_, modified) in self._store.items() if modified < cutoff]
            for sid in expired:
                del self._store[sid]
            return len(expired)

    async def regenerate(self, old_id: str, new_id: str) -> None:
        async with self._lock:
            entry = self._store.pop(old_id, None)
            if entry is not None:
                self._store[new_id] = (entry[0], self._clock())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._store
