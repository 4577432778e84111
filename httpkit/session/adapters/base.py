"""Session storage adapter interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class SessionAdapter(ABC):
    """
    Persistence backend of a Session.

    The Session calls ``open`` when it starts, ``read`` to load the data,
    ``write`` and ``close`` once at the end of the request, ``destroy`` when
    the session is dropped, ``regenerate`` when its id changes and ``gc`` with
    the configured probability.

    One adapter instance is shared by all requests, so implementations must
    not keep per-session state.
    """

    async def open(self, name: str) -> None:
        return None

    async def close(self) -> None:
        return None

    @abstractmethod
    async def read(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored data, or None if the session does not exist."""

    @abstractmethod
    async def write(self, session_id: str, data: Dict[str, Any]) -> None:
        """Create or replace the stored data."""

    @abstractmethod
    async def destroy(self, session_id: str) -> None:
        """Remove a session. Unknown ids are ignored."""

    @abstractmethod
    async def gc(self, max_lifetime: int) -> int:
        """Remove sessions idle for more than ``max_lifetime`` seconds and return how many."""

    async def regenerate(self, old_id: str, new_id: str) -> None:
        """Move the data of ``old_id`` to ``new_id``."""
        data = await self.read(old_id)
        await self.destroy(old_id)
        if data is not None:
            await self.write(new_id, data)
