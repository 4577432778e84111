"""SQL database session adapter built on SQLAlchemy's async engine."""

import asyncio
import base64
import binascii
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy import Column, DateTime, MetaData, String, Table, Text, delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncEngine

from .base import SessionAdapter

logger = logging.getLogger(__name__)


class DatabaseSessionAdapter(SessionAdapter):
    """
    Stores sessions in a SQL table, created on first use:

        CREATE TABLE sys_session (
            session_id VARCHAR(127) NOT NULL PRIMARY KEY,
            data TEXT NOT NULL,
            modified TIMESTAMP NOT NULL,
            created TIMESTAMP NOT NULL
        );

    Data is stored as base64 encoded JSON, or Fernet-encrypted JSON when an
    encryption key is given. Timestamps are naive UTC.

    Example:
        engine = create_async_engine("sqlite+aiosqlite:///app.db")
        adapter = DatabaseSessionAdapter(engine, encryption_key=Fernet.generate_key())
    """

    DB_TABLE = "sys_session"

    def __init__(
        self,
        engine: AsyncEngine,
        encryption_key: Union[str, bytes, None] = None,
        table_name: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._engine = engine
        self._fernet = Fernet(encryption_key) if encryption_key else None
        self._clock = clock
        self._metadata = MetaData()
        self.table = Table(
            table_name or self.DB_TABLE,
            self._metadata,
            Column("session_id", String(127), primary_key=True),
            Column("data", Text, nullable=False),
            Column("modified", DateTime, nullable=False),
            Column("created", DateTime, nullable=False),
        )
        self._installed = False
        self._install_lock = asyncio.Lock()

    async def install(self) -> None:
        """Create the session table if it does not exist yet."""
        if self._installed:
            return
        async with self._install_lock:
            if self._installed:
                return
            async with self._engine.begin() as conn:
                await conn.run_sync(self._metadata.create_all)
            self._installed = True

    async def open(self, name: str) -> None:
        await self.install()

    async def read(self, session_id: str) -> Optional[Dict[str, Any]]:
        await self.install()
        async with self._engine.connect() as conn:
            result = await conn.execute(
                select(self.table.c.data).where(self.table.c.session_id == session_id).limit(1)
            )
            raw = result.scalar_one_or_none()
        if raw is None:
            return None
        return self.decode(raw)

    async def write(self, session_id: str, data: Dict[str, Any]) -> None:
        await self.install()
        encoded = self.encode(data)
        now = self._now()
        async with self._engine.begin() as conn:
            result = await conn.execute(
                update(self.table)
                .where(self.table.c.session_id == session_id)
                .values(data=encoded, modified=now)
            )
            if result.rowcount == 0:
                await conn.execute(
                    insert(self.table).values(
                        session_id=session_id, data=encoded, modified=now, created=now
                    )
                )

    async def destroy(self, session_id: str) -> None:
        await self.install()
        async with self._engine.begin() as conn:
            await conn.execute(delete(self.table).where(self.table.c.session_id == session_id))

    async def regenerate(self, old_id: str, new_id: str) -> None:
        await self.install()
        async with self._engine.begin() as conn:
            await conn.execute(
                update(self.table)
                .where(self.table.c.session_id == old_id)
                .values(session_id=new_id, modified=self._now())
            )

    async def gc(self, max_lifetime: int) -> int:
        await self.install()
        cutoff = self._now(self._clock() - max_lifetime)
        async with self._engine.begin() as conn:
            result = await conn.execute(delete(self.table).where(self.table.c.modified < cutoff))
            removed = result.rowcount or 0
        return removed

    def encode(self, data: Dict[str, Any]) -> str:
        raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
        if self._fernet is not None:
            return self._fernet.encrypt(raw).decode("ascii")
        return base64.b64encode(raw).decode("ascii")

    def decode(self, value: str) -> Optional[Dict[str, Any]]:
        """Decode stored data. Undecodable rows are treated as missing."""
        try:
            if self._fernet is not None:
                raw = self._fernet.decrypt(value.encode("ascii"))
            else:
                raw = base64.b64decode(value.encode("ascii"), validate=True)
            data = json.loads(raw)
        except (InvalidToken, binascii.Error, ValueError):
            logger.warning("Failed to decode stored session data, ignoring it")
            return None
        return data if isinstance(data, dict) else None

    def _now(self, timestamp: Optional[float] = None) -> datetime:
        if timestamp is None:
            timestamp = self._clock()
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).replace(tzinfo=None)
