"""
Tests for the SQLAlchemy session adapter, run against SQLite through aiosqlite.
"""

import base64
import json
import random

import pytest
import pytest_asyncio
from cryptography.fernet import Fernet
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine

from httpkit.cookies import CookieJar
from httpkit.request import Request
from httpkit.session import DatabaseSessionAdapter, Session, SessionConfig
from httpkit.uri import Uri


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'sessions.db'}")
    yield engine
    await engine.dispose()


async def fetch_raw(adapter: DatabaseSessionAdapter, session_id: str):
    async with adapter._engine.connect() as conn:
        result = await conn.execute(
            select(adapter.table.c.data, adapter.table.c.created, adapter.table.c.modified).where(
                adapter.table.c.session_id == session_id
            )
        )
        return result.one_or_none()


class TestDatabaseSessionAdapter:
    """Test storage operations against a real database."""

    @pytest.mark.asyncio
    async def test_install_creates_table(self, engine):
        adapter = DatabaseSessionAdapter(engine)

        await adapter.open("app")
        await adapter.install()

        assert adapter.table.name == "sys_session"
        assert await adapter.read("missing") is None

    @pytest.mark.asyncio
    async def test_custom_table_name(self, engine):
        adapter = DatabaseSessionAdapter(engine, table_name="web_sessions")
        await adapter.write("sid", {"a": 1})

        assert adapter.table.name == "web_sessions"
        assert await adapter.read("sid") == {"a": 1}

    @pytest.mark.asyncio
    async def test_write_inserts_then_updates(self, engine):
        clock = FakeClock()
        adapter = DatabaseSessionAdapter(engine, clock=clock)

        await adapter.write("sid", {"count": 1})
        created = await fetch_raw(adapter, "sid")
        clock.now += 60
        await adapter.write("sid", {"count": 2})
        updated = await fetch_raw(adapter, "sid")

        assert await adapter.read("sid") == {"count": 2}
        assert updated.created == created.created
        assert (updated.modified - created.modified).total_seconds() == 60

    @pytest.mark.asyncio
    async def test_data_is_base64_json_without_key(self, engine):
        adapter = DatabaseSessionAdapter(engine)
        await adapter.write("sid", {"user": "bob"})

        row = await fetch_raw(adapter, "sid")

        assert json.loads(base64.b64decode(row.data)) == {"user": "bob"}

    @pytest.mark.asyncio
    async def test_data_is_encrypted_with_key(self, engine):
        key = Fernet.generate_key()
        adapter = DatabaseSessionAdapter(engine, encryption_key=key)
        await adapter.write("sid", {"user": "bob"})

        row = await fetch_raw(adapter, "sid")

        assert row.data.startswith("gAAAAA")
        assert json.loads(Fernet(key).decrypt(row.data.encode())) == {"user": "bob"}
        assert await adapter.read("sid") == {"user": "bob"}

    @pytest.mark.asyncio
    async def test_wrong_key_reads_as_missing(self, engine, caplog):
        writer = DatabaseSessionAdapter(engine, encryption_key=Fernet.generate_key())
        await writer.write("sid", {"user": "bob"})

        reader = DatabaseSessionAdapter(engine, encryption_key=Fernet.generate_key())

        assert await reader.read("sid") is None
        assert "Failed to decode stored session data" in caplog.text

    @pytest.mark.asyncio
    async def test_destroy(self, engine):
        adapter = DatabaseSessionAdapter(engine)
        await adapter.write("sid", {})

        await adapter.destroy("sid")
        await adapter.destroy("unknown")

        assert await adapter.read("sid") is None

    @pytest.mark.asyncio
    async def test_regenerate_renames_row(self, engine):
        adapter = DatabaseSessionAdapter(engine)
        await adapter.write("old-id", {"cart": [1, 2]})

        await adapter.regenerate("old-id", "new-id")

        assert await adapter.read("old-id") is None
        assert await adapter.read("new-id") == {"cart": [1, 2]}

    @pytest.mark.asyncio
    async def test_gc(self, engine):
        clock = FakeClock()
        adapter = DatabaseSessionAdapter(engine, clock=clock)
        await adapter.write("stale", {})
        clock.now += 1_000
        await adapter.write("fresh", {})

        removed = await adapter.gc(100)

        assert removed == 1
        assert await adapter.read("stale") is None
        assert await adapter.read("fresh") == {}


class TestDatabaseBackedSession:
    """Test the session lifecycle on top of the database adapter."""

    @pytest.mark.asyncio
    async def test_session_persists_between_requests(self, engine):
        adapter = DatabaseSessionAdapter(engine, encryption_key=Fernet.generate_key())
        config = SessionConfig(name="app", regenerate=3)

        def make_session(session_id=None):
            request = Request(
                uri=Uri.parse("http://example.com/"),
                server_params={"HTTP_USER_AGENT": "pytest-agent", "REMOTE_ADDR": "127.0.0.1"},
                cookies={"app": session_id} if session_id else {},
            )
            return Session(config, adapter, request, CookieJar(request.cookies), rng=random.Random(0))

        first = make_session()
        await first.start()
        first["visits"] = 1
        await first.write_close()

        second = make_session(first.id)
        await second.start()
        second["visits"] += 1
        await second.write_close()

        third = make_session(second.id)
        await third.start()
        await third.write_close()

        assert second.id == first.id
        assert second["visits"] == 2
        # regenerated on the third hit
        assert third.id != first.id
        assert third["visits"] == 2
        assert await adapter.read(first.id) is None
        assert (await adapter.read(third.id))["visits"] == 2
