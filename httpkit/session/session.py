"""
Session lifecycle manager.
"""

import hashlib
import logging
import random
import re
import secrets
import time
from collections.abc import MutableMapping
from typing import Any, Callable, Dict, Iterator, Optional

from httpkit.cookies import CookieJar
from httpkit.exceptions import SessionException
from httpkit.request import Request
from .adapters.base import SessionAdapter
from .adapters.memory import MemorySessionAdapter
from .config import SessionConfig

logger = logging.getLogger(__name__)

# Reserved key holding the session metadata, hard to clash with user keys
KEY_DATA = "_-___SESSION_DATA___-_"

_NAME_PATTERN = re.compile(r"^(?=.*[a-z])[a-z0-9_]+$", re.IGNORECASE)
_ID_PATTERN = re.compile(r"^[A-Za-z0-9,-]{22,128}$")


class Session(MutableMapping):
    """
    Server-side session bound to one request.

    ``start()`` loads (or creates) the session named by the request cookie,
    counts the hit, validates the session against the request, and refreshes
    or regenerates the cookie. ``write_close()`` persists it. Both are driven
    by SessionMiddleware in a normal application.

    User data is accessed like a dict:

        session["cart"] = [1, 2]
        session.get("cart")
        session.get_once("flash")     # read and remove
        del session["cart"]

    Metadata (id, user agent, ip address, referer, hit count, last activity)
    lives under the reserved KEY_DATA entry and is read with ``get_data()``.
    """

    KEY_DATA = KEY_DATA

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        adapter: Optional[SessionAdapter] = None,
        request: Optional[Request] = None,
        cookies: Optional[CookieJar] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            config: Session settings; defaults apply when omitted
            adapter: Storage backend; a fresh MemorySessionAdapter when omitted
            request: The current request
            cookies: Cookie jar for the current request
            rng: Random source for garbage collection
            clock: Returns the current unix time
        """
        self.config = config or SessionConfig()
        self.adapter = adapter if adapter is not None else MemorySessionAdapter()
        self.request = request if request is not None else Request()
        self.cookies = cookies if cookies is not None else CookieJar(self.request.cookies)
        self._rng = rng or random.Random()
        self._clock = clock

        self._id: Optional[str] = None
        self._data: Dict[str, Any] = {}
        self._started = False
        self._opened = False
        self._closed = False
        self._is_new = False

    # Lifecycle

    async def start(self) -> "Session":
        """
        Start the session.

        Raises:
            SessionException: If the session name is invalid
        """
        if self._started:
            return self

        name = self.name
        if not _NAME_PATTERN.match(name):
            raise SessionException(f"Invalid Session Name: {name}")

        if not self._opened:
            await self.adapter.open(name)
            self._opened = True

        await self._load()

        hits = int(self.get_data("total_hits") or 0) + 1
        self.set_data("total_hits", hits)

        # Validate data only on hits after the first
        if hits > 1:
            failed = self._failed_check()
            if failed is not None:
                logger.info("Session failed the %s check, starting a new one", failed)
                await self.destroy()
                self._new_session()
                self.set_data("total_hits", 1)

        now = self._clock()
        self.set_data("last_activity", now)
        self._started = True

        await self._collect_garbage()

        regenerate = self.config.regenerate
        if regenerate > 0 and int(self.get_data("total_hits")) % regenerate == 0:
            await self.regenerate()
        else:
            # Always update the session cookie to keep the session alive
            self._set_cookie()

        logger.debug("Session %s started (hit %s)", self._id, self.get_data("total_hits"))
        return self

    async def regenerate(self) -> "Session":
        """Give the session a new id, keeping its data."""
        old_id = self._id
        new_id = self._generate_id()
        if old_id is not None:
            await self.adapter.regenerate(old_id, new_id)
        self._id = new_id
        self.set_data("session_id", new_id)
        self._set_cookie()
        logger.debug("Session id regenerated")
        return self

    async def destroy(self) -> None:
        """Remove the session from storage and delete its cookie."""
        if self._id is not None:
            await self.adapter.destroy(self._id)
            self.cookies.delete(self.name, path=self.config.cookie_path, domain=self.config.cookie_domain)
            logger.debug("Session %s destroyed", self._id)
        self._id = None
        self._data = {}
        self._started = False

    async def write_close(self) -> None:
        """
        Persist the session and close the adapter.

        Only the first call does anything.
        """
        if self._closed:
            return
        self._closed = True
        try:
            if self._started and self._id is not None:
                await self.adapter.write(self._id, self._data)
        finally:
            if self._opened:
                await self.adapter.close()

    # Properties

    @property
    def id(self) -> Optional[str]:
        return self._id

    @property
    def name(self) -> str:
        if self.config.name:
            return self.config.name
        server_name = (
            self.request.get_server_param("SERVER_NAME")
            or (self.request.uri.host if self.request.uri else None)
            or "localhost"
        )
        return hashlib.md5(str(server_name).encode("utf-8")).hexdigest()

    @property
    def started(self) -> bool:
        return self._started

    @property
    def is_new(self) -> bool:
        return self._is_new

    # Metadata

    def get_data(self, key: str) -> Any:
        """A metadata value, or '' if it is not set."""
        value = self._data.get(KEY_DATA, {}).get(key)
        return "" if value is None else value

    def set_data(self, key: str, value: Any) -> "Session":
        self._data.setdefault(KEY_DATA, {})[key] = value
        return self

    # User data

    def get(self, key: str, default: Any = None) -> Any:
        if key == KEY_DATA:
            return default
        value = self._data.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any = None) -> "Session":
        """Bind a value to the session. ``None`` removes the key."""
        if key == KEY_DATA:
            return self
        if value is None:
            return self.delete(key)
        self._data[key] = value
        return self

    def delete(self, key: str) -> "Session":
        if key != KEY_DATA:
            self._data.pop(key, None)
        return self

    def has(self, key: str) -> bool:
        return key != KEY_DATA and self._data.get(key) is not None

    def get_once(self, key: str, default: Any = None) -> Any:
        """Return a value and remove it from the session."""
        value = self.get(key, default)
        self.delete(key)
        return value

    def all(self) -> Dict[str, Any]:
        """Everything stored in the session, metadata included."""
        return dict(self._data)

    def __getitem__(self, key: str) -> Any:
        if not self.has(key):
            raise KeyError(key)
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        if key == KEY_DATA or key not in self._data:
            raise KeyError(key)
        del self._data[key]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __iter__(self) -> Iterator[str]:
        return iter([key for key in self._data if key != KEY_DATA])

    def __len__(self) -> int:
        return len([key for key in self._data if key != KEY_DATA])

    def __repr__(self) -> str:
        return f"<Session {self.name}={self._id}>"

    # Internals

    async def _load(self) -> None:
        session_id = self._resolve_id()
        data = await self.adapter.read(session_id) if session_id else None
        if data is None:
            self._new_session()
            return

        self._id = session_id
        self._data = data
        self._is_new = False
        if KEY_DATA not in self._data:
            self._init_metadata()

    def _resolve_id(self) -> Optional[str]:
        """The session id sent by the client, if it is well formed."""
        name = self.name
        session_id = self.cookies.get(name)
        if not session_id and self.request.is_secure() and self.request.has(name):
            session_id = str(self.request.get(name))
        if session_id and _ID_PATTERN.match(session_id):
            return session_id
        return None

    def _new_session(self) -> None:
        self._id = self._generate_id()
        self._data = {}
        self._is_new = True
        self._init_metadata()

    def _init_metadata(self) -> None:
        referer = self.request.get_referer()
        self._data[KEY_DATA] = {
            "session_id": self._id,
            "user_agent": self.request.get_user_agent(),
            "ip_address": self.request.get_ip(),
            "site_referer": str(referer) if referer else "",
            "total_hits": 0,
            "last_activity": 0,
        }

    def _failed_check(self) -> Optional[str]:
        """The first configured check the request fails, or None."""
        for check in self.config.checks:
            if check == "user_agent":
                if self.get_data("user_agent") != self.request.get_user_agent():
                    return check
            elif check == "ip_address":
                if (self.get_data("ip_address") or None) != self.request.get_ip():
                    return check
            elif check == "expiration":
                last_activity = float(self.get_data("last_activity") or 0)
                if self._clock() - last_activity > self.config.gc_maxlifetime:
                    return check
        return None

    async def _collect_garbage(self) -> None:
        probability = self.config.gc_probability
        if probability <= 0:
            return
        if self._rng.randint(1, self.config.gc_divisor) <= probability:
            removed = await self.adapter.gc(self.config.gc_maxlifetime)
            logger.debug("Session garbage collection removed %d sessions", removed)

    def _set_cookie(self) -> None:
        self.cookies.set(
            self.name,
            self._id,
            expires=self._clock() + self.config.gc_maxlifetime,
            path=self.config.cookie_path,
            domain=self.config.cookie_domain,
            secure=self.config.cookie_secure,
            httponly=self.config.cookie_httponly,
            samesite=self.config.cookie_samesite,
        )

    @staticmethod
    def _generate_id() -> str:
        return secrets.token_hex(16)
