"""SessionMiddleware - starts a Session for each request and persists it."""

from typing import Awaitable, Callable, Optional

from httpkit.cookies import CookieJar
from httpkit.request import Request
from httpkit.response import Response
from .adapters.base import SessionAdapter
from .config import SessionConfig
from .session import Session


class SessionMiddleware:
    """
    Attaches a started Session to ``request.session`` (and to the ``session``
    request attribute), then writes it back and sets the session cookie on the
    response.

    Example:
        app.add_middleware(SessionMiddleware(MemorySessionAdapter(), SessionConfig(name="app")))
    """

    def __init__(self, adapter: SessionAdapter, config: Optional[SessionConfig] = None):
        self.adapter = adapter
        self.config = config or SessionConfig()

    async def __call__(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        cookies = CookieJar(request.cookies)
        session = Session(self.config, self.adapter, request, cookies)
        await session.start()

        request.session = session
        request.set_attribute("session", session)

        try:
            response = await call_next(request)
        finally:
            await session.write_close()

        cookies.apply(response)
        return response


__all__ = ["SessionMiddleware"]
