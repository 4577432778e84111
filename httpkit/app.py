"""
HttpKit - a minimal ASGI application around the httpkit message objects.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Union

from .exceptions import HttpKitException
from .middleware import MiddlewareCallable, MiddlewareChain
from .request import Request
from .response import Response
from .types import ASGIReceive, ASGIScope, ASGISend

Handler = Callable[[Request], Awaitable[Response]]
EventHandler = Callable[[], Awaitable[None]]

logger = logging.getLogger(__name__)


class HttpKit:
    """
    ASGI application that turns each connection into a Request, runs it
    through the middleware chain and the handler, and sends the Response.

    Routing is left to the handler.

    Example:
        async def handler(request: Request) -> Response:
            request.session["visits"] = request.session.get("visits", 0) + 1
            return json_response({"visits": request.session["visits"]})

        app = HttpKit(handler)
        app.add_middleware(ExceptionMiddleware())
        app.add_middleware(SessionMiddleware(MemorySessionAdapter()))
    """

    def __init__(
        self,
        handler: Handler,
        max_file_size: Optional[int] = None,
        temp_dir: Optional[str] = None,
        log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        """
        Args:
            handler: Async callable producing a Response for a Request
            max_file_size: Largest accepted upload in bytes (None for no limit)
            temp_dir: Directory for uploaded temp files (None for system default)
            log: Logger for application events; the module logger by default
        """
        self.handler = handler
        self.middleware_chain = MiddlewareChain()
        self.log = log or logger
        self._app_with_middleware: Optional[Handler] = None

        # Configure Request class with application-level settings
        Request.max_file_size = max_file_size
        Request.temp_dir = temp_dir

        self._startup_handlers: List[EventHandler] = [self._build_middleware_chain]
        self._shutdown_handlers: List[EventHandler] = []

    async def __call__(self, scope: ASGIScope, receive: ASGIReceive, send: ASGISend) -> None:
        if scope["type"] == "http":
            return await self._handle_http_request(scope, receive, send)

        if scope["type"] == "lifespan":
            return await self._handle_lifespan(receive, send)

    # Middleware

    async def _build_middleware_chain(self) -> None:
        if self._app_with_middleware is None:
            self._app_with_middleware = self.middleware_chain.build(self.handler)

    def add_middleware(self, middleware: MiddlewareCallable) -> None:
        """
        Add middleware to the application.

        Raises:
            RuntimeError: If middleware is added after application startup
        """
        if self._app_with_middleware is not None:
            raise RuntimeError(
                "Cannot add middleware after application startup. Add all middleware before starting the server."
            )
        self.middleware_chain.add(middleware)

    def middleware(self):
        """
        Decorator for registering middleware.

        Usage:
            @app.middleware()
            async def my_middleware(request, call_next):
                response = await call_next(request)
                return response
        """

        def decorator(func: MiddlewareCallable) -> MiddlewareCallable:
            self.add_middleware(func)
            return func

        return decorator

    # Lifespan

    def add_event_handler(self, event_type: str, func: EventHandler) -> None:
        """
        Add an async handler for the "startup" or "shutdown" event.

        Raises:
            ValueError: If event_type is not "startup" or "shutdown"
        """
        if event_type == "startup":
            self._startup_handlers.append(func)
        elif event_type == "shutdown":
            self._shutdown_handlers.append(func)
        else:
            raise ValueError(
                f"Invalid event type: {event_type}. Must be 'startup' or 'shutdown'"
            )

    def on_event(self, event_type: str):
        """
        Decorator form of add_event_handler.

        Example:
            @app.on_event("startup")
            async def open_database():
                ...
        """

        def decorator(func: EventHandler) -> EventHandler:
            self.add_event_handler(event_type, func)
            return func

        return decorator

    async def _handle_lifespan(self, receive: ASGIReceive, send: ASGISend) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    for handler in self._startup_handlers:
                        await handler()
                except Exception as e:
                    self.log.exception("Application startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif message["type"] == "lifespan.shutdown":
                try:
                    for handler in self._shutdown_handlers:
                        await handler()
                except Exception as e:
                    self.log.exception("Application shutdown failed")
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return

    # HTTP

    async def _handle_http_request(self, scope: ASGIScope, receive: ASGIReceive, send: ASGISend) -> None:
        # Servers without lifespan support never run the startup handlers
        await self._build_middleware_chain()

        try:
            request = await Request.from_asgi(scope, receive)
        except HttpKitException as exc:
            if exc.http_response is None:
                raise
            self.log.info("%s %s rejected: %s", scope.get("method"), scope.get("path"), exc)
            await self._send_http_response(exc.http_response, send)
            return

        try:
            response = await self._app_with_middleware(request)
            if not isinstance(response, Response):
                raise TypeError(
                    f"Handler returned {type(response).__name__}; responses must be Response instances"
                )
            await self._send_http_response(response, send)
        finally:
            request.cleanup_files()

    @staticmethod
    async def _send_http_response(response: Response, send: ASGISend) -> None:
        asgi_response = response.to_asgi_response()
        await send(
            {
                "type": "http.response.start",
                "status": asgi_response["status"],
                "headers": asgi_response["headers"],
            }
        )
        await send({"type": "http.response.body", "body": asgi_response["body"]})
