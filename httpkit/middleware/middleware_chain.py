"""
Middleware chain implementation for httpkit.

The MiddlewareChain class manages the middleware chain and builds the execution pipeline.
"""

from typing import Awaitable, Callable, List, Protocol

from ..request import Request
from ..response import Response

Endpoint = Callable[[Request], Awaitable[Response]]


class MiddlewareCallable(Protocol):
    """Protocol for middleware callables in httpkit."""

    async def __call__(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        ...


class MiddlewareChain:
    """
    Manages a chain of middleware.

    The chain follows the "onion" pattern: middleware run in registration
    order, each one wrapping the next.
    """

    def __init__(self):
        self._middlewares: List[MiddlewareCallable] = []

    def add(self, middleware: MiddlewareCallable) -> None:
        """
        Add middleware to the chain.

        Args:
            middleware: A callable with signature (request, call_next) -> response
        """
        self._middlewares.append(middleware)

    def build(self, endpoint: Endpoint) -> Endpoint:
        """
        Build the middleware chain around the given endpoint.

        Example:
            If middleware are registered as [A, B, C], the execution flow will be:
            Request -> A -> B -> C -> endpoint -> C -> B -> A -> Response
        """
        current_handler = endpoint

        # Last registered ends up closest to the endpoint
        for middleware in reversed(self._middlewares):

            async def middleware_handler(
                request: Request, mw=middleware, next_app=current_handler
            ) -> Response:
                return await mw(request, next_app)

            current_handler = middleware_handler

        return current_handler

    def count(self) -> int:
        return len(self._middlewares)

    def clear(self) -> None:
        self._middlewares.clear()
