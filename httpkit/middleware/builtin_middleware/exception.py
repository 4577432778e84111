"""
Exception handling middleware for httpkit.

Captures unhandled exceptions raised by downstream middleware or handlers and
converts them into JSON responses, after logging them. Exceptions that carry
their own ``http_response`` (RequestException and friends) return it as is.

Mode-controlled output:
        mode="production":
                {"error": {"type": "HTTP_500_INTERNAL_SERVER_ERROR", "message": "Internal Server Error"}}
        mode="debug":
                {"error": {"type": "ValueError", "message": "Invalid value", "detail": "repr(...)", "traceback": "..."}}
"""

from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING, Awaitable, Callable, Literal, Optional, Union

from ...exceptions import HttpKitException
from ...response import Response, json_response
from ...status import HTTPStatus

if TYPE_CHECKING:  # pragma: no cover - only for type hints
    from ...request import Request

logger = logging.getLogger(__name__)


class ExceptionMiddleware:
    """Middleware that converts unhandled exceptions to JSON responses.

    Args:
            mode: Either "production" (default) for minimal messages or "debug" for full traceback.
            log: Logger or LoggerAdapter used to report the exception.
    """

    def __init__(
        self,
        mode: Literal["production", "debug"] = "production",
        log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.mode = mode.lower()
        self.log = log or logger

    async def __call__(
        self, request: "Request", call_next: Callable[["Request"], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except HttpKitException as exc:
            if exc.http_response is None:
                return self._error_response(request, exc)
            self.log.info("%s %s rejected: %s", request.method, request.path, exc)
            return exc.http_response
        except Exception as exc:  # noqa: BLE001 - we intentionally catch all
            return self._error_response(request, exc)

    def _error_response(self, request: "Request", exc: Exception) -> Response:
        self.log.error(
            "Unhandled exception in %s %s", request.method, request.path, exc_info=exc
        )
        if self.mode == "debug":
            tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            payload = {
                "error": {
                    "type": type(exc).__name__,
                    "message": str(exc),
                    "detail": repr(exc),
                    "traceback": tb,
                }
            }
        else:
            payload = {
                "error": {
                    "type": HTTPStatus.HTTP_500_INTERNAL_SERVER_ERROR.name,
                    "message": "Internal Server Error",
                }
            }

        return json_response(payload, status_code=HTTPStatus.HTTP_500_INTERNAL_SERVER_ERROR)


__all__ = ["ExceptionMiddleware"]
