from .app import HttpKit
from .cookies import CookieJar
from .headers import Headers
from .logger import configure_logging
from .message import Message
from .request import ClientRequest, Request, UploadedFile, UploadError
from .response import (
    Response,
    is_json,
    text_response,
    html_response,
    json_response,
    redirect_response,
)
from .session import Session, SessionConfig, SessionMiddleware
from .status import HTTPStatus
from .uri import Uri

__version__ = "0.1.0"
__all__ = [
    "HttpKit",
    "CookieJar",
    "Headers",
    "Message",
    "ClientRequest",
    "Request",
    "UploadedFile",
    "UploadError",
    "Response",
    "HTTPStatus",
    "Uri",
    "Session",
    "SessionConfig",
    "SessionMiddleware",
    "is_json",
    "text_response",
    "html_response",
    "json_response",
    "redirect_response",
    "configure_logging",
]
