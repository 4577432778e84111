from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from httpkit.response import Response


class HttpKitException(Exception):
    def __init__(self, message: str = ""):
        super().__init__(message)
        self.http_response: Optional["Response"] = None  # just to help with type hinting


class RequestException(HttpKitException):
    def __init__(self, message: str = "Bad request", status_code: int = 400):
        super().__init__(message)
        from httpkit.response import text_response

        self.http_response = text_response(message, status_code)


class ResponseException(HttpKitException):
    pass


class SessionException(HttpKitException):
    pass


class UploadException(HttpKitException):
    pass
