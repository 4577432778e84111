"""
Response class for httpkit.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .exceptions import ResponseException
from .headers import Headers, HeaderValue
from .message import Message
from .status import HTTPStatus


class Response(Message):
    """
    Response object for building HTTP responses with automatic content type detection.

    Supports:
    - Automatic content type detection (JSON, HTML, plain text)
    - Custom status codes and headers
    - Method chaining for header and cookie setting
    - Conversion to ASGI response format
    """

    def __init__(
        self,
        content: Union[str, bytes, dict, list, int, float, None] = "",
        status_code: Union[int, HTTPStatus] = HTTPStatus.HTTP_200_OK,
        headers: Union[Headers, Mapping[str, HeaderValue], None] = None,
        content_type: Optional[str] = None,
    ):
        """
        Initialize Response object.

        Args:
            content: Response content (auto-converts dict/list to JSON)
            status_code: HTTP status code (int or HTTPStatus enum)
            headers: Additional response headers
            content_type: Explicit content type (auto-detected if not provided)
        """
        super().__init__(Headers.create(headers).copy() if headers is not None else None)
        self.set_status_code(status_code)
        self._cookies: List[str] = []  # one Set-Cookie header each

        body, detected_content_type = self._process_content(content)
        self.set_body(body)

        # Explicit content type takes precedence over the detected one
        if content_type:
            self.set_header("content-type", content_type)
        elif detected_content_type and not self.has_header("content-type"):
            self.set_header("content-type", detected_content_type)

    @property
    def body(self) -> bytes:
        return self.get_body()

    def _process_content(self, content: Any) -> Tuple[bytes, Optional[str]]:
        """
        Process content and determine appropriate content type.

        Returns:
            Tuple of (processed_bytes, detected_content_type)
        """
        if isinstance(content, (dict, list)):
            try:
                body = json.dumps(content, ensure_ascii=False).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise ResponseException(f"Cannot convert value to JSON string: {e}")
            content_type = "application/json; charset=utf-8"
        elif isinstance(content, str):
            body = content.encode("utf-8")
            if content.strip().startswith(("<!DOCTYPE", "<html", "<HTML")):
                content_type = "text/html; charset=utf-8"
            elif any(
                tag in content.lower()
                for tag in ["<h1>", "<h2>", "<p>", "<div>", "<span>", "<body>"]
            ):
                content_type = "text/html; charset=utf-8"
            else:
                content_type = "text/plain; charset=utf-8"
        elif isinstance(content, bytes):
            body = content
            content_type = "application/octet-stream"
        elif content is None:
            body = b""
            content_type = "text/plain; charset=utf-8"
        else:
            # numbers and anything else
            body = str(content).encode("utf-8")
            content_type = "text/plain; charset=utf-8"

        return body, content_type

    def get_status_code(self) -> int:
        return self.status_code

    def set_status_code(self, status_code: Union[int, HTTPStatus]) -> "Response":
        status_code = int(status_code)
        if not 100 <= status_code <= 599:
            raise ValueError(f"Invalid HTTP status code: {status_code}")
        self.status_code = status_code
        return self

    def set_cookie(
        self,
        name: str,
        value: str,
        max_age: Optional[int] = None,
        expires: Optional[datetime] = None,
        path: str = "/",
        domain: Optional[str] = None,
        secure: bool = False,
        httponly: bool = False,
        samesite: Optional[str] = None,
    ) -> "Response":
        """
        Set a cookie (supports method chaining).

        Args:
            name: Cookie name
            value: Cookie value
            max_age: Cookie lifetime in seconds
            expires: Cookie expiration datetime (UTC)
            path: Cookie path
            domain: Cookie domain
            secure: Whether cookie requires HTTPS
            httponly: Whether cookie is HTTP-only
            samesite: SameSite attribute ('Strict', 'Lax', or 'None')
        """
        cookie_parts = [f"{name}={value}"]

        if max_age is not None:
            cookie_parts.append(f"Max-Age={max_age}")
        if expires is not None:
            cookie_parts.append(f"Expires={expires.strftime('%a, %d %b %Y %H:%M:%S GMT')}")
        if path:
            cookie_parts.append(f"Path={path}")
        if domain:
            cookie_parts.append(f"Domain={domain}")
        if secure:
            cookie_parts.append("Secure")
        if httponly:
            cookie_parts.append("HttpOnly")
        if samesite:
            cookie_parts.append(f"SameSite={samesite}")

        self._cookies.append("; ".join(cookie_parts))
        return self

    def delete_cookie(
        self,
        name: str,
        path: str = "/",
        domain: Optional[str] = None,
    ) -> "Response":
        """
        Delete a cookie by setting its Max-Age to 0 (supports method chaining).

        The path and domain must match the ones the cookie was set with.
        """
        return self.set_cookie(name=name, value="", max_age=0, path=path, domain=domain)

    def clear_cookies(self) -> "Response":
        self._cookies.clear()
        return self

    def get_cookies(self) -> List[str]:
        """The Set-Cookie header values this response will send."""
        return list(self._cookies)

    def to_asgi_response(self) -> Dict[str, Any]:
        """
        Convert to ASGI response format.

        Returns:
            Dictionary with 'status', 'headers', and 'body' keys
        """
        self.set_header("content-length", str(len(self.body)))
        asgi_headers = self.headers.to_asgi()

        # Multiple cookies require multiple headers
        for cookie in self._cookies:
            asgi_headers.append((b"set-cookie", cookie.encode("latin-1")))

        return {"status": self.status_code, "headers": asgi_headers, "body": self.body}

    def __repr__(self) -> str:
        return f"<Response {self.status_code}>"


def is_json(value: Any) -> bool:
    """True if ``value`` is a string holding valid JSON."""
    if not isinstance(value, str):
        return False
    try:
        json.loads(value)
    except ValueError:
        return False
    return True


# Convenience functions for common response types
def text_response(
    content: str,
    status_code: Union[int, HTTPStatus] = HTTPStatus.HTTP_200_OK,
    headers: Optional[Dict[str, str]] = None,
) -> Response:
    """Create a plain text response."""
    return Response(
        content,
        status_code=status_code,
        headers=headers,
        content_type="text/plain; charset=utf-8",
    )


def html_response(
    content: str,
    status_code: Union[int, HTTPStatus] = HTTPStatus.HTTP_200_OK,
    headers: Optional[Dict[str, str]] = None,
) -> Response:
    """Create an HTML response."""
    return Response(
        content,
        status_code=status_code,
        headers=headers,
        content_type="text/html; charset=utf-8",
    )


def json_response(
    content: Any,
    status_code: Union[int, HTTPStatus] = HTTPStatus.HTTP_200_OK,
    headers: Optional[Dict[str, str]] = None,
) -> Response:
    """
    Create a JSON response that clients and proxies will not cache.

    A string that already holds valid JSON is sent verbatim; anything else is
    serialized.

    Raises:
        ResponseException: If the content cannot be serialized to JSON
    """
    if is_json(content):
        body = content
    else:
        try:
            body = json.dumps(content, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise ResponseException(f"Cannot convert value to JSON string: {e}")

    response = Response(
        body,
        status_code=status_code,
        headers=headers,
        content_type="application/json; charset=utf-8",
    )
    response.set_header("Cache-Control", "no-cache, must-revalidate")
    response.set_header("Expires", "Mon, 26 Jul 1997 05:00:00 GMT")
    return response


def redirect_response(
    url: str,
    status_code: Union[int, HTTPStatus] = HTTPStatus.HTTP_302_FOUND,
    headers: Optional[Dict[str, str]] = None,
) -> Response:
    """Create a redirect response."""
    redirect_headers = {"location": url}
    if headers:
        redirect_headers.update(headers)

    return Response("", status_code=status_code, headers=redirect_headers)
