"""
Outgoing, client-side view of an HTTP request.
"""

from typing import Mapping, Optional, Union

from httpkit.headers import Headers, HeaderValue
from httpkit.message import Message
from httpkit.types import Methods
from httpkit.uri import Uri


class ClientRequest(Message):
    """
    An HTTP request as a client sends it: method, URI, headers and body.

    A Host header is derived from the URI when none is given.
    """

    def __init__(
        self,
        uri: Optional[Uri] = None,
        method: str = "GET",
        headers: Union[Headers, Mapping[str, HeaderValue], None] = None,
        body: Union[bytes, str] = b"",
        protocol_version: str = "1.1",
    ):
        super().__init__(headers, body, protocol_version)
        self._method = "GET"
        self._uri: Optional[Uri] = None
        self.set_uri(uri)
        self.set_method(method)

    def get_method(self) -> str:
        return self._method

    def set_method(self, method: str) -> "ClientRequest":
        """
        Set the request method.

        Raises:
            ValueError: If the method is not a valid HTTP method
        """
        method = (method or "").upper()
        if not Methods.is_valid(method):
            raise ValueError(f"Invalid HTTP method: {method!r}")
        self._method = method
        return self

    @property
    def method(self) -> str:
        return self._method

    def get_uri(self) -> Optional[Uri]:
        return self._uri

    def set_uri(self, uri: Optional[Uri]) -> "ClientRequest":
        self._uri = uri
        if uri is not None and uri.host and not self.has_header("Host"):
            self.set_header("Host", uri.authority.rsplit("@", 1)[-1])
        return self

    @property
    def uri(self) -> Optional[Uri]:
        return self._uri

    def get_request_target(self) -> str:
        """
        Origin-form of the request target, e.g. '/users?page=2'.

        Returns '/' when there is no URI.
        """
        if self._uri is None:
            return "/"
        target = self._uri.path or "/"
        if self._uri.query:
            target += f"?{self._uri.query}"
        return target

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.method} {self.get_request_target()}>"
