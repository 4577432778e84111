"""
Base HTTP message shared by requests and responses.
"""

import re
from typing import Dict, List, Mapping, Optional, Union

from .headers import Headers, HeaderValue

VALID_PROTOCOL_VERSIONS = ("1.0", "1.1", "2.0")


class Message:
    """
    An HTTP message: protocol version, headers and body.

    Header names are case-insensitive everywhere. Setters return ``self`` so
    calls can be chained.
    """

    def __init__(
        self,
        headers: Union[Headers, Mapping[str, HeaderValue], None] = None,
        body: Union[bytes, str] = b"",
        protocol_version: str = "1.1",
    ):
        self.headers = Headers.create(headers)
        self._body = b""
        self._protocol_version = "1.1"
        self.set_body(body)
        self.set_protocol_version(protocol_version)

    # Protocol

    def get_protocol_version(self) -> str:
        return self._protocol_version

    def set_protocol_version(self, version: str) -> "Message":
        """
        Set the HTTP protocol version.

        Raises:
            ValueError: If the version is not one of 1.0, 1.1, 2.0
        """
        version = str(version)
        if version == "2":
            version = "2.0"
        if version not in VALID_PROTOCOL_VERSIONS:
            raise ValueError(
                "Invalid HTTP protocol version. Must be one of: 1.0, 1.1, 2.0"
            )
        self._protocol_version = version
        return self

    # Headers

    def set_header(self, name: str, value: HeaderValue) -> "Message":
        self.headers.set(name, value)
        return self

    def add_header(self, name: str, value: HeaderValue) -> "Message":
        """Append a value to a header instead of replacing it."""
        self.headers.add(name, value)
        return self

    def remove_header(self, name: str) -> "Message":
        self.headers.remove(name)
        return self

    def has_header(self, name: str) -> bool:
        return self.headers.has(name)

    def get_header(self, name: str) -> List[str]:
        """All values of a header, or an empty list if it is not present."""
        return self.headers.get(name, [])

    def get_header_line(self, name: str) -> str:
        """All values of a header joined by a comma, or '' if not present."""
        return self.headers.get_line(name)

    def get_headers(self) -> Dict[str, List[str]]:
        return self.headers.all()

    # Body

    def get_body(self) -> bytes:
        return self._body

    def set_body(self, body: Union[bytes, str, None]) -> "Message":
        if body is None:
            body = b""
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        return self

    # Content helpers

    def get_content_type(self) -> Optional[str]:
        values = self.get_header("Content-Type")
        return values[0] if values else None

    def get_media_type(self) -> Optional[str]:
        """
        Content type without its parameters.

        Example: 'Application/JSON; charset=utf-8' -> 'application/json'
        """
        content_type = self.get_content_type()
        if not content_type:
            return None
        return re.split(r"\s*[;,]\s*", content_type)[0].lower()

    def get_media_type_params(self) -> Dict[str, str]:
        """
        Content type parameters.

        Example: 'text/html; charset=utf-8' -> {'charset': 'utf-8'}
        """
        content_type = self.get_content_type()
        params: Dict[str, str] = {}
        if not content_type:
            return params
        for part in re.split(r"\s*[;,]\s*", content_type)[1:]:
            if "=" not in part:
                continue
            key, value = part.split("=", 1)
            params[key.strip().lower()] = value.strip().strip('"')
        return params

    def get_content_charset(self) -> Optional[str]:
        return self.get_media_type_params().get("charset")

    def get_content_length(self) -> Optional[int]:
        values = self.get_header("Content-Length")
        if not values:
            return None
        try:
            return int(values[0])
        except ValueError:
            return None

    def is_xhr(self) -> bool:
        """True for requests sent by XMLHttpRequest."""
        return self.get_header_line("X-Requested-With") == "XMLHttpRequest"
