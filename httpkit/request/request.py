"""
Request class for httpkit.
"""

import json
import logging
import re
import urllib.parse
import xml.etree.ElementTree as ElementTree
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from httpkit.exceptions import RequestException
from httpkit.headers import Headers, HeaderValue
from httpkit.status import HTTPStatus
from httpkit.types import ASGIReceive, ASGIScope, Methods
from httpkit.uri import Uri
from .client_request import ClientRequest
from .multipart.parser import MultipartParser
from .upload_file import UploadedFile, UploadedFileTree

if TYPE_CHECKING:
    from httpkit.session import Session

logger = logging.getLogger(__name__)

MediaTypeParser = Callable[[str], Any]

# Request keys may only hold alpha-numeric text and a few separators
_KEY_PATTERN = re.compile(r"^[a-z0-9:_\[\]/-]+$", re.IGNORECASE)
_NEWLINES = re.compile(r"\r\n|\r")


def parse_urlencoded(text: str) -> Dict[str, Any]:
    """
    Parse an urlencoded string into a dictionary.

    Keys ending in ``[]`` collect their values in a list; for any other
    repeated key the last value wins.

    Example: 'a=1&tags[]=x&tags[]=y&a=2' -> {'a': '2', 'tags': ['x', 'y']}
    """
    result: Dict[str, Any] = {}
    for key, value in urllib.parse.parse_qsl(text, keep_blank_values=True):
        if key.endswith("[]"):
            result.setdefault(key[:-2], []).append(value)
        else:
            result[key] = value
    return result


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise RequestException(f"Invalid JSON body: {e}")


def _parse_xml(text: str) -> Any:
    try:
        return ElementTree.fromstring(text)
    except ElementTree.ParseError as e:
        raise RequestException(f"Invalid XML body: {e}")


class Request(ClientRequest):
    """
    Server-side HTTP request built from an ASGI connection.

    Provides convenient access to:
    - Request params (query string overlaid with form fields), read-only
    - CGI-style server params (REMOTE_ADDR, HTTP_USER_AGENT, ...)
    - Cookies and normalized uploaded files
    - The body, parsed by media type
    - A mutable attribute bag for values derived while handling the request

    The request acts like a read-only mapping over its params:

        request["page"]           # KeyError if missing
        request.get("page", "1")
        "page" in request
    """

    # Called with the request after the built-in sanitizing pass
    sanitizer_callback: ClassVar[Optional[Callable[["Request"], None]]] = None

    # Application-level configuration (set by HttpKit)
    max_file_size: ClassVar[Optional[int]] = None
    temp_dir: ClassVar[Optional[str]] = None

    # Set by SessionMiddleware
    session: Optional["Session"]

    def __init__(
        self,
        uri: Optional[Uri] = None,
        method: str = "GET",
        headers: Union[Headers, Mapping[str, HeaderValue], None] = None,
        params: Optional[Dict[str, Any]] = None,
        server_params: Optional[Dict[str, Any]] = None,
        cookies: Optional[Dict[str, str]] = None,
        uploaded_files: Optional[UploadedFileTree] = None,
        body: Union[bytes, str] = b"",
        protocol_version: str = "1.1",
        parsed_body: Any = None,
    ):
        """
        Args:
            uri: The request URI
            method: The request method ('GET', 'POST', etc)
            headers: Request headers
            params: Request params, generally query string plus form fields
            server_params: CGI-style environment of the request
            cookies: Cookies sent by the client
            uploaded_files: Normalized tree of UploadedFile instances
            body: Raw request body
            protocol_version: HTTP protocol version
            parsed_body: Pre-parsed body, e.g. the fields of a multipart form
        """
        super().__init__(uri, method, headers, body, protocol_version)
        self._params = self._sanitize(params or {})
        self._server_params = self._sanitize(server_params or {})
        self._cookies: Dict[str, str] = dict(cookies or {})
        self._uploaded_files: UploadedFileTree = dict(uploaded_files or {})
        self._attributes: Dict[str, Any] = {}
        self._parsed_body = parsed_body
        self._body_parsers: Dict[str, MediaTypeParser] = {
            "application/json": _parse_json,
            "application/xml": _parse_xml,
            "text/xml": _parse_xml,
            "application/x-www-form-urlencoded": parse_urlencoded,
        }
        self.session = None

        if type(self).sanitizer_callback is not None:
            try:
                type(self).sanitizer_callback(self)
            except Exception:
                logger.exception("Request sanitizer callback failed")

    @classmethod
    async def from_asgi(cls, scope: ASGIScope, receive: ASGIReceive) -> "Request":
        """
        Factory method to create a Request from ASGI 'scope' and 'receive'.

        The complete body is read before the request is built, so this is an
        async method.

        Args:
            scope: ASGI scope dictionary
            receive: ASGI receive callable

        Returns:
            Request object

        Raises:
            RequestException: With a 405 response if the method is unknown
        """
        method = (scope.get("method") or "GET").upper()
        if not Methods.is_valid(method):
            raise RequestException(
                f"Method not allowed: {method}", HTTPStatus.HTTP_405_METHOD_NOT_ALLOWED
            )

        body = await cls._receive_complete_message(receive)
        headers = Headers.from_scope(scope)
        uri = Uri.from_scope(scope)

        params: Dict[str, Any] = parse_urlencoded(uri.query)
        files: List[Tuple[str, UploadedFile]] = []
        parsed_body = None

        content_type = headers.get_line("content-type")
        if "multipart/form-data" in content_type.lower():
            boundary = MultipartParser.extract_boundary(content_type)
            if boundary:
                parser = MultipartParser(cls.temp_dir, cls.max_file_size)
                form_data, files = parser.parse(body, boundary)
                params.update(form_data)
                parsed_body = form_data
        elif "application/x-www-form-urlencoded" in content_type.lower():
            params.update(parse_urlencoded(body.decode("utf-8", errors="replace")))

        try:
            return cls(
                uri=uri,
                method=method,
                headers=headers,
                params=params,
                server_params=cls._build_server_params(scope, headers, uri),
                cookies=cls._parse_cookie_header(headers.get_line("cookie")),
                uploaded_files=cls._build_file_tree(files),
                body=body,
                protocol_version=scope.get("http_version", "1.1"),
                parsed_body=parsed_body,
            )
        except Exception:
            for _, uploaded_file in files:
                uploaded_file.cleanup()
            raise

    # Params (read-only)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a request param, or ``default`` if it is not present."""
        if self.has(key):
            return self._params[key]
        return default

    def has(self, key: str) -> bool:
        return self._params.get(key) is not None

    def all(self) -> Dict[str, Any]:
        return dict(self._params)

    def get_query_params(self) -> Dict[str, Any]:
        """Query string arguments, parsed from the URI."""
        if self.uri is None:
            return {}
        return parse_urlencoded(self.uri.query)

    def get_cookie_params(self) -> Dict[str, str]:
        return dict(self._cookies)

    @property
    def cookies(self) -> Dict[str, str]:
        return self._cookies

    # Server params

    def get_server_params(self) -> Dict[str, Any]:
        return dict(self._server_params)

    def get_server_param(self, name: str, default: Any = None) -> Any:
        value = self._server_params.get(name)
        return default if value is None else value

    # Uploaded files

    def get_uploaded_files(self) -> UploadedFileTree:
        return self._uploaded_files

    def get_uploaded_file(self, name: str) -> Optional[Union[UploadedFile, List[UploadedFile], Dict[str, Any]]]:
        return self._uploaded_files.get(name)

    def iter_uploaded_files(self) -> Iterator[UploadedFile]:
        """Every UploadedFile in the tree, depth first."""

        def walk(node: Any) -> Iterator[UploadedFile]:
            if isinstance(node, UploadedFile):
                yield node
            elif isinstance(node, dict):
                for child in node.values():
                    yield from walk(child)
            elif isinstance(node, list):
                for child in node:
                    yield from walk(child)

        return walk(self._uploaded_files)

    def cleanup_files(self) -> None:
        """
        Remove the temp files of uploads that were not moved.

        Errors are logged and do not stop the remaining files from being removed.
        """
        for uploaded_file in self.iter_uploaded_files():
            try:
                uploaded_file.cleanup()
            except OSError:
                logger.warning("Could not remove temp file %s", uploaded_file.file, exc_info=True)

    # Attributes

    def get_attributes(self) -> Dict[str, Any]:
        return dict(self._attributes)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        if self.has_attribute(name):
            return self._attributes[name]
        return default

    def set_attribute(self, name: str, value: Any) -> "Request":
        """Set an attribute. Setting ``None`` removes it."""
        if value is None:
            return self.remove_attribute(name)
        self._attributes[name] = value
        return self

    def remove_attribute(self, name: str) -> "Request":
        self._attributes.pop(name, None)
        return self

    def has_attribute(self, name: str) -> bool:
        return self._attributes.get(name) is not None

    def replace_attributes(self, items: Mapping[str, Any]) -> "Request":
        for name, value in items.items():
            self.set_attribute(name, value)
        return self

    # Body

    def get_raw_body(self) -> bytes:
        return self.get_body()

    def get_parsed_body(self) -> Any:
        """
        The body deserialized by the parser registered for its media type.

        Returns:
            The parsed body, or None when the body is empty or no parser is
            registered for the media type

        Raises:
            RuntimeError: If the parser returns something other than a dict,
                a list, an object or None
            RequestException: If the body cannot be parsed
        """
        if self._parsed_body is not None:
            return self._parsed_body

        if not self.get_body():
            return None

        parser = self._body_parsers.get(self.get_media_type() or "")
        if parser is None:
            return None

        text = self.get_body().decode(self.get_content_charset() or "utf-8", errors="replace")
        parsed = parser(text)
        if parsed is not None and isinstance(parsed, (str, bytes, int, float, bool)):
            raise RuntimeError(
                "Request body media type parser return value must be a dict, a list, an object, or None"
            )
        self._parsed_body = parsed
        return parsed

    def register_media_type_parser(self, media_type: str, parser: MediaTypeParser) -> "Request":
        """
        Register a body parser for a media type (without content-type params).

        The parser is called with the body decoded to text.
        """
        self._body_parsers[media_type.lower()] = parser
        self._parsed_body = None
        return self

    # Client information

    def get_ip(self) -> Optional[str]:
        """
        Client IP address.

        The first X-Forwarded-For entry wins over REMOTE_ADDR.
        """
        if self.has_header("X-Forwarded-For"):
            return self.get_header_line("X-Forwarded-For").split(",")[0].strip()
        return self.get_server_param("REMOTE_ADDR")

    def get_referer(self) -> Optional[Uri]:
        referer = self.get_server_param("HTTP_REFERER")
        if not referer:
            return None
        return Uri.parse(referer)

    def check_referer(self) -> bool:
        """True if the request was referred by a page on this same host."""
        referer = self.get_referer()
        return bool(referer and self.uri and referer.host == self.uri.host)

    def get_user_agent(self) -> str:
        return self.get_server_param("HTTP_USER_AGENT", "")

    def is_secure(self) -> bool:
        return self.uri is not None and self.uri.scheme == "https"

    @property
    def path(self) -> str:
        if self.uri is None:
            return "/"
        return self.uri.path or "/"

    # Read-only mapping over params

    def __getitem__(self, key: str) -> Any:
        if not self.has(key):
            raise KeyError(key)
        return self._params[key]

    def __setitem__(self, key: str, value: Any) -> None:
        raise RequestException("Data is read only, use attributes.")

    def __delitem__(self, key: str) -> None:
        raise RequestException("Data is read only, use attributes.")

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    # Internals

    def _sanitize(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Standardize newlines to '\\n' and drop keys with disallowed characters.
        """
        clean: Dict[str, Any] = {}
        for key, value in data.items():
            if not isinstance(key, str) or not _KEY_PATTERN.match(key):
                logger.warning("Disallowed key characters in request key %r, dropping it", key)
                continue
            clean[key] = self._clean_data(value)
        return clean

    def _clean_data(self, value: Any) -> Any:
        if isinstance(value, str):
            return _NEWLINES.sub("\n", value)
        if isinstance(value, Mapping):
            return self._sanitize(value)
        if isinstance(value, list):
            return [self._clean_data(item) for item in value]
        return value

    @staticmethod
    def _build_file_tree(files: List[Tuple[str, UploadedFile]]) -> UploadedFileTree:
        tree: UploadedFileTree = {}
        for name, uploaded_file in files:
            if name.endswith("[]"):
                tree.setdefault(name[:-2], []).append(uploaded_file)
            elif name in tree:
                existing = tree[name]
                if not isinstance(existing, list):
                    tree[name] = [existing]
                tree[name].append(uploaded_file)
            else:
                tree[name] = uploaded_file
        return tree

    @staticmethod
    def _build_server_params(scope: ASGIScope, headers: Headers, uri: Uri) -> Dict[str, Any]:
        """CGI-style server params derived from the ASGI scope."""
        server_host, server_port = scope.get("server") or (uri.host, None)
        client_host, client_port = scope.get("client") or (None, None)

        params: Dict[str, Any] = {
            "REQUEST_METHOD": scope.get("method", "GET"),
            "REQUEST_URI": scope.get("raw_path", b"").decode("latin-1") or uri.path,
            "QUERY_STRING": uri.query,
            "SCRIPT_NAME": scope.get("root_path", ""),
            "SERVER_NAME": server_host,
            "SERVER_PORT": str(server_port) if server_port is not None else "",
            "SERVER_PROTOCOL": f"HTTP/{scope.get('http_version', '1.1')}",
            "REMOTE_ADDR": client_host,
            "REMOTE_PORT": str(client_port) if client_port is not None else "",
        }
        if uri.query and "?" not in params["REQUEST_URI"]:
            params["REQUEST_URI"] += f"?{uri.query}"
        if uri.scheme == "https":
            params["HTTPS"] = "on"

        for name, values in headers.all().items():
            key = name.upper().replace("-", "_")
            line = ",".join(values)
            if key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
                params[key] = line
            else:
                params[f"HTTP_{key}"] = line
        return params

    @staticmethod
    def _parse_cookie_header(cookie_header: str) -> Dict[str, str]:
        """
        Cookies parsed from the Cookie header.

        For duplicate cookie names, the last value is kept.
        """
        cookies: Dict[str, str] = {}
        for cookie_pair in cookie_header.split(";"):
            cookie_pair = cookie_pair.strip()
            if "=" in cookie_pair:
                name, value = cookie_pair.split("=", 1)
                cookies[name.strip()] = value.strip()
        return cookies

    @staticmethod
    async def _receive_complete_message(receive: ASGIReceive) -> bytes:
        """
        Receive the complete HTTP request body from the ASGI receive callable.

        Handles bodies that arrive in several messages.
        """
        body_parts: List[bytes] = []
        while True:
            message = await receive()
            if message["type"] == "http.request":
                body_part = message.get("body", b"")
                if body_part:
                    body_parts.append(body_part)
                if not message.get("more_body", False):
                    break
            elif message["type"] == "http.disconnect":
                break
        return b"".join(body_parts)
