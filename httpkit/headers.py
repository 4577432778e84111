"""
Case-insensitive, multi-valued HTTP header collection.
"""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

HeaderValue = Union[str, List[str]]


class Headers:
    """
    HTTP headers keyed case-insensitively.

    Every header maps to a list of values. The name as first given is kept so
    that ``all()`` returns headers the way they will be sent on the wire.

    ``HTTP_USER_AGENT``, ``User-Agent`` and ``user_agent`` all address the
    same header, which lets the collection be fed from CGI-style server params.
    """

    # Server params that carry a header without the "HTTP_" prefix
    SPECIAL = frozenset(
        {
            "CONTENT_TYPE",
            "CONTENT_LENGTH",
            "PHP_AUTH_USER",
            "PHP_AUTH_PW",
            "PHP_AUTH_DIGEST",
            "AUTH_TYPE",
        }
    )

    def __init__(self, headers: Optional[Mapping[str, HeaderValue]] = None):
        self._data: Dict[str, Dict[str, Any]] = {}
        for name, value in (headers or {}).items():
            self.set(name, value)

    @classmethod
    def create(cls, headers: Union["Headers", Mapping[str, HeaderValue], None] = None) -> "Headers":
        """Return ``headers`` if it already is a collection, otherwise wrap it."""
        if isinstance(headers, Headers):
            return headers
        return cls(headers)

    @classmethod
    def from_scope(cls, scope: Dict[str, Any]) -> "Headers":
        """
        Build the collection from the ASGI ``scope["headers"]`` byte pairs.

        Repeated headers are appended, not replaced.
        """
        headers = cls()
        for name, value in scope.get("headers", []):
            headers.add(name.decode("latin-1"), value.decode("latin-1"))
        return headers

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> "Headers":
        """Build the collection from CGI-style server params (``HTTP_*`` keys)."""
        headers = cls()
        for key, value in environ.items():
            key = key.upper()
            if key in cls.SPECIAL or key.startswith("HTTP_"):
                if key != "HTTP_CONTENT_LENGTH":
                    headers.set(key, value)
        return headers

    @staticmethod
    def normalize_key(name: str) -> str:
        """
        Normalize a header name so lookups are case-insensitive.

        Example: 'HTTP_X_FORWARDED_FOR' -> 'x-forwarded-for'
        """
        key = name.lower().replace("_", "-")
        if key.startswith("http-"):
            key = key[5:]
        return key

    def set(self, name: str, value: HeaderValue) -> "Headers":
        """Set a header, replacing any values it already had."""
        values = list(value) if isinstance(value, (list, tuple)) else [value]
        self._data[self.normalize_key(name)] = {
            "value": [str(v) for v in values],
            "original_key": name,
        }
        return self

    def add(self, name: str, value: HeaderValue) -> "Headers":
        """Append one or more values to a header."""
        existing = self.get(name, [])
        new_values = list(value) if isinstance(value, (list, tuple)) else [value]
        original = self.get_original_key(name, name)
        self.set(original, existing + new_values)
        return self

    def get(self, name: str, default: Optional[List[str]] = None) -> Optional[List[str]]:
        """Return the list of values for a header, or ``default``."""
        entry = self._data.get(self.normalize_key(name))
        if entry is None:
            return default
        return list(entry["value"])

    def get_line(self, name: str) -> str:
        """Return all values of a header joined by a comma, or ''."""
        return ",".join(self.get(name, []))

    def get_original_key(self, name: str, default: Optional[str] = None) -> Optional[str]:
        entry = self._data.get(self.normalize_key(name))
        if entry is None:
            return default
        return entry["original_key"]

    def has(self, name: str) -> bool:
        return self.normalize_key(name) in self._data

    def remove(self, name: str) -> "Headers":
        self._data.pop(self.normalize_key(name), None)
        return self

    def all(self) -> Dict[str, List[str]]:
        """Return ``{original_name: [values]}`` for every header."""
        return {entry["original_key"]: list(entry["value"]) for entry in self._data.values()}

    def to_asgi(self) -> List[Tuple[bytes, bytes]]:
        """Convert to ASGI header pairs, one pair per value."""
        pairs = []
        for key, entry in self._data.items():
            for value in entry["value"]:
                pairs.append((key.encode("latin-1"), value.encode("latin-1")))
        return pairs

    def copy(self) -> "Headers":
        return Headers(self.all())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __getitem__(self, name: str) -> List[str]:
        values = self.get(name)
        if values is None:
            raise KeyError(name)
        return values

    def __setitem__(self, name: str, value: HeaderValue) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        if not self.has(name):
            raise KeyError(name)
        self.remove(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self.all() == other.all()
        return NotImplemented

    def __repr__(self) -> str:
        return f"Headers({self.all()!r})"
