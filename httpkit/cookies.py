"""
Per-request collection of outgoing cookie changes.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .response import Response


class CookieJar:
    """
    Tracks cookies sent by the client and the changes to send back.

    Changes are only recorded here; ``apply()`` writes them to the response
    once it exists.

    Example:
        jar = CookieJar(request.cookies)
        jar.set("theme", "dark", expires=time.time() + 3600)
        jar.delete("legacy")
        ...
        jar.apply(response)
    """

    def __init__(self, incoming: Optional[Mapping[str, str]] = None, **defaults: Any):
        """
        Args:
            incoming: Cookies sent by the client
            **defaults: Attributes applied to every cookie set through the
                jar (path, domain, secure, httponly, samesite)
        """
        self._incoming: Dict[str, str] = dict(incoming or {})
        self._pending: Dict[str, Dict[str, Any]] = {}
        self.defaults: Dict[str, Any] = {"path": "/", **defaults}

    def exists(self, name: str) -> bool:
        pending = self._pending.get(name)
        if pending is not None:
            return not pending["deleted"]
        return name in self._incoming

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        pending = self._pending.get(name)
        if pending is not None:
            return default if pending["deleted"] else pending["value"]
        return self._incoming.get(name, default)

    def set(self, name: str, value: str, expires: Optional[float] = None, **attrs: Any) -> "CookieJar":
        """
        Queue a cookie.

        Args:
            name: Cookie name
            value: Cookie value
            expires: Expiry as a unix timestamp; None for a browser-session cookie
            **attrs: Overrides for the jar defaults
        """
        self._pending[name] = {
            "value": value,
            "expires": expires,
            "deleted": False,
            "attrs": {**self.defaults, **attrs},
        }
        return self

    def delete(self, name: str, **attrs: Any) -> "CookieJar":
        self._pending[name] = {
            "value": "",
            "expires": None,
            "deleted": True,
            "attrs": {**self.defaults, **attrs},
        }
        return self

    @property
    def pending(self) -> Dict[str, Dict[str, Any]]:
        return dict(self._pending)

    def apply(self, response: Response) -> Response:
        """Write every queued change to ``response`` as Set-Cookie headers."""
        for name, change in self._pending.items():
            attrs = change["attrs"]
            if change["deleted"]:
                response.delete_cookie(name, path=attrs.get("path", "/"), domain=attrs.get("domain"))
                continue

            expires = change["expires"]
            response.set_cookie(
                name,
                change["value"],
                expires=datetime.fromtimestamp(expires, tz=timezone.utc) if expires is not None else None,
                path=attrs.get("path", "/"),
                domain=attrs.get("domain"),
                secure=attrs.get("secure", False),
                httponly=attrs.get("httponly", False),
                samesite=attrs.get("samesite"),
            )
        return response
