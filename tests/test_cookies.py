"""
Unit tests for the CookieJar.
"""

from httpkit.cookies import CookieJar
from httpkit.response import Response


class TestCookieJar:
    """Test tracking incoming cookies and queued changes."""

    def test_incoming_cookies(self):
        jar = CookieJar({"sid": "abc"})

        assert jar.exists("sid")
        assert jar.get("sid") == "abc"
        assert not jar.exists("other")
        assert jar.get("other", "default") == "default"
        assert jar.pending == {}

    def test_set_overrides_incoming(self):
        jar = CookieJar({"sid": "abc"})
        jar.set("sid", "xyz")

        assert jar.get("sid") == "xyz"
        assert jar.pending["sid"]["value"] == "xyz"

    def test_delete_hides_cookie(self):
        jar = CookieJar({"sid": "abc"})
        jar.delete("sid")

        assert not jar.exists("sid")
        assert jar.get("sid") is None

    def test_defaults_and_overrides(self):
        jar = CookieJar(secure=True, httponly=True)
        jar.set("a", "1", path="/app")

        assert jar.pending["a"]["attrs"] == {"path": "/app", "secure": True, "httponly": True}

    def test_apply_to_response(self):
        jar = CookieJar({"old": "1"}, httponly=True, samesite="Lax")
        jar.set("sid", "abc", expires=1893456000)  # 2030-01-01 00:00:00 UTC
        jar.set("theme", "dark")
        jar.delete("old")

        response = jar.apply(Response())

        assert response.get_cookies() == [
            "sid=abc; Expires=Tue, 01 Jan 2030 00:00:00 GMT; Path=/; HttpOnly; SameSite=Lax",
            "theme=dark; Path=/; HttpOnly; SameSite=Lax",
            "old=; Max-Age=0; Path=/",
        ]
