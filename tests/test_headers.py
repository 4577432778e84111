"""
Unit tests for the httpkit Headers collection.
"""

import pytest

from httpkit.headers import Headers


class TestHeaderKeys:
    """Test header name normalization."""

    @pytest.mark.parametrize(
        "name",
        ["Content-Type", "content-type", "CONTENT_TYPE", "content_type", "HTTP_CONTENT_TYPE"],
    )
    def test_normalize_key(self, name):
        assert Headers.normalize_key(name) == "content-type"

    def test_lookup_is_case_insensitive(self):
        headers = Headers({"X-Foo": "bar"})

        assert headers.has("x-foo")
        assert headers.has("HTTP_X_FOO")
        assert "X_FOO" in headers
        assert headers.get("x-FOO") == ["bar"]

    def test_original_key_is_kept(self):
        headers = Headers({"X-Custom-Header": "1"})

        assert headers.get_original_key("x-custom-header") == "X-Custom-Header"
        assert headers.all() == {"X-Custom-Header": ["1"]}


class TestHeaderValues:
    """Test setting, adding and removing header values."""

    def test_set_replaces_values(self):
        headers = Headers()
        headers.set("Accept", "text/html").set("accept", ["application/json", "text/plain"])

        assert headers.get("Accept") == ["application/json", "text/plain"]
        assert len(headers) == 1

    def test_add_appends_values(self):
        headers = Headers({"Accept": "text/html"})
        headers.add("ACCEPT", "application/json")

        assert headers.get("accept") == ["text/html", "application/json"]
        assert headers.get_original_key("accept") == "Accept"

    def test_get_line_joins_values(self):
        headers = Headers({"Cache-Control": ["no-cache", "no-store"]})

        assert headers.get_line("cache-control") == "no-cache,no-store"
        assert headers.get_line("missing") == ""

    def test_get_missing_returns_default(self):
        headers = Headers()

        assert headers.get("missing") is None
        assert headers.get("missing", []) == []

    def test_values_are_strings(self):
        headers = Headers({"Content-Length": 42})

        assert headers.get("content-length") == ["42"]

    def test_remove(self):
        headers = Headers({"X-Foo": "bar"})
        headers.remove("x_foo")

        assert not headers.has("X-Foo")
        # removing a missing header is a no-op
        headers.remove("X-Foo")

    def test_mapping_dunders(self):
        headers = Headers()
        headers["X-One"] = "1"

        assert headers["x-one"] == ["1"]
        assert list(headers) == ["X-One"]

        del headers["X-ONE"]
        assert len(headers) == 0

        with pytest.raises(KeyError):
            headers["x-one"]
        with pytest.raises(KeyError):
            del headers["x-one"]

    def test_equality_and_copy(self):
        headers = Headers({"A": "1"})
        copied = headers.copy()

        assert copied == headers
        copied.add("A", "2")
        assert copied != headers
        assert headers.get("a") == ["1"]


class TestHeaderSources:
    """Test building headers from ASGI scopes and CGI-style params."""

    def test_from_scope_keeps_repeated_headers(self):
        scope = {
            "headers": [
                (b"accept", b"text/html"),
                (b"x-forwarded-for", b"10.0.0.1"),
                (b"accept", b"application/json"),
            ]
        }

        headers = Headers.from_scope(scope)

        assert headers.get("Accept") == ["text/html", "application/json"]
        assert headers.get_line("X-Forwarded-For") == "10.0.0.1"

    def test_from_environ(self):
        environ = {
            "HTTP_HOST": "example.com",
            "HTTP_USER_AGENT": "pytest",
            "CONTENT_TYPE": "application/json",
            "HTTP_CONTENT_LENGTH": "99",
            "REMOTE_ADDR": "127.0.0.1",
        }

        headers = Headers.from_environ(environ)

        assert headers.get_line("host") == "example.com"
        assert headers.get_line("User-Agent") == "pytest"
        assert headers.get_line("Content-Type") == "application/json"
        assert not headers.has("content-length")
        assert not headers.has("remote-addr")

    def test_to_asgi(self):
        headers = Headers({"Set-Thing": ["a", "b"], "Content-Type": "text/plain"})

        assert headers.to_asgi() == [
            (b"set-thing", b"a"),
            (b"set-thing", b"b"),
            (b"content-type", b"text/plain"),
        ]

    def test_create_reuses_instance(self):
        headers = Headers()

        assert Headers.create(headers) is headers
        assert isinstance(Headers.create({"A": "1"}), Headers)
