"""
Unit tests for Message and ClientRequest.
"""

import pytest

from httpkit.message import Message
from httpkit.request import ClientRequest
from httpkit.uri import Uri


class TestMessage:
    """Test protocol, header and body handling shared by all messages."""

    def test_defaults(self):
        message = Message()

        assert message.get_protocol_version() == "1.1"
        assert message.get_body() == b""
        assert message.get_headers() == {}

    @pytest.mark.parametrize("version,expected", [("1.0", "1.0"), ("1.1", "1.1"), ("2", "2.0"), ("2.0", "2.0")])
    def test_protocol_version(self, version, expected):
        assert Message().set_protocol_version(version).get_protocol_version() == expected

    def test_invalid_protocol_version(self):
        with pytest.raises(ValueError, match="Invalid HTTP protocol version"):
            Message(protocol_version="3.0")

    def test_body_accepts_str_and_none(self):
        message = Message(body="héllo")

        assert message.get_body() == "héllo".encode("utf-8")
        assert message.set_body(None).get_body() == b""

    def test_header_methods_chain(self):
        message = Message()
        message.set_header("Accept", "text/html").add_header("accept", "text/plain")

        assert message.get_header("ACCEPT") == ["text/html", "text/plain"]
        assert message.get_header_line("accept") == "text/html,text/plain"
        assert message.has_header("Accept")

        message.remove_header("accept")
        assert message.get_header("Accept") == []
        assert message.get_header_line("Accept") == ""

    def test_media_type_and_params(self):
        message = Message({"Content-Type": "Application/JSON; charset=UTF-8; version=2"})

        assert message.get_content_type() == "Application/JSON; charset=UTF-8; version=2"
        assert message.get_media_type() == "application/json"
        assert message.get_media_type_params() == {"charset": "UTF-8", "version": "2"}
        assert message.get_content_charset() == "UTF-8"

    def test_no_content_type(self):
        message = Message()

        assert message.get_content_type() is None
        assert message.get_media_type() is None
        assert message.get_media_type_params() == {}
        assert message.get_content_charset() is None

    def test_content_length(self):
        assert Message({"Content-Length": "12"}).get_content_length() == 12
        assert Message({"Content-Length": "abc"}).get_content_length() is None
        assert Message().get_content_length() is None

    def test_is_xhr(self):
        assert Message({"X-Requested-With": "XMLHttpRequest"}).is_xhr()
        assert not Message().is_xhr()


class TestClientRequest:
    """Test method, URI and request target handling."""

    def test_method_is_uppercased(self):
        request = ClientRequest(method="post")

        assert request.method == "POST"
        assert request.get_method() == "POST"

    def test_invalid_method(self):
        with pytest.raises(ValueError, match="Invalid HTTP method"):
            ClientRequest(method="FETCH")

    def test_host_header_from_uri(self):
        request = ClientRequest(Uri.parse("http://user:pw@example.com:8080/a"))

        assert request.get_header_line("Host") == "example.com:8080"

    def test_existing_host_header_is_kept(self):
        request = ClientRequest(Uri.parse("http://example.com/"), headers={"Host": "proxy.local"})

        assert request.get_header_line("host") == "proxy.local"

    def test_request_target(self):
        assert ClientRequest().get_request_target() == "/"
        assert ClientRequest(Uri.parse("http://example.com")).get_request_target() == "/"
        assert ClientRequest(Uri.parse("http://example.com/users?page=2")).get_request_target() == "/users?page=2"

    def test_repr(self):
        request = ClientRequest(Uri.parse("/items"), method="delete")

        assert repr(request) == "<ClientRequest DELETE /items>"
