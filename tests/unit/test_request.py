"""
Unit tests for RequestContext construction and accessors.
"""

import io
import pytest
from dataclasses import FrozenInstanceError

from httpexchange.http.request import (
    RequestContext,
    BodyStream,
    clean,
    parse_form,
    resolve_method,
)


class TestClean:
    """Tests for URI component sanitizing."""

    def test_trims_slashes(self):
        assert clean("/api/items/") == "api/items"

    def test_strips_tags(self):
        assert clean("/a<script>alert(1)</script>b") == "aalert(1)b"

    def test_unclosed_tag_swallows_rest(self):
        assert clean("abc<def") == "abc"

    def test_encodes_quotes(self):
        assert clean("it's \"here\"") == "it&#39;s &#34;here&#34;"

    def test_drops_control_and_high_characters(self):
        assert clean("a\x00b\x7fcéd") == "abcd"

    def test_never_raises_on_empty(self):
        assert clean("") == ""


class TestParseForm:
    """Tests for urlencoded parsing."""

    def test_basic(self):
        assert parse_form("a=1&b=two") == {"a": "1", "b": "two"}

    def test_bytes(self):
        assert parse_form(b"name=widget") == {"name": "widget"}

    def test_blank_values_kept(self):
        assert parse_form("a=&b") == {"a": "", "b": ""}

    def test_last_duplicate_wins(self):
        assert parse_form("a=1&a=2") == {"a": "2"}

    def test_empty(self):
        assert parse_form("") == {}
        assert parse_form(None) == {}


class TestBodyStream:
    """Tests for the read-once body wrapper."""

    def test_second_read_is_empty(self):
        stream = BodyStream(io.BytesIO(b"hello"), 5)

        assert stream.read() == b"hello"
        assert stream.read() == b""
        assert stream.consumed

    def test_respects_length(self):
        assert BodyStream(io.BytesIO(b"hello world"), 5).read() == b"hello"

    def test_invalid_content_length(self):
        environ = {"wsgi.input": io.BytesIO(b"abc"), "CONTENT_LENGTH": "nope"}

        assert BodyStream.from_environ(environ).read() == b""

    def test_missing_stream(self):
        assert BodyStream(None, 10).read() == b""


class TestRequestPath:
    """Tests for path and query extraction."""

    def test_path_info(self, make_request):
        request = make_request(path="/api/items", query="sort=asc")

        assert request.path == "api/items"
        assert request.raw_query == "sort=asc"

    def test_path_is_url_decoded(self, make_request):
        assert make_request(path="/hello%20world").path == "hello world"

    def test_request_uri_fallback(self):
        environ = {
            "REQUEST_METHOD": "GET",
            "REQUEST_URI": "/api/items?sort=asc",
            "QUERY_STRING": "sort=asc",
        }

        request = RequestContext.from_environ(environ)

        assert request.path == "api/items"
        assert request.get_query("sort") == "asc"

    def test_query_is_sanitized(self, make_request):
        request = make_request(query="q=%3Cb%3Ebold%3C/b%3E")

        assert request.raw_query == "q=bold"
        # Parameter values are parsed from the raw query string
        assert request.get_query("q") == "<b>bold</b>"


class TestParams:
    """Tests for parameter sources and precedence."""

    def test_precedence(self, make_request):
        """query < body < path."""
        request = make_request(
            method="PUT",
            query="foo=1&a=x",
            body=b"foo=2",
        )

        assert request.get_param("foo") == "2"
        assert request.get_param("a") == "x"

        routed = request.with_path_params({"foo": "3"})

        assert routed.get_param("foo") == "3"
        assert routed.get_param("a") == "x"
        assert request.get_param("foo") == "2"

    def test_post_form_body(self, make_request):
        request = make_request(
            method="POST",
            body=b"name=widget",
            content_type="application/x-www-form-urlencoded; charset=UTF-8",
        )

        assert request.get_body_param("name") == "widget"
        assert request.body == b"name=widget"

    def test_post_non_form_body_left_unread(self, make_request):
        request = make_request(
            method="POST",
            body=b'{"name": "widget"}',
            content_type="application/json",
        )

        assert request.body_params == {}
        assert request.body_stream.read() == b'{"name": "widget"}'

    def test_post_with_host_form(self, make_environ):
        environ = make_environ(method="POST")

        request = RequestContext.from_environ(environ, form={"name": "given"})

        assert request.get_body_param("name") == "given"

    def test_injected_query_params(self, make_environ):
        environ = make_environ(query="a=1")

        request = RequestContext.from_environ(environ, query_params={"b": "2"})

        assert request.query_params == {"b": "2"}

    def test_malformed_body_is_not_an_error(self, make_request):
        request = make_request(method="PATCH", body=b"\xff\xfe&&==")

        assert isinstance(request.body_params, dict)

    def test_has_param_and_default(self, make_request):
        request = make_request(query="a=1")

        assert request.has_param("a")
        assert not request.has_param("b")
        assert request.get_param("b", "dflt") == "dflt"

    def test_path_param_accessor(self, make_request):
        request = make_request().with_path_params({"id": "7"})

        assert request.get_path_param("id") == "7"


class TestMethodOverride:
    """Tests for effective method resolution."""

    def test_ambient_method(self, make_request):
        assert make_request(method="post").method == "POST"

    def test_header_override(self, make_request):
        request = make_request(method="POST", headers={"X-HTTP-Method-Override": "put"})

        assert request.method == "PUT"
        assert request.ambient_method == "POST"

    def test_get_with_override_header(self, make_environ):
        environ = make_environ(method="GET", headers={"X-HTTP-Method-Override": "DELETE"})

        assert RequestContext.from_environ(environ).method == "DELETE"
        assert RequestContext.from_environ(environ, allow_method_override=False).method == "GET"

    def test_query_beats_header(self, make_request):
        request = make_request(
            method="POST",
            query="_method=DELETE",
            headers={"X-HTTP-Method-Override": "PUT"},
        )

        assert request.method == "DELETE"

    def test_override_disabled(self, make_environ):
        environ = make_environ(method="POST", query="_method=DELETE")

        request = RequestContext.from_environ(environ, allow_method_override=False)

        assert request.method == "POST"

    def test_without_method_override(self, make_request):
        request = make_request(method="POST", query="_method=delete")

        assert request.without_method_override().method == "POST"
        assert request.method == "DELETE"

    def test_blank_override_ignored(self):
        assert resolve_method("GET", {"x-http-method-override": "  "}, {}) == "GET"

    def test_default_method(self):
        assert resolve_method(None, {}, {}) == "GET"

    def test_method_checks(self, make_request):
        request = make_request(method="HEAD")

        assert request.is_head()
        assert request.is_method("head")
        assert not request.is_get()
        assert not request.is_post()


class TestRequestContext:
    """Tests for headers, flags and immutability."""

    def test_xhr(self, make_request):
        assert make_request(headers={"X-Requested-With": "XMLHttpRequest"}).is_xhr
        assert not make_request(headers={"X-Requested-With": "xmlhttprequest"}).is_xhr
        assert not make_request().is_xhr

    def test_get_header_any_spelling(self, make_request):
        request = make_request(headers={"Accept-Encoding": "gzip"})

        assert request.get_header("Accept-Encoding") == "gzip"
        assert request.get_header("HTTP_ACCEPT_ENCODING") == "gzip"
        assert request.get_header("X-Missing", "none") == "none"

    @pytest.mark.parametrize("protocol,expected", [
        ("HTTP/1.1", "HTTP/1.1"),
        ("HTTP/1.0", "HTTP/1.0"),
        ("HTTP/2", "HTTP/1.0"),
    ])
    def test_protocol(self, make_request, protocol, expected):
        assert make_request(protocol=protocol).protocol == expected

    def test_frozen(self, make_request):
        request = make_request()

        with pytest.raises(FrozenInstanceError):
            request.method = "POST"
