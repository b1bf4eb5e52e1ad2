"""
Unit tests for header normalization and Accept negotiation.
"""

import pytest

from httpexchange.http.headers import (
    normalize_headers,
    normalize_name,
    is_environ,
    match,
    accept,
    accept_encoding,
)
from httpexchange.http.mime_types import DEFAULT_CONTENT_TYPES


class TestNormalizeName:
    """Tests for single header name canonicalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("HTTP_ACCEPT_ENCODING", "accept-encoding"),
        ("Accept-Encoding", "accept-encoding"),
        ("accept_encoding", "accept-encoding"),
        ("CONTENT_TYPE", "content-type"),
        ("X-Requested-With", "x-requested-with"),
    ])
    def test_canonical_form(self, raw, expected):
        assert normalize_name(raw) == expected


class TestNormalizeHeaders:
    """Tests for environ and header-map normalization."""

    def test_environ_keeps_only_headers(self, make_environ):
        """CGI variables are dropped, HTTP_* and the allowlist survive."""
        environ = make_environ(
            method="POST",
            headers={"Accept": "text/html", "X-Requested-With": "XMLHttpRequest"},
            body=b"a=1",
            content_type="application/x-www-form-urlencoded",
        )

        headers = normalize_headers(environ)

        assert headers == {
            "accept": "text/html",
            "x-requested-with": "XMLHttpRequest",
            "content-type": "application/x-www-form-urlencoded",
            "content-length": "3",
        }

    def test_header_map_is_lowercased(self):
        """A host-parsed header map keeps every header."""
        headers = normalize_headers({"Accept-Encoding": "gzip", "X_Custom": "1"})

        assert headers == {"accept-encoding": "gzip", "x-custom": "1"}

    def test_environ_detection(self):
        assert is_environ({"HTTP_ACCEPT": "*/*"})
        assert is_environ({"REQUEST_METHOD": "GET"})
        assert not is_environ({"Accept": "*/*"})

    def test_forced_environ_mode(self):
        """Unprefixed non-header keys are dropped when environ is forced."""
        headers = normalize_headers({"Accept": "*/*", "CONTENT_TYPE": "text/plain"}, environ=True)

        assert headers == {"content-type": "text/plain"}

    def test_empty_and_none_sources(self):
        assert normalize_headers(None) == {}
        assert normalize_headers({}) == {}

    def test_none_values_skipped(self):
        assert normalize_headers({"Accept": None, "Host": "a"}) == {"host": "a"}

    def test_last_duplicate_wins(self):
        """Two spellings of one header collapse to the later value."""
        headers = normalize_headers({"HTTP_ACCEPT": "a", "http-accept": "b"})

        assert headers == {"accept": "b"}

    def test_fresh_result_per_call(self, make_environ):
        """Two requests never share a header map."""
        first = normalize_headers(make_environ(headers={"Accept": "text/xml"}))
        second = normalize_headers(make_environ(headers={"Accept": "application/json"}))

        assert first["accept"] == "text/xml"
        assert second["accept"] == "application/json"
        assert first is not second


class TestMatch:
    """Tests for CSV header matching."""

    def test_missing_header(self):
        assert match(None, ["json"]) is None
        assert match(None, search="gzip") is None

    def test_search_mode(self):
        assert match("gzip, deflate", search="gzip") is True
        assert match("deflate, br", search="gzip") is False

    def test_no_candidates_returns_raw(self):
        assert match("gzip, deflate") == "gzip, deflate"

    def test_first_listed_candidate_wins(self):
        """Client order decides, not table order."""
        value = "text/xml, application/json"

        assert match(value, DEFAULT_CONTENT_TYPES) == "text/xml"

    def test_tokens_are_stripped(self):
        assert match("text/plain,   application/json", ["application/json"]) == "application/json"

    def test_mapping_keys_match_too(self):
        assert match("json", DEFAULT_CONTENT_TYPES) == "json"

    def test_quality_values_not_interpreted(self):
        """'text/html;q=0.9' is its own token and matches nothing."""
        assert match("text/html;q=0.9", DEFAULT_CONTENT_TYPES) is None

    def test_no_match(self):
        assert match("image/png, */*", DEFAULT_CONTENT_TYPES) is None


class TestAcceptHelpers:
    """Tests for accept() and accept_encoding()."""

    def test_accept(self):
        headers = {"accept": "application/json, text/html"}

        assert accept(headers, DEFAULT_CONTENT_TYPES) == "application/json"
        assert accept({}, DEFAULT_CONTENT_TYPES) is None

    def test_accept_encoding(self):
        headers = {"accept-encoding": "gzip, deflate"}

        assert accept_encoding(headers, "gzip") is True
        assert accept_encoding(headers) == "gzip, deflate"
        assert accept_encoding({}, "gzip") is None
