"""
Unit tests for the exchange scope, the WSGI adapter and access logging.
"""

import json
import logging
import pytest

from httpexchange import ExchangeConfig
from httpexchange.access_log import RequestLog, log_exchange
from httpexchange.exchange import ExchangeApp, exchange
from httpexchange.http.response import Emission


class StartResponse:
    """Records the arguments WSGI start_response() was called with."""

    def __init__(self):
        self.calls = []

    def __call__(self, status, headers, exc_info=None):
        self.calls.append((status, headers))


class TestExchangeScope:
    """Tests for exchange()."""

    def test_sends_on_normal_exit(self, make_environ, config, emitted):
        with exchange(make_environ(), config=config, emitter=emitted.append) as (request, response):
            response.set_body("done")

        assert len(emitted) == 1
        assert emitted[0].body == b"done"
        assert response.sent

    def test_handler_send_not_repeated(self, make_environ, config, emitted):
        with exchange(make_environ(), config=config, emitter=emitted.append) as (request, response):
            response.redirect("/next")

        assert len(emitted) == 1
        assert emitted[0].status == 302

    def test_exception_sends_500_and_reraises(self, make_environ, config, emitted):
        with pytest.raises(ValueError):
            with exchange(make_environ(), config=config, emitter=emitted.append):
                raise ValueError("boom")

        assert len(emitted) == 1
        assert emitted[0].status == 500

    def test_exception_after_send_keeps_status(self, make_environ, config, emitted):
        with pytest.raises(RuntimeError):
            with exchange(make_environ(), config=config, emitter=emitted.append) as (request, response):
                response.set_status(201).send()
                raise RuntimeError("late")

        assert [e.status for e in emitted] == [201]

    def test_method_override_from_config(self, make_environ, emitted):
        environ = make_environ(method="POST", query="_method=PUT")
        config = ExchangeConfig(allow_method_override=False, access_log=False)

        with exchange(environ, config=config) as (request, response):
            assert request.method == "POST"

    def test_request_id_header(self, make_environ, config, emitted):
        with exchange(make_environ(), config=config, emitter=emitted.append):
            pass

        assert len(emitted[0].get_header("X-Request-ID")) == 8

    def test_access_log_written(self, make_environ, emitted, caplog):
        config = ExchangeConfig(access_log=True)

        with caplog.at_level(logging.INFO, logger="httpexchange.access"):
            with exchange(make_environ(path="/api/items"), config=config):
                pass

        assert any('"GET /api/items" 200' in r.getMessage() for r in caplog.records)


class TestExchangeApp:
    """Tests for the WSGI adapter."""

    def test_wsgi_response(self, make_environ, config):
        def handler(request, response):
            response.set_content_type("json").set_body('{"ok": true}')

        start_response = StartResponse()
        body = ExchangeApp(handler, config)(make_environ(), start_response)

        status, headers = start_response.calls[0]
        assert status == "200 OK"
        assert ("Content-Type", "application/json; charset=UTF-8") in headers
        assert b"".join(body) == b'{"ok": true}'

    def test_handler_error_becomes_500(self, make_environ, config, caplog):
        def handler(request, response):
            raise KeyError("missing")

        start_response = StartResponse()
        with caplog.at_level(logging.ERROR):
            ExchangeApp(handler, config)(make_environ(), start_response)

        assert start_response.calls[0][0] == "500 Internal Server Error"
        assert len(start_response.calls) == 1
        assert "Unhandled error in handler" in caplog.text

    def test_head_request(self, make_environ, config):
        def handler(request, response):
            response.set_body("hello")

        start_response = StartResponse()
        body = ExchangeApp(handler, config)(make_environ(method="HEAD"), start_response)

        assert b"".join(body) == b""
        assert ("Content-Length", "5") in start_response.calls[0][1]


class TestRequestLog:
    """Tests for access log formatting."""

    def make_entry(self, **overrides) -> RequestLog:
        values = dict(
            request_id="abcd1234",
            method="GET",
            path="/api/items",
            query="sort=asc",
            client_ip="127.0.0.1",
            user_agent="pytest",
            status_code=200,
            content_length=27,
            duration_ms=1.234,
            timestamp="2026-01-15T12:00:00Z",
        )
        values.update(overrides)
        return RequestLog(**values)

    def test_to_text(self):
        assert self.make_entry().to_text() == (
            '127.0.0.1 - - [2026-01-15T12:00:00Z] "GET /api/items?sort=asc" 200 27 1.23ms'
        )

    def test_to_dict_rounds_duration(self):
        assert self.make_entry().to_dict()["duration_ms"] == 1.23

    def test_build(self, make_request):
        request = make_request(path="/x", headers={"User-Agent": "curl"})
        emission = Emission(status=404, reason="Not Found", body=b"nope")

        entry = RequestLog.build("id", request, emission, 2.0, {"REMOTE_ADDR": "10.0.0.1"})

        assert entry.path == "/x"
        assert entry.user_agent == "curl"
        assert entry.client_ip == "10.0.0.1"
        assert entry.status_code == 404
        assert entry.content_length == 4

    def test_json_output(self, caplog):
        with caplog.at_level(logging.INFO, logger="httpexchange.access"):
            log_exchange(self.make_entry(), "json")

        assert json.loads(caplog.records[-1].getMessage())["request_id"] == "abcd1234"

    def test_server_errors_logged_as_warning(self, caplog):
        with caplog.at_level(logging.INFO, logger="httpexchange.access"):
            log_exchange(self.make_entry(status_code=503))

        assert caplog.records[-1].levelno == logging.WARNING
