"""
=============================================================================
EXCHANGE SCOPE
=============================================================================

Ties one RequestContext to one ResponseComposer and guarantees the
response goes out exactly once, however the handler exits.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  with exchange(environ) as (request, response):                     │
    │      handler(request, response)                                     │
    │                                                                     │
    │  handler returns          → send()                                  │
    │  handler already sent     → send() is a no-op                       │
    │  handler raises           → status 500, send(), exception re-raised │
    └─────────────────────────────────────────────────────────────────────┘

ExchangeApp wraps a handler as a WSGI application, so any WSGI server
(wsgiref, gunicorn, waitress...) can host it:

    def hello(request, response):
        response.set_content_type("json").set_body('{"hello": "world"}')

    app = ExchangeApp(hello)

=============================================================================
"""

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional
import logging
import time

from .access_log import RequestLog, log_exchange, new_request_id
from .config import ExchangeConfig
from .http.request import RequestContext
from .http.response import Emission, Emitter, ResponseComposer
from .http.status_codes import HTTPStatus, reason_phrase


logger = logging.getLogger(__name__)

Handler = Callable[[RequestContext, ResponseComposer], Any]


@contextmanager
def exchange(
    environ: Mapping[str, Any],
    *,
    config: Optional[ExchangeConfig] = None,
    emitter: Optional[Emitter] = None,
    form: Optional[Mapping[str, str]] = None,
) -> Iterator[tuple[RequestContext, ResponseComposer]]:
    """
    Open an exchange for one request.

    Args:
        environ: WSGI/CGI environ of the request.
        config: Exchange configuration (defaults to ExchangeConfig()).
        emitter: Called once with the Emission.
        form: Host-parsed POST form fields.

    Yields:
        (request, response)
    """
    config = config or ExchangeConfig()
    start_time = time.time()

    request = RequestContext.from_environ(
        environ,
        form=form,
        allow_method_override=config.allow_method_override,
    )
    response = ResponseComposer(request, config=config, emitter=emitter)

    request_id = new_request_id()
    response.set_header("X-Request-ID", request_id)

    try:
        yield request, response
    except Exception as e:
        if not response.sent:
            logger.error(
                f"Exchange failed: {request.method} /{request.path} "
                f"- {type(e).__name__}: {e}"
            )
            response.set_status(HTTPStatus.INTERNAL_SERVER_ERROR)
        raise
    finally:
        response.send()

        if config.access_log and response.emission is not None:
            duration_ms = (time.time() - start_time) * 1000
            entry = RequestLog.build(request_id, request, response.emission, duration_ms, environ)
            log_exchange(entry, config.log_format)


class ExchangeApp:
    """
    WSGI application running a handler inside exchange().

    The handler receives (request, response) and builds the response; its
    return value is ignored. Exceptions are logged and answered with 500.
    """

    def __init__(self, handler: Handler, config: Optional[ExchangeConfig] = None):
        self.handler = handler
        self.config = config or ExchangeConfig()

    def __call__(self, environ: dict, start_response: Callable) -> list[bytes]:
        emitted: list[Emission] = []

        try:
            with exchange(environ, config=self.config, emitter=emitted.append) as (request, response):
                self.handler(request, response)
        except Exception:
            logger.exception("Unhandled error in handler")

        if emitted:
            emission = emitted[0]
        else:
            status = int(HTTPStatus.INTERNAL_SERVER_ERROR)
            emission = Emission(
                status=status,
                reason=reason_phrase(status),
                headers=[("Content-Length", "0")],
            )

        start_response(emission.wsgi_status, emission.headers)
        return [emission.body]
