"""
=============================================================================
HTTPEXCHANGE
=============================================================================

Request snapshot and single-emission response composer for lightweight
Python web frameworks.

    from httpexchange import ExchangeApp

    def items(request, response):
        response.set_body(f"sort={request.get_param('sort', 'none')}")

    app = ExchangeApp(items)      # any WSGI server can host this

=============================================================================
PACKAGE LAYOUT
=============================================================================

    httpexchange/
    ├── http/
    │   ├── headers.py        Header normalization, Accept negotiation
    │   ├── request.py        RequestContext
    │   ├── response.py       ResponseComposer, Emission
    │   ├── cache.py          Cache-Control / Expires / Pragma
    │   ├── compression.py    gzip
    │   ├── status_codes.py   Status codes and reason phrases
    │   └── mime_types.py     Short name → MIME registry
    ├── exchange.py           exchange() scope, ExchangeApp (WSGI)
    ├── session.py            Cookie sessions
    ├── access_log.py         Access log entries
    ├── config.py             ExchangeConfig, logging setup
    └── exceptions.py         Error hierarchy

=============================================================================
"""

__version__ = "1.0.0"

from .config import ExchangeConfig, configure_logging
from .exceptions import (
    ExchangeError,
    InvalidBodyType,
    UnsupportedContentType,
    UnsupportedCharset,
    ResponseAlreadySent,
    AlreadyStarted,
)
from .http.request import RequestContext
from .http.response import ResponseComposer, Emission
from .exchange import exchange, ExchangeApp
from .session import Session, SessionStore, CookieSession

__all__ = [
    "ExchangeConfig",
    "configure_logging",
    "ExchangeError",
    "InvalidBodyType",
    "UnsupportedContentType",
    "UnsupportedCharset",
    "ResponseAlreadySent",
    "AlreadyStarted",
    "RequestContext",
    "ResponseComposer",
    "Emission",
    "exchange",
    "ExchangeApp",
    "Session",
    "SessionStore",
    "CookieSession",
    "__version__",
]
