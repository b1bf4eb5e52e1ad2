"""
=============================================================================
HTTP EXCHANGE PRIMITIVES
=============================================================================

The pieces one request/response exchange is built from:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   environ ──► headers.normalize_headers() ──► canonical headers    │
    │      │                                              │               │
    │      └──────► RequestContext.from_environ() ◄───────┘               │
    │                          │                                          │
    │                          ▼                                          │
    │               ResponseComposer.set_request()                        │
    │                  │  negotiation   (headers.accept)                  │
    │                  │  cache headers (cache.build_cache_headers)       │
    │                  │  gzip          (compression)                     │
    │                  ▼                                                  │
    │               send() ──► Emission (status line, headers, body)      │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .headers import normalize_headers, normalize_name, match, accept, accept_encoding
from .request import RequestContext, BodyStream, clean, parse_form
from .response import ResponseComposer, Emission
from .cache import CacheDirectives, build_cache_headers, format_http_date
from .status_codes import HTTPStatus, reason_phrase, status_line
from .mime_types import get_mime_type, short_name_for, DEFAULT_CONTENT_TYPES


__all__ = [
    # Headers
    "normalize_headers",
    "normalize_name",
    "match",
    "accept",
    "accept_encoding",

    # Request
    "RequestContext",
    "BodyStream",
    "clean",
    "parse_form",

    # Response
    "ResponseComposer",
    "Emission",

    # Cache
    "CacheDirectives",
    "build_cache_headers",
    "format_http_date",

    # Status codes
    "HTTPStatus",
    "reason_phrase",
    "status_line",

    # MIME types
    "get_mime_type",
    "short_name_for",
    "DEFAULT_CONTENT_TYPES",
]
