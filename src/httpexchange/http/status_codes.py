"""
=============================================================================
HTTP STATUS CODES
=============================================================================

Status codes the composer knows a reason phrase for, and the helpers
that turn a code into a status line.

=============================================================================
THE STATUS LINE
=============================================================================

    HTTP/1.1 404 Not Found
    ───┬──── ─┬─ ────┬────
       │      │      │
    Protocol Code  Reason phrase (looked up in _STATUS_PHRASES)

The reason phrase is informational only (RFC 7230 §3.1.2), clients must
not depend on it. That is why an unknown code is still emitted with an
EMPTY phrase instead of being rejected or rewritten:

    reason_phrase(299)  →  ""
    status_line("HTTP/1.1", 299)  →  "HTTP/1.1 299 "

=============================================================================
PROTOCOL NORMALIZATION
=============================================================================

Only HTTP/1.0 and HTTP/1.1 are echoed back. Anything else the server
reports (missing, "HTTP/2", "INCLUDED") falls back to HTTP/1.0, the
safest version to claim on a status line.

=============================================================================
"""

from enum import IntEnum
from typing import Optional, Union


SUPPORTED_PROTOCOLS = ("HTTP/1.0", "HTTP/1.1")
FALLBACK_PROTOCOL = "HTTP/1.0"


class HTTPStatus(IntEnum):
    """
    Known HTTP status codes.

    Being an IntEnum, members compare equal to plain ints:

        >>> HTTPStatus.FOUND == 302
        True
        >>> HTTPStatus.FOUND.phrase
        'Found'
    """

    # 1xx
    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101
    PROCESSING = 102

    # 2xx
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NON_AUTHORITATIVE_INFORMATION = 203
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206
    MULTI_STATUS = 207
    IM_USED = 226

    # 3xx
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    USE_PROXY = 305
    RESERVED = 306              # Unused since RFC 2616
    TEMPORARY_REDIRECT = 307

    # 4xx
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    PAYMENT_REQUIRED = 402
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    PROXY_AUTHENTICATION_REQUIRED = 407
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PRECONDITION_FAILED = 412
    REQUEST_ENTITY_TOO_LARGE = 413
    REQUEST_URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    REQUESTED_RANGE_NOT_SATISFIABLE = 416
    EXPECTATION_FAILED = 417
    UNPROCESSABLE_ENTITY = 422
    LOCKED = 423
    FAILED_DEPENDENCY = 424
    UPGRADE_REQUIRED = 426

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505
    VARIANT_ALSO_NEGOTIATES = 506
    INSUFFICIENT_STORAGE = 507
    NOT_EXTENDED = 510

    @property
    def phrase(self) -> str:
        """Reason phrase for this code."""
        return _STATUS_PHRASES[self]

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_error(self) -> bool:
        return self >= 400


# Wording follows RFC 2616 (413/414/416 kept under their older names).
_STATUS_PHRASES = {
    HTTPStatus.CONTINUE: "Continue",
    HTTPStatus.SWITCHING_PROTOCOLS: "Switching Protocols",
    HTTPStatus.PROCESSING: "Processing",

    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.ACCEPTED: "Accepted",
    HTTPStatus.NON_AUTHORITATIVE_INFORMATION: "Non-Authoritative Information",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.RESET_CONTENT: "Reset Content",
    HTTPStatus.PARTIAL_CONTENT: "Partial Content",
    HTTPStatus.MULTI_STATUS: "Multi-Status",
    HTTPStatus.IM_USED: "IM Used",

    HTTPStatus.MULTIPLE_CHOICES: "Multiple Choices",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.SEE_OTHER: "See Other",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.USE_PROXY: "Use Proxy",
    HTTPStatus.RESERVED: "Reserved",
    HTTPStatus.TEMPORARY_REDIRECT: "Temporary Redirect",

    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.UNAUTHORIZED: "Unauthorized",
    HTTPStatus.PAYMENT_REQUIRED: "Payment Required",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.NOT_ACCEPTABLE: "Not Acceptable",
    HTTPStatus.PROXY_AUTHENTICATION_REQUIRED: "Proxy Authentication Required",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.CONFLICT: "Conflict",
    HTTPStatus.GONE: "Gone",
    HTTPStatus.LENGTH_REQUIRED: "Length Required",
    HTTPStatus.PRECONDITION_FAILED: "Precondition Failed",
    HTTPStatus.REQUEST_ENTITY_TOO_LARGE: "Request Entity Too Large",
    HTTPStatus.REQUEST_URI_TOO_LONG: "Request-URI Too Long",
    HTTPStatus.UNSUPPORTED_MEDIA_TYPE: "Unsupported Media Type",
    HTTPStatus.REQUESTED_RANGE_NOT_SATISFIABLE: "Requested Range Not Satisfiable",
    HTTPStatus.EXPECTATION_FAILED: "Expectation Failed",
    HTTPStatus.UNPROCESSABLE_ENTITY: "Unprocessable Entity",
    HTTPStatus.LOCKED: "Locked",
    HTTPStatus.FAILED_DEPENDENCY: "Failed Dependency",
    HTTPStatus.UPGRADE_REQUIRED: "Upgrade Required",

    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
    HTTPStatus.BAD_GATEWAY: "Bad Gateway",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.GATEWAY_TIMEOUT: "Gateway Timeout",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
    HTTPStatus.VARIANT_ALSO_NEGOTIATES: "Variant Also Negotiates",
    HTTPStatus.INSUFFICIENT_STORAGE: "Insufficient Storage",
    HTTPStatus.NOT_EXTENDED: "Not Extended",
}


def reason_phrase(code: Union[int, HTTPStatus]) -> str:
    """
    Look up the reason phrase for a status code.

    Negative codes are treated by absolute value. Unknown codes return
    an empty string rather than raising.

    Examples:
        >>> reason_phrase(404)
        'Not Found'
        >>> reason_phrase(299)
        ''
    """
    try:
        return HTTPStatus(abs(int(code))).phrase
    except ValueError:
        return ""


def normalize_protocol(protocol: Optional[str]) -> str:
    """Return protocol if it is HTTP/1.0 or HTTP/1.1, else HTTP/1.0."""
    if protocol in SUPPORTED_PROTOCOLS:
        return protocol
    return FALLBACK_PROTOCOL


def status_line(protocol: Optional[str], code: Union[int, HTTPStatus]) -> str:
    """
    Build the response status line.

    Format: PROTOCOL SP CODE SP REASON. The line is produced even when
    the reason phrase is unknown (it is then empty).
    """
    code = int(code)
    return f"{normalize_protocol(protocol)} {code} {reason_phrase(code)}"
