"""
=============================================================================
RESPONSE COMPOSER
=============================================================================

Accumulates status, headers, content type and body for one request, then
emits them exactly once.

=============================================================================
LIFECYCLE
=============================================================================

    ┌──────────────┐   set_request()   ┌──────────────┐   send()   ┌──────┐
    │   created    │ ────────────────► │   seeded     │ ─────────► │ sent │
    └──────────────┘                   └──────┬───────┘            └──┬───┘
                                              │                       │
                                   set_status, set_header,      send() again
                                   set_body, set_cache_headers   → None
                                   ...  (all return self)        mutators
                                                                 → ResponseAlreadySent

Seeding from the request decides a few things up front:

    HEAD (as received)        → body is not emitted, even if overridden
    ?content_type=json        → content type, if allowed
    Accept: application/json  → otherwise negotiated against allowed types
    Accept-Encoding: gzip     → body gzip-encoded at send time
    X-Requested-With: XHR     → no-cache + nosniff + X-Frame-Options: DENY

=============================================================================
EMISSION
=============================================================================

send() freezes the composer into an Emission:

    HTTP/1.1 200 OK                             ← protocol of the request
    Content-Type: application/json; charset=UTF-8
    Cache-Control: no-cache, must-revalidate, max-age=0   ← if none was set
    Expires: Thu, 19 Nov 1981 08:52:00 GMT
    Pragma: no-cache
    X-Custom: ...                               ← insertion order
    Content-Encoding: gzip                      ← only when gzipping
    Vary: Accept-Encoding
    Content-Length: 42

    <body>                                      ← dropped for HEAD/redirect

If an emitter callable was given it receives the Emission, once. The
composer can be sent from several exit paths (normal return, error
handler, shutdown hook); only the first call does anything.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union
import codecs
import logging
import threading

from ..config import ExchangeConfig
from ..exceptions import (
    InvalidBodyType,
    ResponseAlreadySent,
    UnsupportedCharset,
    UnsupportedContentType,
)
from .cache import build_cache_headers
from .compression import accepts_gzip, add_vary, gzip_body
from .headers import accept
from .mime_types import DEFAULT_CONTENT_TYPES
from .request import RequestContext
from .status_codes import HTTPStatus, normalize_protocol, reason_phrase


logger = logging.getLogger(__name__)

Emitter = Callable[["Emission"], Any]

_UNSET = object()


@dataclass
class Emission:
    """
    The frozen result of ResponseComposer.send().

    Attributes:
        protocol: "HTTP/1.0" or "HTTP/1.1"
        status: Numeric status code
        reason: Reason phrase ("" for unknown codes)
        headers: (name, value) pairs in emission order
        body: Encoded body bytes (empty when the body is suppressed)
    """

    protocol: str = "HTTP/1.1"
    status: int = 200
    reason: str = "OK"
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE

        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{self.protocol} {self.status} {self.reason}"

    @property
    def wsgi_status(self) -> str:
        """Status string for WSGI start_response(), e.g. "200 OK"."""
        return f"{self.status} {self.reason}"

    def get_header(self, name: str) -> Optional[str]:
        """Case-insensitive lookup of an emitted header (last one wins)."""
        value = None
        for key, val in self.headers:
            if key.lower() == name.lower():
                value = val
        return value

    def to_bytes(self) -> bytes:
        """
        Serialize to raw HTTP for writing straight to a socket.

            HTTP/1.1 200 OK\\r\\n
            Content-Type: text/html; charset=UTF-8\\r\\n
            Content-Length: 5\\r\\n
            \\r\\n
            hello
        """
        lines = [self.status_line]
        for name, value in self.headers:
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return header_bytes + self.body


class ResponseComposer:
    """
    Mutable response builder with a single emission.

    =========================================================================
    USAGE
    =========================================================================

        response = ResponseComposer(request)
        response.set_status(201) \\
                .set_header("Location", "/items/7") \\
                .set_body('{"id": 7}')
        emission = response.send()

        response.send()             # None: already sent
        response.set_status(500)    # raises ResponseAlreadySent

    =========================================================================
    CONTENT TYPES
    =========================================================================

    content_type holds a short name from the allowed table ("json",
    "html", ...) or None. None emits the configured default MIME type.
    set_content_type() accepts a short name or the matching MIME type.

    =========================================================================
    OWNERSHIP
    =========================================================================

    A composer belongs to one request and one handler. Only send() is
    safe to call from several threads; the mutators are not.

    =========================================================================
    """

    def __init__(
        self,
        request: Optional[RequestContext] = None,
        *,
        config: Optional[ExchangeConfig] = None,
        emitter: Optional[Emitter] = None,
    ):
        self.config = config or ExchangeConfig()
        self.emitter = emitter

        self.content_types: dict[str, str] = dict(
            self.config.allowed_content_types or DEFAULT_CONTENT_TYPES
        )

        self.status: Optional[int] = None
        self.content_type: Optional[str] = None
        self.charset: str = _check_charset(self.config.charset)
        self.headers: dict[str, str] = {}
        self.body: bytes = b""
        self.gzip: bool = False
        self.send_body: bool = True
        self.protocol: str = normalize_protocol(self.config.default_protocol)
        self.request: Optional[RequestContext] = None

        self._head_request = False
        self._sent = False
        self._emission: Optional[Emission] = None
        self._lock = threading.Lock()

        if request is not None:
            self.set_request(request)

    def __repr__(self) -> str:
        return (
            f"ResponseComposer(status={self.status!r}, "
            f"content_type={self.content_type!r}, sent={self._sent})"
        )

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def sent(self) -> bool:
        return self._sent

    @property
    def emission(self) -> Optional[Emission]:
        """The Emission produced by send(), or None before sending."""
        return self._emission

    @property
    def mime_type(self) -> str:
        """Full MIME type that will be emitted."""
        if self.content_type is not None:
            return self.content_types[self.content_type]
        return self.config.default_content_type

    @property
    def text(self) -> str:
        """Body decoded with the current charset."""
        return self.body.decode(self.charset, errors="replace")

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name, default)

    def _check_not_sent(self) -> None:
        if self._sent:
            raise ResponseAlreadySent("Response has already been sent")

    # =========================================================================
    # SEEDING
    # =========================================================================

    def set_request(self, request: RequestContext) -> "ResponseComposer":
        """
        Seed defaults from the current request.

        Args:
            request: Context of the request being answered.

        Returns:
            self
        """
        self._check_not_sent()

        self.request = request
        self.protocol = request.protocol
        self._head_request = request.ambient_method == "HEAD"
        self.send_body = not self._head_request

        requested = request.get_param("content_type")
        if requested is None or not self.maybe_set_content_type(requested):
            negotiated = accept(request.headers, self.content_types)
            if negotiated is not None:
                self.content_type = self._short_name(negotiated)

        if self.config.gzip_enabled and accepts_gzip(request.headers):
            self.gzip = True

        if request.is_xhr:
            self.set_cache_headers(False)
            self.nosniff()
            self.deny_iframes()

        return self

    # =========================================================================
    # STATUS AND CONTENT TYPE
    # =========================================================================

    def set_status(self, code: Union[int, HTTPStatus]) -> "ResponseComposer":
        self._check_not_sent()
        self.status = int(code)
        return self

    def _short_name(self, content_type: str) -> Optional[str]:
        """Resolve a short name or allowed MIME type to its short name."""
        if content_type in self.content_types:
            return content_type
        for name, mime in self.content_types.items():
            if mime == content_type:
                return name
        return None

    def is_content_type(self, content_type: str) -> bool:
        """Check whether content_type (short name or MIME) may be emitted."""
        return self._short_name(content_type) is not None

    def maybe_set_content_type(self, content_type: str) -> bool:
        """
        Set the content type only if it is allowed.

        Returns:
            True if set, False if content_type is not in the allowed table.
        """
        self._check_not_sent()
        name = self._short_name(content_type)
        if name is None:
            return False
        self.content_type = name
        return True

    def set_content_type(self, content_type: str) -> "ResponseComposer":
        """
        Set the content type.

        Raises:
            UnsupportedContentType: if not in the allowed table.
        """
        if not self.maybe_set_content_type(content_type):
            raise UnsupportedContentType(content_type)
        return self

    def set_charset(self, charset: str) -> "ResponseComposer":
        """
        Change the charset, transcoding a body that is already set.

        Raises:
            UnsupportedCharset: if the charset is unknown, or the current
                body can't be represented in it. The charset is then
                left unchanged.
        """
        self._check_not_sent()
        _check_charset(charset)

        if self.body:
            try:
                self.body = self.body.decode(self.charset).encode(charset)
            except UnicodeError as e:
                raise UnsupportedCharset(charset, f"body can't be transcoded: {e}") from e

        self.charset = charset
        return self

    # =========================================================================
    # HEADERS
    # =========================================================================

    def set_header(self, name: str, value: Any, overwrite: bool = True) -> "ResponseComposer":
        """Set a header. With overwrite=False an existing value is kept."""
        self._check_not_sent()
        if overwrite or name not in self.headers:
            self.headers[name] = str(value)
        return self

    def set_headers(self, headers: Mapping[str, Any], overwrite: bool = True) -> "ResponseComposer":
        for name, value in headers.items():
            self.set_header(name, value, overwrite)
        return self

    def add_header(self, name: str, value: Any) -> "ResponseComposer":
        """Set a header unless it is already present."""
        return self.set_header(name, value, overwrite=False)

    def add_headers(self, headers: Mapping[str, Any]) -> "ResponseComposer":
        return self.set_headers(headers, overwrite=False)

    def remove_header(self, name: str) -> "ResponseComposer":
        self._check_not_sent()
        self.headers.pop(name, None)
        return self

    def set_cache_headers(self, ttl: Any = _UNSET) -> "ResponseComposer":
        """
        Set Cache-Control, Expires and Pragma for a TTL in seconds.

        A falsy or non-numeric ttl disables caching and removes any
        Last-Modified header. Without an argument the configured default
        TTL is used.
        """
        self._check_not_sent()
        if ttl is _UNSET:
            ttl = self.config.default_cache_ttl

        directives = build_cache_headers(ttl)
        if directives.clear_last_modified:
            self.headers.pop("Last-Modified", None)

        return self.set_headers(directives.headers)

    def nocache(self) -> "ResponseComposer":
        return self.set_cache_headers(False)

    def set_frame_options_header(self, value: Union[str, bool] = "SAMEORIGIN") -> "ResponseComposer":
        """
        Set X-Frame-Options.

        "deny" (any case) or False gives DENY; everything else SAMEORIGIN.
        """
        if value is False or (isinstance(value, str) and value.upper() == "DENY"):
            option = "DENY"
        else:
            option = "SAMEORIGIN"
        return self.set_header("X-Frame-Options", option)

    def deny_iframes(self) -> "ResponseComposer":
        return self.set_frame_options_header("DENY")

    def sameorigin_iframes(self) -> "ResponseComposer":
        return self.set_frame_options_header("SAMEORIGIN")

    def set_content_type_options_header(self, value: str = "nosniff") -> "ResponseComposer":
        return self.set_header("X-Content-Type-Options", value)

    def nosniff(self) -> "ResponseComposer":
        return self.set_content_type_options_header("nosniff")

    # =========================================================================
    # BODY
    # =========================================================================

    def _encode(self, value: Any) -> bytes:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, str):
            return value.encode(self.charset)
        if isinstance(value, (int, float)) or type(value).__str__ is not object.__str__:
            return str(value).encode(self.charset)
        raise InvalidBodyType(value)

    def set_body(self, value: Any, how: str = "replace") -> "ResponseComposer":
        """
        Set the body.

        Args:
            value: str, bytes, a number, or an object with its own __str__.
            how: "replace" (default), "append"/"after" or "prepend"/"before".
                 Unknown values replace.

        Raises:
            InvalidBodyType: for None, containers and plain objects.
        """
        self._check_not_sent()
        data = self._encode(value)

        how = how.lower()
        if how in ("append", "after"):
            self.body += data
        elif how in ("prepend", "before"):
            self.body = data + self.body
        else:
            self.body = data

        return self

    def add_body(self, value: Any, how: str = "append") -> "ResponseComposer":
        return self.set_body(value, how)

    # =========================================================================
    # REDIRECT AND SEND
    # =========================================================================

    def redirect(
        self,
        url: str,
        status: Optional[int] = None,
        send: bool = True,
    ) -> "ResponseComposer":
        """
        Redirect the client to url.

        Only a 3xx status (301-399) is applied; otherwise send() falls back
        to 302 because Location is set. The body is never emitted.
        """
        self.set_header("Location", url)
        self.send_body = False

        if status is not None and 300 < int(status) < 400:
            self.set_status(status)

        if send:
            self.send()

        return self

    def send(self) -> Optional[Emission]:
        """
        Emit the response.

        Thread-safe. The first call builds the Emission and passes it to
        the emitter; every later call returns None.
        """
        with self._lock:
            if self._sent:
                logger.debug("send() called on an already sent response")
                return None

            emission = self._build_emission()
            self._sent = True
            self._emission = emission

        logger.debug(f"Sending {emission.status_line}")

        if self.emitter is not None:
            self.emitter(emission)

        return emission

    def _build_emission(self) -> Emission:
        if "Cache-Control" not in self.headers:
            self.nocache()

        if self.status is None:
            self.status = HTTPStatus.FOUND if "Location" in self.headers else HTTPStatus.OK
        status = int(self.status)

        headers = {"Content-Type": f"{self.mime_type}; charset={self.charset}"}
        for name, value in self.headers.items():
            if name.lower() not in ("content-type", "content-length"):
                headers[name] = value

        body = self.body
        encoded = any(name.lower() == "content-encoding" for name in headers)
        if self.gzip and body and not encoded:
            body = gzip_body(body, self.config.gzip_level)
            headers["Content-Encoding"] = "gzip"
            add_vary(headers)

        # HEAD advertises the length of the body it would have sent
        if self.send_body or self._head_request:
            headers["Content-Length"] = str(len(body))
        else:
            headers["Content-Length"] = "0"

        return Emission(
            protocol=self.protocol,
            status=status,
            reason=reason_phrase(status),
            headers=list(headers.items()),
            body=body if self.send_body else b"",
        )


def _check_charset(charset: str) -> str:
    """Return charset if Python has a codec for it, else raise UnsupportedCharset."""
    try:
        codecs.lookup(charset)
    except (LookupError, TypeError) as e:
        raise UnsupportedCharset(charset) from e
    return charset
