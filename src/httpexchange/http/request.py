"""
=============================================================================
REQUEST CONTEXT
=============================================================================

Builds an immutable snapshot of one incoming request from the ambient
WSGI/CGI environ.

=============================================================================
FROM ENVIRON TO CONTEXT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  environ                                                            │
    │    REQUEST_METHOD   = "POST"                                        │
    │    PATH_INFO        = "/api/items"                                  │
    │    QUERY_STRING     = "sort=asc&_method=PUT"                        │
    │    HTTP_ACCEPT      = "application/json"                            │
    │    CONTENT_TYPE     = "application/x-www-form-urlencoded"          │
    │    wsgi.input       = b"name=widget"                                │
    └───────────────────────────────┬─────────────────────────────────────┘
                                    │  RequestContext.from_environ()
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  RequestContext                                                     │
    │    method        = "PUT"          (override via _method)           │
    │    ambient_method= "POST"                                           │
    │    path          = "api/items"    (decoded, cleaned, trimmed)      │
    │    raw_query     = "sort=asc&_method=PUT"                           │
    │    headers       = {"accept": ..., "content-type": ...}            │
    │    query_params  = {"sort": "asc", "_method": "PUT"}                │
    │    body_params   = {"name": "widget"}                               │
    │    path_params   = {}             (router attaches these later)    │
    │    params        = query ◄─ body ◄─ path   (later wins)            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARAMETER PRECEDENCE
=============================================================================

    query  {"foo": "1", "a": "x"}
    body   {"foo": "2"}                 → params {"foo": "2", "a": "x"}
    path   {"foo": "3"}  (attached)     → params {"foo": "3", "a": "x"}

The merge is recomputed from the three sources on every access, so it
can never drift from them.

=============================================================================
METHOD OVERRIDE
=============================================================================

HTML forms can only GET or POST. When override is allowed, the client
may name another verb:

    1. start from REQUEST_METHOD
    2. X-HTTP-Method-Override header, if present   → replaces it
    3. _method query parameter, if present         → replaces that
    4. strip + uppercase

So the query parameter beats the header when both are sent.

=============================================================================
THE BODY STREAM
=============================================================================

wsgi.input is a socket-backed stream: it can be read once. BodyStream
wraps it so a second read returns b"" instead of blocking, which is what
an exhausted stream does anyway. Bodies that were parsed during
construction stay available as RequestContext.body.

=============================================================================
"""

from dataclasses import dataclass, field, replace
from typing import Any, BinaryIO, Mapping, Optional, Union
from urllib.parse import parse_qsl, unquote
import logging
import re

from .headers import normalize_headers, normalize_name
from .status_codes import normalize_protocol


logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# An opening "<" swallows everything up to ">" or the end of the string.
_TAG_PATTERN = re.compile(r"<[^>]*(?:>|$)")
_STRIP_PATTERN = re.compile(r"[\x00-\x1f\x7f-\U0010ffff]")


def clean(value: str) -> str:
    """
    Crude sanitizer for URI components.

    Strips markup, encodes quotes as numeric entities, drops control and
    non-ASCII characters and trims surrounding slashes. It transforms,
    it never rejects.

    Examples:
        >>> clean("/api/items/")
        'api/items'
        >>> clean("/<script>x</script>")
        'x'
        >>> clean('say "hi"')
        'say &#34;hi&#34;'
    """
    value = _TAG_PATTERN.sub("", value)
    value = value.replace('"', "&#34;").replace("'", "&#39;")
    value = _STRIP_PATTERN.sub("", value)
    return value.strip("/")


def parse_form(data: Union[str, bytes, None]) -> dict[str, str]:
    """
    Parse URL-encoded form data (query strings and form bodies).

    Blank values are kept ("a=" → {"a": ""}); on duplicate keys the
    last value wins. Anything unparseable yields an empty dict.
    """
    if not data:
        return {}

    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")

    try:
        return dict(parse_qsl(data, keep_blank_values=True))
    except ValueError as e:
        logger.debug(f"Ignoring malformed form data: {e}")
        return {}


def resolve_method(
    ambient: Optional[str],
    headers: Mapping[str, str],
    query_params: Mapping[str, str],
    allow_override: bool = True,
) -> str:
    """
    Work out the effective request method.

    Blank override values are ignored.
    """
    method = ambient or "GET"

    if allow_override:
        override = headers.get("x-http-method-override")
        if override and override.strip():
            method = override

        override = query_params.get("_method")
        if override and override.strip():
            method = override

    return method.strip().upper()


class BodyStream:
    """
    Read-once wrapper around the request body stream.

    The first read() returns up to CONTENT_LENGTH bytes; every later
    read() returns b"". A missing or invalid CONTENT_LENGTH means no body.
    """

    def __init__(self, stream: Optional[BinaryIO], length: int = 0):
        self._stream = stream
        self._length = max(length, 0)
        self._consumed = False

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> "BodyStream":
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except (TypeError, ValueError):
            length = 0
        return cls(environ.get("wsgi.input"), length)

    @property
    def consumed(self) -> bool:
        return self._consumed

    def read(self) -> bytes:
        if self._consumed:
            return b""
        self._consumed = True

        if self._stream is None or self._length == 0:
            return b""

        try:
            return self._stream.read(self._length) or b""
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read request body: {e}")
            return b""


@dataclass(frozen=True)
class RequestContext:
    """
    Immutable snapshot of one request.

    Built once per call with from_environ() and passed down the call
    graph. The only later change is attaching path parameters, which
    returns a NEW context (with_path_params).

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Effective verb, uppercase, after override
        ambient_method: Verb the server actually received
        path:           Decoded, cleaned path without query string
        raw_query:      Decoded, cleaned query string
        headers:        Canonical header map (see headers.py)
        query_params:   Parsed query string
        body_params:    Parsed form body
        path_params:    Router-supplied parameters
        is_xhr:         X-Requested-With == "XMLHttpRequest"
        protocol:       HTTP/1.0 or HTTP/1.1
        body:           Body bytes read during construction

    =========================================================================
    """

    method: str = "GET"
    path: str = ""
    raw_query: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    query_params: dict[str, str] = field(default_factory=dict)
    body_params: dict[str, str] = field(default_factory=dict)
    path_params: dict[str, str] = field(default_factory=dict)
    is_xhr: bool = False
    allow_method_override: bool = True
    ambient_method: str = "GET"
    protocol: str = "HTTP/1.1"
    body: bytes = field(default=b"", repr=False)
    body_stream: Optional[BodyStream] = field(default=None, repr=False, compare=False)

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, Any],
        *,
        form: Optional[Mapping[str, str]] = None,
        query_params: Optional[Mapping[str, str]] = None,
        allow_method_override: bool = True,
    ) -> "RequestContext":
        """
        Build a context from a WSGI/CGI environ.

        Args:
            environ: The per-call environ mapping.
            form: Host-parsed form fields. Used as body params for POST.
            query_params: Pre-parsed query params (skips QUERY_STRING parsing).
            allow_method_override: Honor override header and _method param.

        Returns:
            New RequestContext. Never raises for malformed input.
        """
        headers = normalize_headers(environ, environ=True)

        query_string = environ.get("QUERY_STRING") or ""
        raw_query = clean(unquote(query_string))
        path = clean(unquote(_raw_path(environ)))

        if query_params is None:
            query_params = parse_form(query_string)

        ambient = str(environ.get("REQUEST_METHOD") or "GET")
        stream = BodyStream.from_environ(environ)
        body = b""

        # Host-parsed form data only exists for real POSTs
        if ambient == "POST":
            if form is not None:
                body_params = dict(form)
            elif _is_form(headers):
                body = stream.read()
                body_params = parse_form(body)
            else:
                body_params = {}
        else:
            body = stream.read()
            body_params = parse_form(body)

        method = resolve_method(ambient, headers, query_params, allow_method_override)

        context = cls(
            method=method,
            path=path,
            raw_query=raw_query,
            headers=headers,
            query_params=dict(query_params),
            body_params=body_params,
            is_xhr=headers.get("x-requested-with") == "XMLHttpRequest",
            allow_method_override=allow_method_override,
            ambient_method=ambient.strip().upper(),
            protocol=normalize_protocol(environ.get("SERVER_PROTOCOL")),
            body=body,
            body_stream=stream,
        )
        logger.debug(f"Request context: {context.method} /{context.path}")
        return context

    def with_path_params(self, params: Mapping[str, str]) -> "RequestContext":
        """
        Attach router-matched path parameters.

        Path parameters take precedence over query and body params.
        """
        return replace(self, path_params=dict(params))

    def without_method_override(self) -> "RequestContext":
        """Return a copy whose method ignores override header and _method."""
        return replace(
            self,
            method=resolve_method(self.ambient_method, {}, {}, False),
            allow_method_override=False,
        )

    # =========================================================================
    # PARAMETERS
    # =========================================================================

    @property
    def params(self) -> dict[str, str]:
        """Merged parameters: query, then body, then path (later wins)."""
        merged = dict(self.query_params)
        merged.update(self.body_params)
        merged.update(self.path_params)
        return merged

    def get_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a merged parameter value."""
        return self.params.get(name, default)

    def has_param(self, name: str) -> bool:
        return name in self.params

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.query_params.get(name, default)

    def get_body_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.body_params.get(name, default)

    def get_path_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.path_params.get(name, default)

    # =========================================================================
    # HEADERS
    # =========================================================================

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a header value by any spelling of its name.

            request.get_header("Accept-Encoding")
            request.get_header("HTTP_ACCEPT_ENCODING")    # same header
        """
        return self.headers.get(normalize_name(name), default)

    # =========================================================================
    # METHOD CHECKS
    # =========================================================================

    def is_method(self, method: str) -> bool:
        return self.method == method.strip().upper()

    def is_get(self) -> bool:
        return self.method == "GET"

    def is_post(self) -> bool:
        return self.method == "POST"

    def is_head(self) -> bool:
        return self.method == "HEAD"


def _raw_path(environ: Mapping[str, Any]) -> str:
    """Path part of the request, still URL-encoded where the host left it so."""
    if "PATH_INFO" in environ:
        return environ.get("PATH_INFO") or ""

    uri = environ.get("REQUEST_URI") or environ.get("RAW_URI") or ""
    path, _, _ = uri.partition("?")
    return path


def _is_form(headers: Mapping[str, str]) -> bool:
    content_type = headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower() == FORM_CONTENT_TYPE
