"""
=============================================================================
HEADER NORMALIZATION AND ACCEPT NEGOTIATION
=============================================================================

Turns whatever the host hands us for request headers into one canonical
mapping, and answers the simple "does the client accept X?" questions
against that mapping.

=============================================================================
HEADER SOURCES
=============================================================================

Headers reach a Python web app in two shapes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  ENVIRON STYLE (WSGI / CGI)        HEADER MAP (host-parsed)        │
    │  ──────────────────────────        ─────────────────────────       │
    │  HTTP_ACCEPT_ENCODING: gzip        Accept-Encoding: gzip           │
    │  HTTP_X_REQUESTED_WITH: ...        X-Requested-With: ...           │
    │  CONTENT_TYPE: text/plain          Content-Type: text/plain        │
    │  REQUEST_METHOD: GET               (no CGI variables)              │
    │  wsgi.input: <stream>                                              │
    └─────────────────────────────────────────────────────────────────────┘

Both normalize to the same canonical form:

    lowercase  +  "_" → "-"  +  "http-" prefix stripped

    HTTP_ACCEPT_ENCODING   →  accept-encoding
    Accept_Encoding        →  accept-encoding
    CONTENT_TYPE           →  content-type

In an environ, most keys are NOT headers (REQUEST_METHOD, PATH_INFO,
wsgi.input...). Only HTTP_* keys and a short allowlist of CGI variables
that carry header values survive.

=============================================================================
PER-REQUEST SCOPE
=============================================================================

normalize_headers() is a pure function. Its result is stored on the
RequestContext of ONE request. Nothing is cached at module level, so
request N+1 in a long-lived worker never sees the headers of request N.

=============================================================================
NEGOTIATION
=============================================================================

Negotiation here is a plain CSV scan, not RFC 7231 content negotiation:

    Accept: application/json, text/html;q=0.9, */*;q=0.8
            ────────┬───────  ───────┬───────  ────┬────
                    │                │             │
               token 1 → match   token 2       token 3
                               (";q=0.9" is part of the token,
                                so it never equals "text/html")

The FIRST token found in the candidate table wins. Quality values and
wildcards are not interpreted.

=============================================================================
"""

from typing import Any, Iterable, Mapping, Optional, Union


# CGI variables that carry a header value without the HTTP_ prefix.
UNPREFIXED_HEADERS = frozenset({
    "content-type",
    "content-length",
    "content-md5",
    "php-auth-user",
    "php-auth-pw",
    "php-auth-digest",
    "auth-type",
})

_PREFIX = "http-"

# Keys whose presence marks a mapping as an environ rather than a header map.
_ENVIRON_MARKERS = ("REQUEST_METHOD", "SERVER_PROTOCOL", "PATH_INFO")

Candidates = Union[Mapping[str, str], Iterable[str]]


def normalize_name(name: str) -> str:
    """
    Canonicalize a single header name.

    Examples:
        >>> normalize_name("HTTP_X_REQUESTED_WITH")
        'x-requested-with'
        >>> normalize_name("Content_Type")
        'content-type'
    """
    key = name.lower().replace("_", "-")
    if key.startswith(_PREFIX):
        key = key[len(_PREFIX):]
    return key


def is_environ(source: Mapping[str, Any]) -> bool:
    """
    Guess whether source is a WSGI/CGI environ.

    True if any key carries the HTTP_ prefix, any wsgi.* key is present,
    or a CGI request variable is present.
    """
    for key in source:
        if not isinstance(key, str):
            continue
        if key.lower().startswith(("http_", "http-", "wsgi.")):
            return True
        if key in _ENVIRON_MARKERS:
            return True
    return False


def normalize_headers(
    source: Optional[Mapping[str, Any]],
    environ: Optional[bool] = None,
) -> dict[str, str]:
    """
    Convert a raw header source into a canonical header mapping.

    Args:
        source: Environ-style mapping or host header map. None is
                treated as empty.
        environ: Force environ handling (True) or header-map handling
                 (False). None autodetects with is_environ().

    Returns:
        New dict: lowercase, dash-separated, prefix-stripped keys mapped
        to string values. On duplicate keys after normalization the
        last one wins.
    """
    if not source:
        return {}

    if environ is None:
        environ = is_environ(source)

    headers: dict[str, str] = {}

    for raw_name, value in source.items():
        if not isinstance(raw_name, str) or value is None:
            continue

        lowered = raw_name.lower().replace("_", "-")
        prefixed = lowered.startswith(_PREFIX)
        name = lowered[len(_PREFIX):] if prefixed else lowered

        if environ and not prefixed and name not in UNPREFIXED_HEADERS:
            continue  # CGI/WSGI variable, not a header

        if not name:
            continue

        headers[name] = str(value)

    return headers


def match(
    header_value: Optional[str],
    candidates: Optional[Candidates] = None,
    search: Optional[str] = None,
) -> Union[str, bool, None]:
    """
    Match a raw CSV header value against a candidate set.

    =====================================================================
    MODES
    =====================================================================

        header missing              → None
        search="gzip"               → True/False (substring test)
        no candidates               → raw header value, unmodified
        candidates given            → first CSV token equal to a
                                      candidate key or value, else None

    =====================================================================

    Args:
        header_value: Raw header value (e.g. "gzip, deflate").
        candidates: Mapping (keys and values are both checked) or any
                    iterable of strings.
        search: Literal substring to look for.

    Returns:
        See modes above.
    """
    if header_value is None:
        return None

    if search:
        return search in header_value

    if not candidates:
        return header_value

    if isinstance(candidates, Mapping):
        allowed = set(candidates.keys()) | set(candidates.values())
    else:
        allowed = set(candidates)

    for token in header_value.split(","):
        token = token.strip()
        if token in allowed:
            return token

    return None


def accept(
    headers: Mapping[str, str],
    candidates: Optional[Candidates] = None,
) -> Optional[str]:
    """Negotiate against the Accept header of a normalized header map."""
    return match(headers.get("accept"), candidates)


def accept_encoding(
    headers: Mapping[str, str],
    search: Optional[str] = None,
) -> Union[str, bool, None]:
    """
    Inspect the Accept-Encoding header of a normalized header map.

    With search, returns whether it occurs in the header (None when the
    header is absent). Without, returns the raw header value.
    """
    return match(headers.get("accept-encoding"), search=search)
