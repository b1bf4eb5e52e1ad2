"""
=============================================================================
MIME SHORT NAMES
=============================================================================

Maps terse content-type identifiers ("short names") to full MIME types.

Handlers and clients talk about representations by short name:

    /api/items?content_type=json        response.set_content_type("json")

while the wire needs the full MIME type:

    Content-Type: application/json; charset=UTF-8

    ┌────────────────────────────────────────────────────────────────────┐
    │                    SHORT NAME REGISTRY                             │
    ├──────────────┬─────────────────────────────────────────────────────┤
    │  json        │  application/json                                   │
    │  jsonp, js,  │  text/javascript                                    │
    │  javascript  │                                                     │
    │  xml         │  text/xml                                           │
    │  html        │  text/html                                          │
    │  xhtml       │  application/html+xml                               │
    │  csv         │  text/csv                                           │
    │  plain, text │  text/plain                                         │
    │  form        │  application/x-www-form-urlencoded                  │
    │  upload      │  multipart/form-data                                │
    └──────────────┴─────────────────────────────────────────────────────┘

=============================================================================
ALLOWED RESPONSE TYPES
=============================================================================

The registry lists everything the framework can NAME. The response
composer only EMITS a smaller subset, DEFAULT_CONTENT_TYPES. A short name
outside that table is refused by set_content_type() and ignored by
negotiation.

=============================================================================
"""

from typing import Mapping, Optional


JSON = "application/json"
JS = "text/javascript"
XML = "text/xml"
HTML = "text/html"
XHTML = "application/html+xml"
CSV = "text/csv"
TEXT = "text/plain"
FORM = "application/x-www-form-urlencoded"
UPLOAD = "multipart/form-data"


MIME_TYPES = {
    "json": JSON,
    "jsonp": JS,
    "js": JS,
    "javascript": JS,
    "xml": XML,
    "html": HTML,
    "xhtml": XHTML,
    "csv": CSV,
    "plain": TEXT,
    "text": TEXT,
    "form": FORM,
    "upload": UPLOAD,
}

# Types the response composer may emit, keyed by short name.
DEFAULT_CONTENT_TYPES = {
    "html": HTML,
    "xml": XML,
    "jsonp": JS,
    "json": JSON,
}


def get_mime_type(name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Get the full MIME type for a short name.

    Examples:
        >>> get_mime_type("json")
        'application/json'
        >>> get_mime_type("yaml") is None
        True
    """
    return MIME_TYPES.get(name, default)


def is_valid(name: str) -> bool:
    """Check whether a short name is registered."""
    return name in MIME_TYPES


def short_name_for(
    mime_type: str,
    table: Mapping[str, str] = MIME_TYPES,
) -> Optional[str]:
    """
    Reverse lookup: first short name in table mapping to mime_type.

    Several names can share one MIME type (jsonp/js/javascript), so the
    table's insertion order decides which one comes back.

    Examples:
        >>> short_name_for("application/json")
        'json'
        >>> short_name_for("text/javascript")
        'jsonp'
    """
    for name, value in table.items():
        if value == mime_type:
            return name
    return None
