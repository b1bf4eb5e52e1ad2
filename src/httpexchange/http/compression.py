"""
=============================================================================
RESPONSE COMPRESSION
=============================================================================

gzip support for the response composer.

    Request:                              Response:
    ┌───────────────────────────────┐     ┌───────────────────────────────┐
    │ Accept-Encoding: gzip, br     │ ──► │ Content-Encoding: gzip        │
    └───────────────────────────────┘     │ Vary: Accept-Encoding         │
                                          │ Content-Length: <compressed>  │
                                          │                               │
                                          │ [gzip compressed body]        │
                                          └───────────────────────────────┘

The composer decides ONCE, when it is seeded from the request, whether the
client accepts gzip. At send time the body is compressed if that flag is
still set. Handlers can turn it off (response.gzip = False) for content
that is already compressed.

Vary: Accept-Encoding tells shared caches that the representation depends
on the request's Accept-Encoding, so a gzipped copy is never served to a
client that can't decode it.

=============================================================================
"""

import gzip
import logging
from typing import Mapping, MutableMapping

from .headers import accept_encoding


logger = logging.getLogger(__name__)

DEFAULT_LEVEL = 6


def accepts_gzip(headers: Mapping[str, str]) -> bool:
    """Check a normalized header map for gzip in Accept-Encoding."""
    return bool(accept_encoding(headers, "gzip"))


def gzip_body(body: bytes, level: int = DEFAULT_LEVEL) -> bytes:
    """
    Compress a body with gzip.

    Args:
        body: Raw body bytes.
        level: Compression level 1 (fastest) to 9 (smallest).

    Returns:
        Compressed bytes.
    """
    compressed = gzip.compress(body, compresslevel=level)
    logger.debug(f"gzip: {len(body)} -> {len(compressed)} bytes (level {level})")
    return compressed


def add_vary(headers: MutableMapping[str, str], field: str = "Accept-Encoding") -> None:
    """Append field to the Vary header unless it is already listed."""
    vary = headers.get("Vary", "")
    if field not in vary:
        headers["Vary"] = f"{vary}, {field}".lstrip(", ")
