"""
=============================================================================
EXCHANGE ERRORS
=============================================================================

Exceptions raised by the request/response exchange layer.

Most of the layer never raises: negotiation that finds nothing returns
None, malformed query strings and bodies parse to empty maps. The
conditions below are the ones a caller has to decide about.

    ┌──────────────────────────┬──────────────────────────────────────────┐
    │  Exception               │  Raised when                             │
    ├──────────────────────────┼──────────────────────────────────────────┤
    │  InvalidBodyType         │  body value is not string-convertible    │
    │  UnsupportedContentType  │  content type not in the allowed table   │
    │  UnsupportedCharset      │  charset has no codec or can't hold body │
    │  ResponseAlreadySent     │  composer mutated after send()           │
    │  AlreadyStarted          │  session id/name changed after start()   │
    └──────────────────────────┴──────────────────────────────────────────┘

Each one also derives from the matching builtin (TypeError, ValueError,
RuntimeError) so callers that don't know about this package still catch
them with ordinary handlers.

=============================================================================
"""


class ExchangeError(Exception):
    """Base class for all httpexchange errors."""


class InvalidBodyType(ExchangeError, TypeError):
    """
    Raised when a response body is set to a value that can't become text.

    Strings, bytes, numbers and objects with their own __str__ are
    accepted. Anything else (None, dicts, plain objects) is rejected
    rather than silently coerced.
    """

    def __init__(self, value: object):
        super().__init__(
            f"Cannot set {type(value).__name__} as response body"
        )
        self.value = value


class UnsupportedContentType(ExchangeError, ValueError):
    """Raised by set_content_type() for a type outside the allowed table."""

    def __init__(self, content_type: str):
        super().__init__(f"Content type not allowed: {content_type}")
        self.content_type = content_type


class UnsupportedCharset(ExchangeError, ValueError):
    """Raised for a charset Python has no codec for, or one the body can't use."""

    def __init__(self, charset: str, reason: str = "unknown charset"):
        super().__init__(f"Unsupported charset {charset!r}: {reason}")
        self.charset = charset


class ResponseAlreadySent(ExchangeError, RuntimeError):
    """Raised when a composer is mutated after its single emission."""


class AlreadyStarted(ExchangeError, RuntimeError):
    """Raised when an identity property is changed on a started session."""
