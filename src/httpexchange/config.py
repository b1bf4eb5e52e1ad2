"""
=============================================================================
EXCHANGE CONFIGURATION
=============================================================================

Centralized settings for request parsing and response composition.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  REQUEST            allow_method_override                           │
    │  RESPONSE           charset, default_content_type,                  │
    │                     allowed_content_types, default_protocol,        │
    │                     default_cache_ttl                               │
    │  COMPRESSION        gzip_enabled, gzip_level                        │
    │  LOGGING            log_level, log_format, access_log               │
    └─────────────────────────────────────────────────────────────────────┘

Values come from code (ExchangeConfig(...)), the environment
(ExchangeConfig.from_env()) or the CLI, and are validated once at startup.

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    HTTPX_METHOD_OVERRIDE    "0"/"false"/"no"/"off" disables override
    HTTPX_CHARSET            Content-Type charset (default: UTF-8)
    HTTPX_DEFAULT_TYPE       Fallback MIME type (default: text/html)
    HTTPX_GZIP               "0"/"false"/"no"/"off" disables gzip
    HTTPX_GZIP_LEVEL         1-9 (default: 6)
    HTTPX_LOG_LEVEL          DEBUG/INFO/WARNING/ERROR (default: INFO)
    HTTPX_LOG_FORMAT         text/json (default: text)

=============================================================================
"""

import codecs
import logging
import os
from dataclasses import dataclass
from typing import Optional


_FALSE_VALUES = {"0", "false", "no", "off"}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_CHARSET = "UTF-8"
DEFAULT_CONTENT_TYPE = "text/html"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in _FALSE_VALUES


@dataclass
class ExchangeConfig:
    """
    Configuration shared by RequestContext and ResponseComposer.

    One instance is normally created at startup and passed to every
    exchange. Instances are never mutated by the library.
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST
    # ─────────────────────────────────────────────────────────────────────

    allow_method_override: bool = True
    """
    Honor X-HTTP-Method-Override and the _method query parameter.
    Lets HTML forms and restricted clients issue PUT/DELETE.
    """

    # ─────────────────────────────────────────────────────────────────────
    # RESPONSE
    # ─────────────────────────────────────────────────────────────────────

    charset: str = DEFAULT_CHARSET
    """Charset parameter appended to Content-Type."""

    default_content_type: str = DEFAULT_CONTENT_TYPE
    """MIME type used when nothing was negotiated."""

    allowed_content_types: Optional[dict[str, str]] = None
    """
    Short name → MIME table the composer may emit.
    None means the built-in table (html, xml, jsonp, json).
    """

    default_protocol: str = "HTTP/1.1"
    """Protocol for the status line when no request is attached."""

    default_cache_ttl: int = 86400
    """TTL used by set_cache_headers() when called without arguments."""

    # ─────────────────────────────────────────────────────────────────────
    # COMPRESSION
    # ─────────────────────────────────────────────────────────────────────

    gzip_enabled: bool = True
    """Compress bodies for clients that accept gzip."""

    gzip_level: int = 6
    """gzip level, 1 = fastest, 9 = smallest."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' (combined-log style) or 'json'."""

    access_log: bool = True

    @classmethod
    def from_env(cls) -> "ExchangeConfig":
        """Create configuration from HTTPX_* environment variables."""
        return cls(
            allow_method_override=_env_flag("HTTPX_METHOD_OVERRIDE", True),
            charset=os.getenv("HTTPX_CHARSET", DEFAULT_CHARSET),
            default_content_type=os.getenv("HTTPX_DEFAULT_TYPE", DEFAULT_CONTENT_TYPE),
            gzip_enabled=_env_flag("HTTPX_GZIP", True),
            gzip_level=int(os.getenv("HTTPX_GZIP_LEVEL", "6")),
            log_level=os.getenv("HTTPX_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTPX_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: on the first invalid setting.
        """
        if not self.charset:
            raise ValueError("charset must not be empty")

        try:
            codecs.lookup(self.charset)
        except LookupError:
            raise ValueError(f"Unknown charset: {self.charset}")

        if not self.default_content_type:
            raise ValueError("default_content_type must not be empty")

        if not 1 <= self.gzip_level <= 9:
            raise ValueError(f"Invalid gzip_level: {self.gzip_level}. Must be 1-9.")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {self.log_format}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")


def configure_logging(config: Optional[ExchangeConfig] = None) -> None:
    """Configure the root logger and the httpexchange logger level."""
    config = config or ExchangeConfig()
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )

    logging.getLogger("httpexchange").setLevel(level)
