"""
=============================================================================
ACCESS LOGGING
=============================================================================

One log line per completed exchange, on the "httpexchange.access" logger.

    text (combined-log style):
        127.0.0.1 - - [2026-01-15T12:30:45Z] "GET /api/items" 200 27 1.52ms

    json:
        {"request_id": "3f2a9c1e", "method": "GET", "path": "/api/items", ...}

Route the logger separately from application logs if needed:

    logging.getLogger("httpexchange.access").addHandler(file_handler)

=============================================================================
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional
import json
import logging
import uuid

from .http.request import RequestContext
from .http.response import Emission


logger = logging.getLogger("httpexchange.access")


def new_request_id() -> str:
    """Short random id for correlating log lines (8 hex chars)."""
    return uuid.uuid4().hex[:8]


@dataclass
class RequestLog:
    """
    Structured log entry for one exchange.

    request_id:     Correlation id, also sent as X-Request-ID
    method:         Effective method (after override)
    path:           Cleaned request path
    query:          Cleaned query string
    client_ip:      REMOTE_ADDR of the environ
    user_agent:     User-Agent header
    status_code:    Emitted status
    content_length: Emitted body size in bytes
    duration_ms:    Time from context creation to send
    timestamp:      ISO 8601, UTC
    """

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    @classmethod
    def build(
        cls,
        request_id: str,
        request: RequestContext,
        emission: Emission,
        duration_ms: float,
        environ: Optional[Mapping[str, Any]] = None,
    ) -> "RequestLog":
        environ = environ or {}
        return cls(
            request_id=request_id,
            method=request.method,
            path="/" + request.path,
            query=request.raw_query,
            client_ip=str(environ.get("REMOTE_ADDR") or "-"),
            user_agent=request.get_header("user-agent", "-"),
            status_code=emission.status,
            content_length=len(emission.body),
            duration_ms=duration_ms,
            timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        path = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def log_exchange(entry: RequestLog, log_format: str = "text") -> None:
    """Write an entry to the access logger; 5xx at WARNING, the rest at INFO."""
    level = logging.WARNING if entry.status_code >= 500 else logging.INFO

    if log_format == "json":
        logger.log(level, json.dumps(entry.to_dict()))
    else:
        logger.log(level, entry.to_text())
