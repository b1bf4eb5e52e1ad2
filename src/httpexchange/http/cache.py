"""
=============================================================================
CACHE DIRECTIVES
=============================================================================

Maps a time-to-live to the three headers that control caching across
HTTP/1.0 and HTTP/1.1 clients and proxies.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  ttl = 3600                                                         │
    │    Cache-Control: public, max-age=3600      (HTTP/1.1)             │
    │    Expires: <now + 3600s, RFC 1123>         (HTTP/1.0)             │
    │    Pragma: public                                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │  ttl = 0 / -5 / False / None / "abc"                                │
    │    Cache-Control: no-cache, must-revalidate, max-age=0              │
    │    Expires: Thu, 19 Nov 1981 08:52:00 GMT   (any past date works)  │
    │    Pragma: no-cache                                                 │
    │    + drop any Last-Modified header                                  │
    └─────────────────────────────────────────────────────────────────────┘

Last-Modified has to go when caching is disabled: some caches apply a
heuristic freshness (a fraction of now - Last-Modified) when they see it,
which would quietly re-enable caching.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional


NO_CACHE_CONTROL = "no-cache, must-revalidate, max-age=0"
PAST_EXPIRES = "Thu, 19 Nov 1981 08:52:00 GMT"
DEFAULT_TTL = 86400

# Expires at most one year ahead (RFC 2616 14.21).
MAX_TTL = 365 * 86400


@dataclass
class CacheDirectives:
    """
    Result of build_cache_headers().

    headers keeps Cache-Control, Expires, Pragma in that order.
    clear_last_modified tells the caller to remove Last-Modified.
    """

    headers: dict[str, str] = field(default_factory=dict)
    clear_last_modified: bool = False

    @property
    def enabled(self) -> bool:
        return not self.clear_last_modified


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 1123 / RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Thu, 15 Jan 2026 12:30:45 GMT

    Naive datetimes are assumed to be UTC; aware ones are converted.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def parse_ttl(ttl: Any) -> Optional[int]:
    """
    Interpret a TTL value.

    Returns the number of seconds, or None when caching is disabled:
    None, booleans, zero, negative and non-numeric values all disable
    it. Numeric strings ("3600") are accepted. Values above MAX_TTL are
    capped to MAX_TTL.
    """
    if ttl is None or isinstance(ttl, bool):
        return None

    if isinstance(ttl, str):
        ttl = ttl.strip()

    try:
        seconds = int(float(ttl))
    except (TypeError, ValueError, OverflowError):
        return None

    if seconds <= 0:
        return None

    return min(seconds, MAX_TTL)


def build_cache_headers(
    ttl: Any = DEFAULT_TTL,
    now: Optional[datetime] = None,
) -> CacheDirectives:
    """
    Build the cache header set for a TTL.

    Args:
        ttl: Seconds to cache for. 0, False, None or non-numeric
             disables caching.
        now: Reference time for Expires (defaults to current UTC time).

    Returns:
        CacheDirectives with the header values and the Last-Modified flag.
    """
    seconds = parse_ttl(ttl)

    if seconds is None:
        return CacheDirectives(
            headers={
                "Cache-Control": NO_CACHE_CONTROL,
                "Expires": PAST_EXPIRES,
                "Pragma": "no-cache",
            },
            clear_last_modified=True,
        )

    if now is None:
        now = datetime.now(timezone.utc)

    return CacheDirectives(
        headers={
            "Cache-Control": f"public, max-age={seconds}",
            "Expires": format_http_date(now + timedelta(seconds=seconds)),
            "Pragma": "public",
        },
    )
