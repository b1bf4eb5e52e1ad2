"""
=============================================================================
HTTPEXCHANGE CLI ENTRY POINT
=============================================================================

Runs a small demo application on the standard library's WSGI server, to
try negotiation, method override and caching from a browser or curl.

=============================================================================
USAGE
=============================================================================

    python -m httpexchange
    python -m httpexchange --port 3000
    python -m httpexchange --log-format json --log-level DEBUG
    python -m httpexchange --no-method-override

Then:

    curl -H "Accept: application/json" localhost:8080/api/items?sort=asc
    curl localhost:8080/api/items?content_type=xml
    curl -X POST "localhost:8080/api/items?_method=DELETE"
    curl -I localhost:8080/

=============================================================================
"""

import argparse
import json
import logging
import re
import sys
from html import escape
from typing import Optional
from wsgiref.simple_server import make_server

from . import __version__
from .config import ExchangeConfig, LOG_LEVELS, configure_logging
from .exchange import ExchangeApp
from .http.request import RequestContext
from .http.response import ResponseComposer
from .session import CookieSession, SessionStore


logger = logging.getLogger("httpexchange")

_sessions = SessionStore()

# JavaScript identifier, optionally dotted (e.g. "app.onData").
_CALLBACK_PATTERN = re.compile(r"[A-Za-z_$][\w$.]*")


def describe(request: RequestContext, visits: int) -> dict:
    return {
        "method": request.method,
        "path": "/" + request.path,
        "params": request.params,
        "xhr": request.is_xhr,
        "visits": visits,
    }


def demo_handler(request: RequestContext, response: ResponseComposer) -> None:
    """
    Echo the request back in whatever representation was negotiated.

    Counts visits per client in a cookie session.
    """
    session = CookieSession(request, response, store=_sessions, httponly=True)
    visits = int(session.get("visits", 0)) + 1
    session["visits"] = visits

    data = describe(request, visits)
    response.set_cache_headers(request.get_param("ttl", 0))

    if response.content_type == "json":
        response.set_body(json.dumps(data))
    elif response.content_type == "jsonp":
        callback = request.get_param("callback", "callback")
        if not _CALLBACK_PATTERN.fullmatch(str(callback)):
            callback = "callback"
        response.set_body(f"{callback}({json.dumps(data)});")
    elif response.content_type == "xml":
        fields = "".join(f"<{k}>{escape(str(v))}</{k}>" for k, v in data.items())
        response.set_body(f'<?xml version="1.0"?><request>{fields}</request>')
    else:
        rows = "".join(
            f"<tr><th>{k}</th><td>{escape(str(v))}</td></tr>" for k, v in data.items()
        )
        response.set_body(f"<!DOCTYPE html><html><body><table>{rows}</table></body></html>")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httpexchange",
        description="Run the httpexchange demo application",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m httpexchange                          # Run with defaults
  python -m httpexchange --port 3000              # Custom port
  python -m httpexchange --host 0.0.0.0           # Listen on all interfaces
  python -m httpexchange --log-format json        # JSON access log
        """,
    )

    parser.add_argument(
        "--host", "-H",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8080,
        help="Port to listen on (default: 8080)",
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=list(LOG_LEVELS),
        default=None,
        help="Logging level (default: HTTPX_LOG_LEVEL or INFO)",
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format (default: HTTPX_LOG_FORMAT or text)",
    )

    parser.add_argument(
        "--no-method-override",
        action="store_true",
        help="Ignore X-HTTP-Method-Override and the _method parameter",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"httpexchange {__version__}",
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ExchangeConfig:
    """Environment first, then CLI flags on top."""
    config = ExchangeConfig.from_env()

    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format
    if args.no_method_override:
        config.allow_method_override = False

    config.validate()
    return config


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    configure_logging(config)
    app = ExchangeApp(demo_handler, config)

    try:
        with make_server(args.host, args.port, app) as server:
            logger.info(f"Serving on http://{args.host}:{args.port} (Ctrl+C to stop)")
            server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
