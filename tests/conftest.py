"""
pytest configuration and fixtures.
"""

import io
from typing import Callable, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpexchange import ExchangeConfig, RequestContext, ResponseComposer


def build_environ(
    method: str = "GET",
    path: str = "/",
    query: str = "",
    headers: Optional[dict] = None,
    body: bytes = b"",
    content_type: Optional[str] = None,
    protocol: str = "HTTP/1.1",
) -> dict:
    """Build a WSGI environ the way a server would hand it over."""
    environ = {
        "REQUEST_METHOD": method,
        "PATH_INFO": path,
        "QUERY_STRING": query,
        "SERVER_PROTOCOL": protocol,
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "8080",
        "REMOTE_ADDR": "127.0.0.1",
        "wsgi.input": io.BytesIO(body),
        "wsgi.url_scheme": "http",
    }

    if body:
        environ["CONTENT_LENGTH"] = str(len(body))
    if content_type:
        environ["CONTENT_TYPE"] = content_type

    for name, value in (headers or {}).items():
        environ["HTTP_" + name.upper().replace("-", "_")] = value

    return environ


@pytest.fixture
def make_environ() -> Callable[..., dict]:
    """Factory for WSGI environs."""
    return build_environ


@pytest.fixture
def make_request() -> Callable[..., RequestContext]:
    """Factory for request contexts built from an environ."""
    def factory(**kwargs) -> RequestContext:
        return RequestContext.from_environ(build_environ(**kwargs))
    return factory


@pytest.fixture
def config() -> ExchangeConfig:
    """Default configuration with access logging off."""
    return ExchangeConfig(access_log=False)


@pytest.fixture
def emitted() -> list:
    """Collects emissions passed to an emitter."""
    return []


@pytest.fixture
def composer(config, emitted) -> ResponseComposer:
    """A composer without a request, recording its emissions."""
    return ResponseComposer(config=config, emitter=emitted.append)
