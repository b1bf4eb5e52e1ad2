"""
=============================================================================
SESSIONS
=============================================================================

Per-client key/value storage keyed by a cookie.

    Request                                 Response
    ┌──────────────────────────────┐        ┌──────────────────────────────┐
    │ Cookie: SESSID=9f86d081...   │ ──►    │ Set-Cookie: SESSID=9f86d0... │
    └──────────────────────────────┘        │   Path=/; Max-Age=604800     │
                 │                          └──────────────────────────────┘
                 ▼
         SessionStore["9f86d081..."] → {"user_id": "42"}

The id and the cookie name identify the session to the client, so both
are fixed once the session has started: set_id() and set_name() raise
AlreadyStarted afterwards.

SessionStore keeps data in process memory. It is shared by all sessions
created with the same store and is lost on restart. Entries idle for
longer than the store's lifetime expire and are purged.

=============================================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from http.cookies import CookieError, SimpleCookie
from typing import Any, Callable, Iterator, Optional
import logging
import secrets
import threading
import time

from .exceptions import AlreadyStarted
from .http.cache import format_http_date
from .http.request import RequestContext
from .http.response import ResponseComposer


logger = logging.getLogger(__name__)

DEFAULT_NAME = "SESSID"
DEFAULT_LIFETIME = 7 * 86400
PURGE_INTERVAL = 60


class Session(ABC):
    """
    Abstract session.

    Subclasses provide storage and the id/name lifecycle; the mapping
    protocol (session["key"], "key" in session, del, len, iter) is built
    on get/set/exists/remove.
    """

    @abstractmethod
    def start(self) -> bool:
        """Start the session. Returns True once it is started."""

    @abstractmethod
    def is_started(self) -> bool: ...

    @property
    @abstractmethod
    def id(self) -> Optional[str]: ...

    @abstractmethod
    def set_id(self, session_id: str) -> "Session": ...

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def set_name(self, name: str) -> "Session": ...

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any: ...

    @abstractmethod
    def set(self, key: str, value: Any) -> "Session": ...

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def remove(self, key: str) -> "Session": ...

    @abstractmethod
    def destroy(self) -> None:
        """Discard all data and end the session."""

    @abstractmethod
    def keys(self) -> list[str]: ...

    def __getitem__(self, key: str) -> Any:
        if not self.exists(key):
            raise KeyError(key)
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        if not self.exists(key):
            raise KeyError(key)
        self.remove(key)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.exists(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self.keys())


class SessionStore:
    """
    Thread-safe in-memory session data, keyed by session id.

    An entry expires when it has not been loaded or saved for `lifetime`
    seconds. Expired entries are never returned, and are purged from
    memory at most once per `purge_interval` seconds.
    """

    def __init__(
        self,
        lifetime: float = DEFAULT_LIFETIME,
        purge_interval: float = PURGE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.lifetime = lifetime
        self.purge_interval = purge_interval
        self._clock = clock
        self._data: dict[str, tuple[float, dict[str, Any]]] = {}
        self._next_purge = clock() + purge_interval
        self._lock = threading.Lock()

    def _expired(self, last_access: float, now: float) -> bool:
        return now - last_access >= self.lifetime

    def _maybe_purge(self, now: float) -> None:
        if now < self._next_purge:
            return
        self._next_purge = now + self.purge_interval

        expired = [sid for sid, (seen, _) in self._data.items() if self._expired(seen, now)]
        for sid in expired:
            del self._data[sid]
        if expired:
            logger.debug(f"Purged {len(expired)} expired sessions")

    def load(self, session_id: str) -> Optional[dict[str, Any]]:
        with self._lock:
            now = self._clock()
            self._maybe_purge(now)

            entry = self._data.get(session_id)
            if entry is None:
                return None
            if self._expired(entry[0], now):
                del self._data[session_id]
                return None

            self._data[session_id] = (now, entry[1])
            return entry[1]

    def save(self, session_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            now = self._clock()
            self._maybe_purge(now)
            self._data[session_id] = (now, data)

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._data.pop(session_id, None)

    def purge(self) -> None:
        """Drop every expired entry now."""
        with self._lock:
            self._next_purge = self._clock()
            self._maybe_purge(self._next_purge)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            entry = self._data.get(session_id)
            return entry is not None and not self._expired(entry[0], self._clock())

    def __len__(self) -> int:
        """Number of entries held in memory, including not yet purged ones."""
        with self._lock:
            return len(self._data)


class CookieSession(Session):
    """
    Session identified by a cookie, stored in a SessionStore.

    Example:
        session = CookieSession(request, response, store=store)
        session["user_id"] = "42"        # starts the session, sets cookie
        session.get("user_id")           # "42"

    Data access starts the session implicitly. An id received in the
    cookie that the store does not know is replaced with a fresh one.
    """

    def __init__(
        self,
        request: RequestContext,
        response: ResponseComposer,
        *,
        name: str = DEFAULT_NAME,
        store: Optional[SessionStore] = None,
        lifetime: int = DEFAULT_LIFETIME,
        path: str = "/",
        domain: Optional[str] = None,
        secure: bool = False,
        httponly: bool = False,
    ):
        self.request = request
        self.response = response
        self.store = store if store is not None else SessionStore(lifetime)
        self.lifetime = lifetime
        self.path = path
        self.domain = domain
        self.secure = secure
        self.httponly = httponly

        self._name = name
        self._id: Optional[str] = None
        self._data: dict[str, Any] = {}
        self._started = False

    # =========================================================================
    # IDENTITY
    # =========================================================================

    @property
    def id(self) -> Optional[str]:
        return self._id

    def set_id(self, session_id: str) -> "CookieSession":
        """
        Raises:
            AlreadyStarted: if the session has been started.
        """
        if self._started:
            raise AlreadyStarted("Cannot set ID - session already started.")
        self._id = session_id
        return self

    @property
    def name(self) -> str:
        return self._name

    def set_name(self, name: str) -> "CookieSession":
        """
        Raises:
            AlreadyStarted: if the session has been started.
        """
        if self._started:
            raise AlreadyStarted("Cannot set name - session already started.")
        self._name = name
        return self

    def _cookie_id(self) -> Optional[str]:
        raw = self.request.get_header("cookie")
        if not raw:
            return None

        cookie = SimpleCookie()
        try:
            cookie.load(raw)
        except CookieError:
            logger.debug("Ignoring malformed Cookie header")
            return None

        morsel = cookie.get(self._name)
        return morsel.value if morsel is not None and morsel.value else None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def is_started(self) -> bool:
        return self._started

    def start(self) -> bool:
        if self._started:
            return True

        session_id = self._id or self._cookie_id()
        data = self.store.load(session_id) if session_id else None

        if data is None:
            if session_id and self._id is None:
                logger.debug("Unknown session id from cookie, issuing a new one")
                session_id = None
            session_id = session_id or secrets.token_hex(16)
            data = {}
            self.store.save(session_id, data)

        self._id = session_id
        self._data = data
        self._started = True

        self.response.set_header("Set-Cookie", self._build_cookie(session_id, self.lifetime))
        return True

    def destroy(self) -> None:
        if self._id is not None:
            self.store.delete(self._id)

        self._data = {}
        self.response.set_header("Set-Cookie", self._build_cookie("", 0))
        self._id = None
        self._started = False

    def _build_cookie(self, value: str, max_age: int) -> str:
        cookie = SimpleCookie()
        cookie[self._name] = value
        morsel = cookie[self._name]

        morsel["path"] = self.path
        morsel["max-age"] = max_age
        expires = datetime.now(timezone.utc) + timedelta(seconds=max_age)
        if max_age <= 0:
            expires = datetime(1970, 1, 1, tzinfo=timezone.utc)
        morsel["expires"] = format_http_date(expires)

        if self.domain:
            morsel["domain"] = self.domain
        if self.secure:
            morsel["secure"] = True
        if self.httponly:
            morsel["httponly"] = True

        return morsel.OutputString()

    # =========================================================================
    # DATA
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        self.start()
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> "CookieSession":
        self.start()
        self._data[key] = value
        self.store.save(self._id, self._data)
        return self

    def exists(self, key: str) -> bool:
        self.start()
        return key in self._data

    def remove(self, key: str) -> "CookieSession":
        self.start()
        self._data.pop(key, None)
        self.store.save(self._id, self._data)
        return self

    def keys(self) -> list[str]:
        self.start()
        return list(self._data)
