"""Server-side sessions keyed by a signed cookie.

Session data lives in a ``SessionStore``; the client only holds the
session identifier, signed with ``itsdangerous``. A ``Session`` object is
built once per request by ``SessionManager.open()`` and persisted by
``SessionManager.close()``. Its started/regenerated flags are instance
state, so nothing leaks from one request to the next.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Protocol

from itsdangerous import BadSignature, URLSafeTimedSerializer

from roost.errors import ConfigurationError
from roost.http.request import Request
from roost.http.response import Response

logger = logging.getLogger("roost.sessions")

AUTHENTICATED_KEY = "_authenticated"


def new_session_id() -> str:
    """Return a fresh, unguessable session identifier."""
    return secrets.token_urlsafe(32)


# -- Storage --


class SessionStore(Protocol):
    """Backend holding session data by identifier."""

    def load(self, session_id: str) -> dict[str, Any] | None: ...

    def save(self, session_id: str, data: dict[str, Any]) -> None: ...

    def delete(self, session_id: str) -> None: ...


class MemorySessionStore:
    """Process-local session store. Thread-safe; data is copied in and out.

    With *max_age* (seconds), an entry not accessed for that long loads as
    missing. Expired entries are dropped on ``load()`` and pruned on every
    ``save()``.
    """

    __slots__ = ("_data", "_lock", "max_age")

    def __init__(self, max_age: float | None = None) -> None:
        self.max_age = max_age
        # session id -> (last access, data)
        self._data: dict[str, tuple[float, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def _expired(self, touched: float, now: float) -> bool:
        return self.max_age is not None and now - touched > self.max_age

    def load(self, session_id: str) -> dict[str, Any] | None:
        now = time.monotonic()
        with self._lock:
            entry = self._data.get(session_id)
            if entry is None:
                return None
            touched, data = entry
            if self._expired(touched, now):
                del self._data[session_id]
                return None
            self._data[session_id] = (now, data)
            return dict(data)

    def save(self, session_id: str, data: dict[str, Any]) -> None:
        now = time.monotonic()
        with self._lock:
            if self.max_age is not None:
                expired = [sid for sid, (touched, _) in self._data.items() if self._expired(touched, now)]
                for sid in expired:
                    del self._data[sid]
            self._data[session_id] = (now, dict(data))

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._data.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


# -- Session --


class Session:
    """Per-request mutable key/value session with an authentication flag.

    Lifecycle: created by ``SessionManager.open()``, started on creation,
    saved by ``SessionManager.close()`` only if it was modified.
    ``regenerate()`` swaps the identifier at most once per instance; the
    old identifier is deleted from the store on save.
    """

    __slots__ = ("_data", "_id", "_modified", "_regenerated", "_stale_ids", "_started", "_store")

    def __init__(self, store: SessionStore, session_id: str | None = None) -> None:
        self._store = store
        self._id = session_id
        self._data: dict[str, Any] = {}
        self._started = False
        self._regenerated = False
        self._modified = False
        self._stale_ids: list[str] = []

    def start(self) -> None:
        """Load data for the current identifier, or begin a new session.

        An identifier the store doesn't know is replaced with a fresh one
        rather than adopted.
        """
        if self._started:
            return
        data = self._store.load(self._id) if self._id else None
        if data is None:
            self._id = new_session_id()
            data = {}
        self._data = data
        self._started = True

    @property
    def id(self) -> str:
        self.start()
        assert self._id is not None
        return self._id

    @property
    def started(self) -> bool:
        return self._started

    @property
    def regenerated(self) -> bool:
        return self._regenerated

    @property
    def modified(self) -> bool:
        """Whether data or the identifier changed since the last save."""
        return self._modified

    # -- Mapping-with-default access --

    def get(self, name: str, default: Any = None) -> Any:
        self.start()
        return self._data.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.start()
        self._data[name] = value
        self._modified = True

    def remove(self, name: str) -> None:
        self.start()
        if name in self._data:
            del self._data[name]
            self._modified = True

    def clear(self) -> None:
        self.start()
        if self._data:
            self._data.clear()
            self._modified = True

    def __contains__(self, name: object) -> bool:
        self.start()
        return name in self._data

    def __iter__(self) -> Iterator[str]:
        self.start()
        return iter(self._data)

    def items(self) -> list[tuple[str, Any]]:
        self.start()
        return list(self._data.items())

    # -- Identity --

    def regenerate(self, destroy: bool = True) -> None:
        """Issue a new identifier for this session, once per lifetime.

        Data is kept. With *destroy*, the old identifier is removed from
        the store when the session is saved. Later calls do nothing.
        """
        if self._regenerated:
            return
        self.start()
        old_id = self.id
        self._id = new_session_id()
        if destroy:
            self._stale_ids.append(old_id)
        self._regenerated = True
        self._modified = True
        logger.debug("Session identifier regenerated")

    def set_authenticated(self, value: bool) -> None:
        """Set the authentication flag and regenerate the identifier."""
        self.set(AUTHENTICATED_KEY, bool(value))
        self.regenerate()

    def is_authenticated(self) -> bool:
        return bool(self.get(AUTHENTICATED_KEY, False))

    def save(self) -> bool:
        """Persist data under the current identifier if it was modified.

        Returns whether anything was written.
        """
        if not self._started:
            return False
        for stale in self._stale_ids:
            self._store.delete(stale)
        self._stale_ids.clear()
        if not self._modified:
            return False
        self._store.save(self.id, self._data)
        self._modified = False
        return True


# -- Configuration --


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Session cookie configuration.

    ``secret_key`` is required — the identifier cookie is signed.
    """

    secret_key: str
    cookie_name: str = "roost_session"
    max_age: int = 86400  # 24 hours
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"


class SessionManager:
    """Binds sessions to requests through a signed identifier cookie.

    Usage::

        manager = SessionManager(SessionConfig(secret_key="..."), MemorySessionStore())
        session = manager.open(request)
        ...
        response = manager.close(session, response)
    """

    __slots__ = ("_config", "_serializer", "store")

    def __init__(self, config: SessionConfig, store: SessionStore | None = None) -> None:
        if not config.secret_key:
            msg = "SessionConfig.secret_key must not be empty."
            raise ConfigurationError(msg)
        self._config = config
        self._serializer = URLSafeTimedSerializer(config.secret_key, salt="roost.session")
        self.store: SessionStore = store if store is not None else MemorySessionStore(config.max_age)

    @property
    def config(self) -> SessionConfig:
        return self._config

    def _session_id(self, request: Request) -> str | None:
        cookie_value = request.cookies.get(self._config.cookie_name)
        if not cookie_value:
            return None
        try:
            session_id = self._serializer.loads(cookie_value, max_age=self._config.max_age)
        except BadSignature:
            logger.debug("Discarding session cookie with a bad or expired signature")
            return None
        return session_id if isinstance(session_id, str) else None

    def open(self, request: Request) -> Session:
        """Start the session referenced by *request*'s cookie, or a new one."""
        session = Session(self.store, self._session_id(request))
        session.start()
        return session

    def close(self, session: Session, response: Response) -> Response:
        """Save *session* and attach its identifier cookie to *response*.

        An unmodified session is neither saved nor given a cookie.
        """
        if not session.save():
            return response
        cfg = self._config
        return response.with_cookie(
            name=cfg.cookie_name,
            value=self._serializer.dumps(session.id),
            max_age=cfg.max_age,
            path=cfg.path,
            domain=cfg.domain,
            secure=cfg.secure,
            httponly=cfg.httponly,
            samesite=cfg.samesite,
        )
