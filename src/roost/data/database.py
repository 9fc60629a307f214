"""Named connections and repository registry.

``Database`` is the app-level description: which connections exist,
which repositories exist, and which connection each repository uses.
It never opens a connection itself. ``Database.open()`` returns a
``DataSession`` — the per-request data-access handle — which connects
lazily on first use and reuses connections and repositories until it
is closed.

Connection URL format::

    sqlite:///path/to/db.sqlite    # SQLite file
    sqlite:///:memory:             # In-memory SQLite (one per DataSession)
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from roost.data._sqlite import connect, parse_url
from roost.data.errors import DataError
from roost.data.repository import Params, Repository

logger = logging.getLogger("roost.data")

type RepositoryFactory = Callable[..., Repository]


class Database:
    """Connection and repository registry.

    Usage::

        db = Database("sqlite:///app.db")
        db.add_connection("archive", "sqlite:///archive.db")
        db.register_repository("user", UserRepository)
        db.register_repository("old_post", PostRepository, connection="archive")

        with db.open() as data:
            user = data.repository("user").fetch_by_user_name("alice")

    The first connection added is the default.
    """

    __slots__ = ("_default", "_repositories", "_urls", "echo")

    def __init__(self, url: str | None = None, /, *, echo: bool = False) -> None:
        self._urls: dict[str, str] = {}
        self._default: str | None = None
        self._repositories: dict[str, tuple[RepositoryFactory, str | None]] = {}
        self.echo = echo
        if url is not None:
            self.add_connection("default", url)

    def add_connection(self, name: str, url: str) -> None:
        """Declare a named connection. Validates the URL up front."""
        parse_url(url)
        self._urls[name] = url
        if self._default is None:
            self._default = name

    def register_repository(
        self,
        name: str,
        factory: RepositoryFactory,
        *,
        connection: str | None = None,
    ) -> None:
        """Register *factory* (usually a ``Repository`` subclass) as *name*.

        *connection* picks a named connection; the default is used otherwise.
        """
        if connection is not None and connection not in self._urls:
            msg = f"Repository {name!r} refers to unknown connection {connection!r}."
            raise DataError(msg)
        self._repositories[name] = (factory, connection)

    @property
    def default_connection(self) -> str | None:
        return self._default

    @property
    def connection_names(self) -> tuple[str, ...]:
        return tuple(self._urls)

    @property
    def repository_names(self) -> tuple[str, ...]:
        return tuple(self._repositories)

    def url(self, name: str | None = None) -> str:
        """The URL of connection *name* (default connection when ``None``)."""
        key = name or self._default
        if key is None or key not in self._urls:
            msg = f"No database connection named {name!r}." if name else "No database connection configured."
            raise DataError(msg)
        return self._urls[key]

    def repository_spec(self, name: str) -> tuple[RepositoryFactory, str | None]:
        try:
            return self._repositories[name]
        except KeyError:
            msg = f"No repository registered as {name!r}."
            raise DataError(msg) from None

    def open(self) -> DataSession:
        """Return a new, unconnected data-access handle."""
        return DataSession(self)


class DataSession:
    """Per-request data-access handle.

    Connections open on first use and stay open until ``close()``;
    repositories are built on first request and cached. Not shared
    between requests.
    """

    __slots__ = ("_connections", "_database", "_repositories")

    def __init__(self, database: Database) -> None:
        self._database = database
        self._connections: dict[str, sqlite3.Connection] = {}
        self._repositories: dict[str, Repository] = {}

    def __enter__(self) -> DataSession:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def connection(self, name: str | None = None) -> sqlite3.Connection:
        """Return connection *name* (default when ``None``), opening it if needed."""
        url = self._database.url(name)
        key = name or self._database.default_connection
        conn = self._connections.get(key)
        if conn is None:
            conn = connect(url)
            self._connections[key] = conn
            logger.debug("Opened database connection %r", key)
        return conn

    def repository(self, name: str) -> Any:
        """Return the repository registered as *name*, building it once."""
        repo = self._repositories.get(name)
        if repo is None:
            factory, connection = self._database.repository_spec(name)
            repo = factory(self.connection(connection), echo=self._database.echo)
            self._repositories[name] = repo
        return repo

    # -- Default-connection shortcuts --

    def _default_repository(self) -> Repository:
        return Repository(self.connection(), echo=self._database.echo)

    def execute(self, sql: str, params: Params = ()) -> int:
        return self._default_repository().execute(sql, params)

    def execute_script(self, sql: str) -> None:
        """Run several ``;``-separated statements on the default connection."""
        self.connection().executescript(sql)

    def fetch_one(self, sql: str, params: Params = ()) -> dict[str, Any] | None:
        return self._default_repository().fetch_one(sql, params)

    def fetch_all(self, sql: str, params: Params = ()) -> list[dict[str, Any]]:
        return self._default_repository().fetch_all(sql, params)

    @contextmanager
    def transaction(self, name: str | None = None) -> Iterator[None]:
        """Run the block atomically on connection *name*.

        Commits on clean exit, rolls back on exception.
        """
        conn = self.connection(name)
        conn.execute("BEGIN")
        try:
            yield
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    def close(self) -> None:
        """Drop cached repositories, then close every open connection."""
        self._repositories.clear()
        for name, conn in self._connections.items():
            conn.close()
            logger.debug("Closed database connection %r", name)
        self._connections.clear()
