"""Repository base — parametrized SQL over one connection.

SQL in, column-name → value dicts out. Not an ORM. Subclasses add
domain queries::

    class UserRepository(Repository):
        def fetch_by_user_name(self, user_name):
            return self.fetch_one(
                "SELECT * FROM user WHERE user_name = :user_name",
                {"user_name": user_name},
            )

Parameters are passed straight to sqlite3: a sequence for ``?``
placeholders, a mapping for ``:name`` placeholders.
"""

import logging
import sqlite3
import time
from collections.abc import Mapping, Sequence
from typing import Any

from roost.data.errors import QueryError

logger = logging.getLogger("roost.data")

type Params = Sequence[Any] | Mapping[str, Any]


class Repository:
    """Query helpers bound to a single connection."""

    __slots__ = ("_conn", "_echo")

    def __init__(self, conn: sqlite3.Connection, *, echo: bool = False) -> None:
        self._conn = conn
        self._echo = echo

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def _run(self, sql: str, params: Params) -> sqlite3.Cursor:
        t0 = time.perf_counter()
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise QueryError(str(exc)) from exc
        finally:
            if self._echo:
                ms = (time.perf_counter() - t0) * 1000
                logger.debug("%6.1fms  %s  params=%r", ms, " ".join(sql.split()), params)

    def execute(self, sql: str, params: Params = ()) -> int:
        """Run a statement (INSERT/UPDATE/DELETE); return rows affected."""
        return self._run(sql, params).rowcount

    def insert(self, sql: str, params: Params = ()) -> int | None:
        """Run an INSERT; return the new row's id."""
        return self._run(sql, params).lastrowid

    def fetch_one(self, sql: str, params: Params = ()) -> dict[str, Any] | None:
        """Return the first row, or ``None``."""
        return self._run(sql, params).fetchone()

    def fetch_all(self, sql: str, params: Params = ()) -> list[dict[str, Any]]:
        """Return every row, in result order."""
        return self._run(sql, params).fetchall()

    def fetch_val(self, sql: str, params: Params = ()) -> Any:
        """Return the first column of the first row, or ``None``.

        Useful for COUNT, SUM, MAX, etc.
        """
        row = self.fetch_one(sql, params)
        if row is None:
            return None
        return next(iter(row.values()))
