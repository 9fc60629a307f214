"""SQLite connections from ``sqlite:///`` URLs using stdlib sqlite3.

Connections run in autocommit mode: each statement commits on its own,
and ``DataSession.transaction()`` issues explicit BEGIN/COMMIT around
multi-statement work.
"""

import sqlite3

from roost.data.errors import DriverNotInstalledError

_SCHEME = "sqlite:///"


def parse_url(url: str) -> str:
    """Return the database path named by a ``sqlite:///`` URL.

    ``sqlite:///app.db`` → ``app.db``, ``sqlite:///:memory:`` → ``:memory:``,
    ``sqlite:////var/db/app.db`` → ``/var/db/app.db``.
    """
    if not url.startswith(_SCHEME):
        scheme = url.partition("://")[0] or url
        msg = f"Unsupported database URL scheme {scheme!r}; only sqlite:/// is available."
        raise DriverNotInstalledError(msg)
    return url[len(_SCHEME) :]


def _dict_row(cursor: sqlite3.Cursor, row: tuple) -> dict:
    return {col[0]: value for col, value in zip(cursor.description, row, strict=True)}


def connect(url: str) -> sqlite3.Connection:
    """Open a SQLite connection whose rows come back as column → value dicts."""
    conn = sqlite3.connect(parse_url(url), autocommit=True)
    conn.row_factory = _dict_row
    return conn
