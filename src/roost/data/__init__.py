"""Synchronous data access for roost.

SQL in, column-name → value dicts out. Not an ORM.

Basic usage::

    from roost.data import Database, Repository

    class UserRepository(Repository):
        def fetch_by_user_name(self, user_name):
            return self.fetch_one("SELECT * FROM user WHERE user_name = ?", (user_name,))

    db = Database("sqlite:///app.db")
    db.register_repository("user", UserRepository)

Controllers reach it as ``self.db`` — a per-request ``DataSession``.
"""

from roost.data.database import Database, DataSession
from roost.data.errors import DataError, DriverNotInstalledError, QueryError
from roost.data.repository import Repository

__all__ = [
    "DataError",
    "DataSession",
    "Database",
    "DriverNotInstalledError",
    "QueryError",
    "Repository",
]
