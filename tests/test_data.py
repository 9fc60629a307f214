"""Tests for roost.data — named connections, repositories, lazy sessions."""

import logging
from pathlib import Path
from typing import Any

import pytest
from kida import DictLoader, Environment

from roost.app import App
from roost.config import AppConfig
from roost.controller import Controller, action
from roost.data import Database, DataError, DriverNotInstalledError, QueryError, Repository
from roost.testing import TestClient

SCHEMA = """
CREATE TABLE user (id INTEGER PRIMARY KEY AUTOINCREMENT, user_name TEXT NOT NULL);
"""


class UserRepository(Repository):
    def create(self, user_name: str) -> int | None:
        return self.insert("INSERT INTO user (user_name) VALUES (?)", (user_name,))

    def fetch_by_user_name(self, user_name: str) -> dict[str, Any] | None:
        return self.fetch_one("SELECT * FROM user WHERE user_name = ?", (user_name,))


def _db(tmp_path: Path, **kwargs: Any) -> Database:
    db = Database(f"sqlite:///{tmp_path / 'app.db'}", **kwargs)
    db.register_repository("user", UserRepository)
    with db.open() as data:
        data.execute_script(SCHEMA)
    return db


class TestDatabase:
    def test_first_connection_is_default(self, tmp_path: Path) -> None:
        db = Database()
        db.add_connection("main", f"sqlite:///{tmp_path / 'a.db'}")
        db.add_connection("archive", f"sqlite:///{tmp_path / 'b.db'}")
        assert db.default_connection == "main"
        assert db.connection_names == ("main", "archive")
        assert db.url() == f"sqlite:///{tmp_path / 'a.db'}"

    def test_unsupported_scheme(self) -> None:
        with pytest.raises(DriverNotInstalledError, match="postgresql"):
            Database("postgresql://localhost/app")

    def test_no_connection(self) -> None:
        with pytest.raises(DataError, match="No database connection configured"):
            Database().url()

    def test_unknown_connection_for_repository(self) -> None:
        db = Database("sqlite:///:memory:")
        with pytest.raises(DataError, match="unknown connection"):
            db.register_repository("user", UserRepository, connection="nope")

    def test_unknown_repository(self, tmp_path: Path) -> None:
        with _db(tmp_path).open() as data, pytest.raises(DataError, match="No repository"):
            data.repository("post")


class TestDataSession:
    def test_repository_round_trip(self, tmp_path: Path) -> None:
        with _db(tmp_path).open() as data:
            users = data.repository("user")
            user_id = users.create("alice")
            row = users.fetch_by_user_name("alice")
            assert row == {"id": user_id, "user_name": "alice"}

    def test_repository_is_cached(self, tmp_path: Path) -> None:
        with _db(tmp_path).open() as data:
            assert data.repository("user") is data.repository("user")

    def test_connection_is_lazy_and_reused(self, tmp_path: Path) -> None:
        data = _db(tmp_path).open()
        assert data._connections == {}
        first = data.connection()
        assert data.connection() is first
        assert data.connection("default") is first
        data.close()
        assert data._connections == {}

    def test_fetch_all_keeps_order(self, tmp_path: Path) -> None:
        with _db(tmp_path).open() as data:
            for name in ("carol", "alice", "bob"):
                data.execute("INSERT INTO user (user_name) VALUES (?)", (name,))
            rows = data.fetch_all("SELECT user_name FROM user ORDER BY id")
            assert [r["user_name"] for r in rows] == ["carol", "alice", "bob"]

    def test_named_connection_repository(self, tmp_path: Path) -> None:
        db = _db(tmp_path)
        db.add_connection("archive", f"sqlite:///{tmp_path / 'archive.db'}")
        db.register_repository("old_user", UserRepository, connection="archive")
        with db.open() as data:
            data.connection("archive").executescript(SCHEMA)
            data.repository("old_user").create("zed")
            assert data.repository("user").fetch_by_user_name("zed") is None
            assert data.repository("old_user").fetch_by_user_name("zed") is not None

    def test_transaction_rolls_back(self, tmp_path: Path) -> None:
        with _db(tmp_path).open() as data:
            with pytest.raises(RuntimeError), data.transaction():
                data.execute("INSERT INTO user (user_name) VALUES ('ghost')")
                raise RuntimeError("abort")
            assert data.fetch_one("SELECT * FROM user") is None

    def test_transaction_commits(self, tmp_path: Path) -> None:
        db = _db(tmp_path)
        with db.open() as data, data.transaction():
            data.execute("INSERT INTO user (user_name) VALUES ('kept')")
        with db.open() as data:
            assert data.fetch_one("SELECT user_name FROM user") == {"user_name": "kept"}

    def test_query_error(self, tmp_path: Path) -> None:
        with _db(tmp_path).open() as data, pytest.raises(QueryError):
            data.fetch_all("SELECT * FROM missing_table")

    def test_echo_logs_queries(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="roost.data"), _db(tmp_path, echo=True).open() as data:
            data.repository("user").fetch_by_user_name("alice")
        assert any("SELECT * FROM user WHERE user_name = ?" in r.getMessage() for r in caplog.records)


class TestRepository:
    def test_fetch_val(self, tmp_path: Path) -> None:
        with _db(tmp_path).open() as data:
            users = data.repository("user")
            assert users.fetch_val("SELECT COUNT(*) FROM user") == 0
            users.create("a")
            assert users.fetch_val("SELECT COUNT(*) FROM user") == 1
            assert users.fetch_val("SELECT id FROM user WHERE user_name = 'nobody'") is None

    def test_execute_returns_rowcount(self, tmp_path: Path) -> None:
        with _db(tmp_path).open() as data:
            users = data.repository("user")
            users.create("a")
            users.create("b")
            assert users.execute("UPDATE user SET user_name = 'x'") == 2


class CountController(Controller):
    @action
    def index(self, params: dict[str, str]) -> str:
        users = self.db.repository("user")
        users.create(params["name"])
        return str(users.fetch_val("SELECT COUNT(*) FROM user"))


class TestRequestDataAccess:
    def test_controller_uses_request_data_session(self, tmp_path: Path) -> None:
        app = App(AppConfig(secret_key="k"), db=_db(tmp_path), kida_env=Environment(loader=DictLoader({})))
        app.route("/add/:name", controller="count", action="index")
        app.register_controller("count", CountController)

        with TestClient(app) as client:
            assert client.get("/add/alice").body == "1"
            assert client.get("/add/bob").body == "2"

    def test_url_string_builds_database(self, tmp_path: Path) -> None:
        app = App(AppConfig(secret_key="k"), db=f"sqlite:///{tmp_path / 'x.db'}")
        assert isinstance(app.database, Database)
        assert app.database.default_connection == "default"
