"""Tests for roost.sessions — per-request sessions and the signed cookie."""

import pytest
from itsdangerous import URLSafeTimedSerializer

from roost.errors import ConfigurationError
from roost.http.request import Request
from roost.http.response import Response
from roost.sessions import (
    AUTHENTICATED_KEY,
    MemorySessionStore,
    Session,
    SessionConfig,
    SessionManager,
)


def _request(cookie: str = "") -> Request:
    environ = {"REQUEST_METHOD": "GET", "PATH_INFO": "/", "SERVER_NAME": "testserver"}
    if cookie:
        environ["HTTP_COOKIE"] = cookie
    return Request.from_environ(environ)


class TestSession:
    def test_starts_with_fresh_id(self) -> None:
        session = Session(MemorySessionStore())
        assert session.started is False
        session.start()
        assert session.started is True
        assert session.id

    def test_unknown_id_is_not_adopted(self) -> None:
        session = Session(MemorySessionStore(), "attacker-chosen")
        session.start()
        assert session.id != "attacker-chosen"

    def test_known_id_loads_data(self) -> None:
        store = MemorySessionStore()
        store.save("abc", {"name": "alice"})
        session = Session(store, "abc")
        session.start()
        assert session.id == "abc"
        assert session.get("name") == "alice"

    def test_get_with_default(self) -> None:
        session = Session(MemorySessionStore())
        assert session.get("missing") is None
        assert session.get("missing", "fallback") == "fallback"

    def test_set_remove_clear(self) -> None:
        session = Session(MemorySessionStore())
        session.set("a", 1)
        session.set("b", 2)
        assert "a" in session
        session.remove("a")
        assert "a" not in session
        assert sorted(session) == ["b"]
        session.clear()
        assert session.items() == []

    def test_regenerate_once(self) -> None:
        session = Session(MemorySessionStore())
        session.start()
        original = session.id
        session.regenerate()
        regenerated = session.id
        session.regenerate()
        assert regenerated != original
        assert session.id == regenerated
        assert session.regenerated is True

    def test_regenerate_keeps_data(self) -> None:
        session = Session(MemorySessionStore())
        session.set("name", "alice")
        session.regenerate()
        assert session.get("name") == "alice"

    def test_regenerate_destroys_old_id_on_save(self) -> None:
        store = MemorySessionStore()
        store.save("old", {"x": 1})
        session = Session(store, "old")
        session.regenerate()
        session.save()
        assert store.load("old") is None
        assert store.load(session.id) == {"x": 1}
        assert len(store) == 1

    def test_regenerate_without_destroy_keeps_old_id(self) -> None:
        store = MemorySessionStore()
        store.save("old", {})
        session = Session(store, "old")
        session.regenerate(destroy=False)
        session.save()
        assert store.load("old") == {}

    def test_set_authenticated(self) -> None:
        session = Session(MemorySessionStore())
        session.start()
        original = session.id
        assert session.is_authenticated() is False

        session.set_authenticated(True)
        assert session.is_authenticated() is True
        after_first = session.id
        assert after_first != original

        session.set_authenticated(True)
        assert session.id == after_first
        assert session.get(AUTHENTICATED_KEY) is True

    def test_set_unauthenticated(self) -> None:
        session = Session(MemorySessionStore())
        session.set_authenticated(True)
        session.set_authenticated(False)
        assert session.is_authenticated() is False

    def test_flags_are_per_instance(self) -> None:
        store = MemorySessionStore()
        first = Session(store)
        first.regenerate()
        first.save()

        second = Session(store, first.id)
        assert second.regenerated is False
        second.regenerate()
        assert second.id != first.id

    def test_save_before_start_is_noop(self) -> None:
        store = MemorySessionStore()
        Session(store).save()
        assert len(store) == 0

    def test_unmodified_session_is_not_saved(self) -> None:
        store = MemorySessionStore()
        session = Session(store)
        session.start()
        session.remove("missing")
        session.clear()
        assert session.modified is False
        assert session.save() is False
        assert len(store) == 0

    def test_modified_session_saved_once(self) -> None:
        store = MemorySessionStore()
        session = Session(store)
        session.set("a", 1)
        assert session.modified is True
        assert session.save() is True
        assert session.modified is False
        assert session.save() is False
        assert store.load(session.id) == {"a": 1}


class TestMemorySessionStore:
    def test_copies_in_and_out(self) -> None:
        store = MemorySessionStore()
        data = {"a": 1}
        store.save("id", data)
        data["a"] = 2
        loaded = store.load("id")
        assert loaded == {"a": 1}
        loaded["a"] = 3
        assert store.load("id") == {"a": 1}

    def test_delete_missing_is_noop(self) -> None:
        MemorySessionStore().delete("nope")

    def test_expired_entry_loads_as_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        now = [1000.0]
        monkeypatch.setattr("roost.sessions.time.monotonic", lambda: now[0])
        store = MemorySessionStore(max_age=60)
        store.save("id", {"a": 1})

        now[0] += 30
        assert store.load("id") == {"a": 1}
        now[0] += 61
        assert store.load("id") is None
        assert len(store) == 0

    def test_load_refreshes_last_access(self, monkeypatch: pytest.MonkeyPatch) -> None:
        now = [1000.0]
        monkeypatch.setattr("roost.sessions.time.monotonic", lambda: now[0])
        store = MemorySessionStore(max_age=60)
        store.save("id", {"a": 1})
        for _ in range(3):
            now[0] += 50
            assert store.load("id") == {"a": 1}

    def test_save_prunes_expired_entries(self, monkeypatch: pytest.MonkeyPatch) -> None:
        now = [1000.0]
        monkeypatch.setattr("roost.sessions.time.monotonic", lambda: now[0])
        store = MemorySessionStore(max_age=60)
        store.save("old", {})
        store.save("older", {})
        now[0] += 120
        store.save("new", {"a": 1})
        assert len(store) == 1
        assert store.load("new") == {"a": 1}

    def test_no_max_age_never_expires(self, monkeypatch: pytest.MonkeyPatch) -> None:
        now = [1000.0]
        monkeypatch.setattr("roost.sessions.time.monotonic", lambda: now[0])
        store = MemorySessionStore()
        store.save("id", {})
        now[0] += 10**9
        assert store.load("id") == {}


class TestSessionManager:
    def test_requires_secret_key(self) -> None:
        with pytest.raises(ConfigurationError, match="secret_key"):
            SessionManager(SessionConfig(secret_key=""))

    def test_modified_session_sets_signed_cookie(self) -> None:
        manager = SessionManager(SessionConfig(secret_key="k"))
        session = manager.open(_request())
        session.set("name", "alice")
        response = manager.close(session, Response())

        (cookie,) = response.cookies
        assert cookie.name == "roost_session"
        assert cookie.httponly is True
        assert cookie.max_age == 86400
        serializer = URLSafeTimedSerializer("k", salt="roost.session")
        assert serializer.loads(cookie.value) == session.id

    def test_cookie_round_trip(self) -> None:
        manager = SessionManager(SessionConfig(secret_key="k"))
        session = manager.open(_request())
        session.set("name", "alice")
        cookie = manager.close(session, Response()).cookies[0]

        again = manager.open(_request(f"roost_session={cookie.value}"))
        assert again.id == session.id
        assert again.get("name") == "alice"

    def test_bad_signature_starts_new_session(self) -> None:
        manager = SessionManager(SessionConfig(secret_key="k"))
        session = manager.open(_request())
        session.set("name", "alice")
        manager.close(session, Response())

        forged = URLSafeTimedSerializer("other", salt="roost.session").dumps(session.id)
        again = manager.open(_request(f"roost_session={forged}"))
        assert again.id != session.id
        assert again.get("name") is None

    def test_regenerated_session_cookie_carries_new_id(self) -> None:
        store = MemorySessionStore()
        manager = SessionManager(SessionConfig(secret_key="k"), store)
        session = manager.open(_request())
        session.set("name", "alice")
        manager.close(session, Response())
        old_id = session.id
        assert store.load(old_id) == {"name": "alice"}

        session.set_authenticated(True)
        cookie = manager.close(session, Response()).cookies[0]
        serializer = URLSafeTimedSerializer("k", salt="roost.session")
        assert serializer.loads(cookie.value) == session.id
        assert store.load(old_id) is None
        assert store.load(session.id)["name"] == "alice"

    def test_untouched_session_sets_no_cookie(self) -> None:
        store = MemorySessionStore()
        manager = SessionManager(SessionConfig(secret_key="k"), store)
        session = manager.open(_request())
        session.get("anything")

        response = manager.close(session, Response())
        assert response.cookies == ()
        assert len(store) == 0

    def test_cookieless_requests_do_not_grow_store(self) -> None:
        store = MemorySessionStore()
        manager = SessionManager(SessionConfig(secret_key="k"), store)
        for _ in range(500):
            session = manager.open(_request())
            manager.close(session, Response())
        assert len(store) == 0

    def test_reading_existing_session_does_not_resave(self) -> None:
        store = MemorySessionStore()
        manager = SessionManager(SessionConfig(secret_key="k"), store)
        session = manager.open(_request())
        session.set("name", "alice")
        cookie = manager.close(session, Response()).cookies[0]

        again = manager.open(_request(f"roost_session={cookie.value}"))
        assert again.get("name") == "alice"
        assert manager.close(again, Response()).cookies == ()
        assert len(store) == 1

    def test_default_store_expires_with_max_age(self) -> None:
        manager = SessionManager(SessionConfig(secret_key="k", max_age=60))
        assert isinstance(manager.store, MemorySessionStore)
        assert manager.store.max_age == 60
