"""Mini Blog — accounts with signup, signin, and a members-only page.

A user repository on SQLite, CSRF-checked forms, and the login action:
anonymous requests for ``/account`` are answered by the sign-in form.

Demonstrates:
- explicit route table with a ``:user_name`` capture
- ``Controller`` with ``auth_actions`` and ``@action``
- ``csrf_field()`` in templates, ``check_csrf_token`` in handlers
- ``Repository`` subclass registered on the ``Database``
- ``hash_password`` / ``verify_password``

Run:
    python examples/miniblog/app.py
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Any

from roost import App, AppConfig, Controller, action
from roost.data import Database, Repository
from roost.security import hash_password, verify_password
from roost.security.csrf import FIELD_NAME

TEMPLATES_DIR = Path(__file__).parent / "views"

SCHEMA = """
CREATE TABLE IF NOT EXISTS user (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_name TEXT NOT NULL UNIQUE,
    password TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""

USER_NAME_PATTERN = re.compile(r"\w{3,20}")

ROUTES = [
    ("/", {"controller": "account", "action": "index"}),
    ("/account", {"controller": "account", "action": "index"}),
    ("/account/signup", {"controller": "account", "action": "signup"}),
    ("/account/register", {"controller": "account", "action": "register"}),
    ("/account/signin", {"controller": "account", "action": "signin"}),
    ("/account/authenticate", {"controller": "account", "action": "authenticate"}),
    ("/account/signout", {"controller": "account", "action": "signout"}),
    ("/user/:user_name", {"controller": "account", "action": "profile"}),
]


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class UserRepository(Repository):
    """User rows. Reads are ``fetch_by_<column>``; writes take plain values."""

    def create(self, user_name: str, password: str) -> int | None:
        return self.insert(
            "INSERT INTO user (user_name, password, created_at) VALUES (?, ?, ?)",
            (user_name, hash_password(password), datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
        )

    def fetch_by_user_name(self, user_name: str) -> dict[str, Any] | None:
        return self.fetch_one("SELECT * FROM user WHERE user_name = ?", (user_name,))

    def is_unique_user_name(self, user_name: str) -> bool:
        count = self.fetch_val("SELECT COUNT(id) FROM user WHERE user_name = ?", (user_name,))
        return count == 0


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class AccountController(Controller):
    auth_actions = {"index", "signout"}

    @property
    def users(self) -> UserRepository:
        return self.db.repository("user")

    @action
    def index(self, params: dict[str, str]) -> str:
        return self.render({"title": "Account", "user": self.session.get("user")})

    @action
    def profile(self, params: dict[str, str]) -> str:
        user = self.users.fetch_by_user_name(params["user_name"])
        if user is None:
            self.forward_404()
        return self.render({"title": user["user_name"], "user_name": user["user_name"]})

    @action
    def signup(self, params: dict[str, str]) -> str | None:
        if self.session.is_authenticated():
            return self.redirect("/account")
        return self._signup_form()

    @action
    def register(self, params: dict[str, str]) -> str | None:
        if not self.request.is_post:
            self.forward_404()
        if self.session.is_authenticated():
            return self.redirect("/account")

        if not self.check_csrf_token("account/signup", self.request.post(FIELD_NAME)):
            return self.redirect("/account/signup")

        user_name = self.request.post("user_name", "") or ""
        password = self.request.post("password", "") or ""
        errors = self._validate_signup(user_name, password)
        if errors:
            return self._signup_form(user_name, errors)

        self.users.create(user_name, password)
        self._sign_in(user_name)
        return self.redirect("/account")

    @action
    def signin(self, params: dict[str, str]) -> str | None:
        if self.session.is_authenticated():
            return self.redirect("/account")
        return self._signin_form()

    @action
    def authenticate(self, params: dict[str, str]) -> str | None:
        if not self.request.is_post:
            self.forward_404()
        if self.session.is_authenticated():
            return self.redirect("/account")

        if not self.check_csrf_token("account/signin", self.request.post(FIELD_NAME)):
            return self.redirect("/account/signin")

        user_name = self.request.post("user_name", "") or ""
        password = self.request.post("password", "") or ""
        errors = []
        if not user_name:
            errors.append("Enter a user name.")
        if not password:
            errors.append("Enter a password.")
        if not errors:
            user = self.users.fetch_by_user_name(user_name)
            if user is None or not verify_password(password, user["password"]):
                errors.append("Invalid user name or password.")
        if errors:
            return self._signin_form(user_name, errors)

        self._sign_in(user_name)
        return self.redirect("/account")

    @action
    def signout(self, params: dict[str, str]) -> None:
        self.session.clear()
        self.session.set_authenticated(False)
        self.redirect("/account/signin")

    # -- Helpers --

    def _sign_in(self, user_name: str) -> None:
        user = self.users.fetch_by_user_name(user_name)
        if user is None:
            self.forward_404()
        self.session.set_authenticated(True)
        self.session.set("user", {"id": user["id"], "user_name": user["user_name"]})

    def _validate_signup(self, user_name: str, password: str) -> list[str]:
        errors = []
        if not user_name:
            errors.append("Enter a user name.")
        elif not USER_NAME_PATTERN.fullmatch(user_name):
            errors.append("User names are 3 to 20 letters, digits, or underscores.")
        elif not self.users.is_unique_user_name(user_name):
            errors.append("That user name is already taken.")

        if not password:
            errors.append("Enter a password.")
        elif not 4 <= len(password) <= 30:
            errors.append("Passwords are 4 to 30 characters.")
        return errors

    def _signup_form(self, user_name: str = "", errors: list[str] | None = None) -> str:
        return self.render(
            {"title": "Sign up", "user_name": user_name, "errors": errors or []},
            template="signup",
        )

    def _signin_form(self, user_name: str = "", errors: list[str] | None = None) -> str:
        return self.render(
            {"title": "Sign in", "user_name": user_name, "errors": errors or []},
            template="signin",
        )


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------


def create_app(database_url: str = "sqlite:///miniblog.db") -> App:
    """Build the app and make sure the schema exists."""
    db = Database(database_url)
    db.register_repository("user", UserRepository)
    with db.open() as data:
        data.execute_script(SCHEMA)

    app = App(
        AppConfig(
            secret_key="change-me-in-production",
            template_dir=TEMPLATES_DIR,
            login_action=("account", "signin"),
        ),
        routes=ROUTES,
        db=db,
    )
    app.register_controller("account", AccountController)
    return app


if __name__ == "__main__":
    create_app().run()
