"""Form-scoped, single-use CSRF tokens stored in the session.

Each form name keeps its own list of outstanding tokens under
``csrf_tokens/<form_name>``. Issuing a token appends to the list and
evicts the oldest entry once more than ``MAX_TOKENS`` are outstanding,
so several open copies of the same form stay valid at once. Checking a
token consumes it.

Usage::

    token = generate_csrf_token(session, "account/signin")
    ...
    if not check_csrf_token(session, "account/signin", submitted):
        ...

Templates::

    <form method="post">
        {{ csrf_field("account/signin") }}
        ...
    </form>
"""

import hmac
import secrets
from typing import Any, Protocol

from kida.template import Markup

# Outstanding tokens kept per form name
MAX_TOKENS = 10

# Bytes of randomness per token (hex-encoded, so twice as many characters)
TOKEN_BYTES = 32

FIELD_NAME = "_token"


class _SessionLike(Protocol):
    def get(self, name: str, default: Any = None) -> Any: ...

    def set(self, name: str, value: Any) -> None: ...


def session_key(form_name: str) -> str:
    """The session key holding the token list for *form_name*."""
    return f"csrf_tokens/{form_name}"


def generate_csrf_token(session: _SessionLike, form_name: str) -> str:
    """Issue a new token for *form_name* and record it in the session."""
    key = session_key(form_name)
    tokens = list(session.get(key, []))
    while len(tokens) >= MAX_TOKENS:
        tokens.pop(0)

    token = secrets.token_hex(TOKEN_BYTES)
    tokens.append(token)
    session.set(key, tokens)
    return token


def check_csrf_token(session: _SessionLike, form_name: str, token: str | None) -> bool:
    """Consume *token* if it is outstanding for *form_name*.

    Returns ``True`` and removes the token when it matches; returns
    ``False`` and leaves the session untouched otherwise.
    """
    if not token:
        return False
    key = session_key(form_name)
    tokens = list(session.get(key, []))
    submitted = token.encode("utf-8")
    for index, candidate in enumerate(tokens):
        if hmac.compare_digest(candidate.encode("utf-8"), submitted):
            del tokens[index]
            session.set(key, tokens)
            return True
    return False


def csrf_field(session: _SessionLike, form_name: str) -> Markup:
    """Render a hidden input carrying a fresh token for *form_name*.

    Renders: ``<input type="hidden" name="_token" value="...">``
    """
    token = generate_csrf_token(session, form_name)
    return Markup(f'<input type="hidden" name="{FIELD_NAME}" value="{token}">')
