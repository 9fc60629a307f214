"""Per-request context.

A ``RequestContext`` bundles everything a controller needs for one
request: the app, the request, the response being built, the session,
and the data-access handle. The dispatch loop creates one per request
and hands it to every controller it constructs for that request.

``get_context()`` returns the context of the request being dispatched,
for template globals that need the session (``csrf_field``).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from roost.data.database import DataSession
from roost.http.request import Request
from roost.http.response import Response
from roost.sessions import Session

if TYPE_CHECKING:
    from roost.app import App


@dataclass(slots=True)
class RequestContext:
    """Shared per-request state.

    ``response`` is replaced (not mutated) as controllers set status,
    headers, and content.
    """

    app: App
    request: Request
    session: Session
    response: Response = Response()
    _data: DataSession | None = field(default=None, repr=False)

    @property
    def db(self) -> DataSession | None:
        """The data-access handle, opened on first access.

        ``None`` when the app has no database.
        """
        if self._data is None and self.app.database is not None:
            self._data = self.app.database.open()
        return self._data

    def close(self) -> None:
        """Release the data-access handle, if one was opened."""
        if self._data is not None:
            self._data.close()
            self._data = None


context_var: ContextVar[RequestContext] = ContextVar("roost_context")
"""The context of the request being dispatched."""


def get_context() -> RequestContext:
    """Return the current request context.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()


@contextmanager
def bind_context(ctx: RequestContext) -> Iterator[RequestContext]:
    """Make *ctx* the current context for the duration of the block."""
    token = context_var.set(ctx)
    try:
        yield ctx
    finally:
        context_var.reset(token)
