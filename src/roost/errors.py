"""Roost exception hierarchy.

Shared across Router, App, Controller, and the session layer so every
module raises and catches the same types.
"""

from dataclasses import dataclass


class RoostError(Exception):
    """Base for all roost-specific errors."""


class ConfigurationError(RoostError):
    """Raised when app configuration is invalid.

    Typically raised while compiling routes or during ``App._freeze()``.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(RoostError):
    """An error that maps directly to an HTTP status code."""

    status: int
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — no route, no controller, or no action for the request.

    The dispatch loop renders it as a 404 page and stops.
    """

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class Unauthorized(RoostError):  # noqa: N818
    """A gated action was requested without an authenticated session.

    Never surfaced to the client. The dispatch loop answers it by running
    the configured login action instead.
    """

    def __init__(self, controller: str = "", action: str = "") -> None:
        self.controller = controller
        self.action = action
        super().__init__(f"{controller}/{action} requires an authenticated session")
