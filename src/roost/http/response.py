"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response. Immutable by convention,
built incrementally by design. The dispatch loop keeps the current
Response on the request context; controllers replace it as they go.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from http import HTTPStatus


def status_text(status: int) -> str:
    """Standard reason phrase for *status*, empty for unknown codes."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A ``Set-Cookie`` directive attached to a Response."""

    name: str
    value: str
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"

    def to_header_value(self) -> str:
        """Serialize to a ``Set-Cookie`` header value string."""
        parts = [f"{self.name}={self.value}"]
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        if self.samesite:
            parts.append(f"SameSite={self.samesite}")
        return "; ".join(parts)


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    ``headers`` holds at most one value per name (case-insensitive);
    setting a header again replaces it. Cookies are kept separately
    because a response may carry several.
    """

    body: str = ""
    status: int = 200
    reason: str = "OK"
    content_type: str = "text/html; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()
    cookies: tuple[SetCookie, ...] = ()

    # -- Chainable transformations --

    def with_body(self, body: str) -> Response:
        """Return a new Response with different content."""
        return replace(self, body=body)

    def with_status(self, status: int, reason: str | None = None) -> Response:
        """Return a new Response with a different status line.

        *reason* defaults to the standard phrase for *status*.
        """
        return replace(self, status=status, reason=status_text(status) if reason is None else reason)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with *name* set to *value*."""
        lowered = name.lower()
        kept = tuple((n, v) for n, v in self.headers if n.lower() != lowered)
        return replace(self, headers=(*kept, (name, value)))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def with_redirect(self, url: str, status: int = 302) -> Response:
        """Return a new Response that redirects to *url*."""
        return self.with_status(status).with_header("Location", url)

    def with_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: str = "lax",
    ) -> Response:
        """Return a new Response with an additional Set-Cookie."""
        cookie = SetCookie(
            name=name,
            value=value,
            max_age=max_age,
            path=path,
            domain=domain,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
        )
        return replace(self, cookies=(*self.cookies, cookie))

    # -- Read side --

    @property
    def status_line(self) -> str:
        """``"404 Not Found"`` — the WSGI status string."""
        return f"{self.status} {self.reason}".rstrip()

    @property
    def header_map(self) -> dict[str, str]:
        """Headers as a name → value dict."""
        return dict(self.headers)

    @property
    def body_bytes(self) -> bytes:
        """Body encoded as UTF-8."""
        return self.body.encode("utf-8")
