"""Immutable HTTP request built from a WSGI environ.

Frozen metadata with lazily-read body. The request is honest about
what it is: received data that doesn't change.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from roost.http.forms import FormData, parse_form
from roost.http.headers import Headers
from roost.http.query import QueryParams


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    Returns an empty dict for empty or missing headers.
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        pair = pair.strip()
        if "=" in pair:
            key, _, value = pair.partition("=")
            cookies[key.strip()] = value.strip()
    return cookies


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path`` is the WSGI ``PATH_INFO`` — the part of the URL the router
    sees. ``base_url`` is ``SCRIPT_NAME``, the mount point of the app.
    Cookies are parsed once at creation time.
    """

    method: str
    path: str
    base_url: str
    host: str
    scheme: str
    headers: Headers
    query: QueryParams
    cookies: Mapping[str, str]

    # Private: the WSGI environ, for body access
    _environ: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # Private: mutable cache for body and parsed form data
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def is_post(self) -> bool:
        return self.method == "POST"

    @property
    def is_ssl(self) -> bool:
        return self.scheme == "https"

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int:
        """The Content-Length header as int, ``0`` when absent or malformed."""
        try:
            return int(self.headers.get("content-length") or 0)
        except ValueError:
            return 0

    @property
    def url(self) -> str:
        """Full request URL path (base URL + path + query string)."""
        url = f"{self.base_url}{self.path}"
        if self.query.raw:
            return f"{url}?{self.query.raw}"
        return url

    # -- Parameter lookups --

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return a query string value, or *default*."""
        return self.query.get(name, default)

    def post(self, name: str, default: str | None = None) -> str | None:
        """Return a submitted form value, or *default*."""
        return self.form().get(name, default)

    # -- Body access --

    def body(self) -> bytes:
        """Read the full request body.

        Result is cached — ``wsgi.input`` is consumed once, then the same
        bytes are returned on subsequent calls.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        length = self.content_length
        stream = self._environ.get("wsgi.input")
        result = stream.read(length) if stream is not None and length > 0 else b""
        self._cache["_body"] = result
        return result

    def form(self) -> FormData:
        """Parse the body as URL-encoded form data. Cached."""
        if "_form" in self._cache:
            return self._cache["_form"]
        result = parse_form(self.body(), self.content_type)
        self._cache["_form"] = result
        return result

    # -- Factory --

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> Request:
        """Create a Request from a WSGI environ."""
        headers = Headers.from_environ(environ)
        host = headers.get("host") or str(environ.get("SERVER_NAME", ""))
        return cls(
            method=str(environ.get("REQUEST_METHOD", "GET")).upper(),
            path=str(environ.get("PATH_INFO", "")),
            base_url=str(environ.get("SCRIPT_NAME", "")).rstrip("/"),
            host=host,
            scheme=str(environ.get("wsgi.url_scheme", "http")),
            headers=headers,
            query=QueryParams(str(environ.get("QUERY_STRING", ""))),
            cookies=parse_cookies(headers.get("cookie", "") or ""),
            _environ=environ,
        )
