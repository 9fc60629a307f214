"""Test client for roost applications.

Uses the same Request and Response types as production.
No wrapper translation layer.
"""

from __future__ import annotations

import io
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

from roost.app import App
from roost.http.forms import FORM_URLENCODED
from roost.http.response import Response


def assert_redirects_to(response: Response, location: str, *, status: int = 302) -> None:
    """Assert the response is a redirect to *location*."""
    assert response.status == status, f"Expected status {status}, got {response.status}"
    actual = response.header_map.get("Location")
    assert actual == location, f"Expected redirect to {location!r}, got {actual!r}"


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """Synchronous test client for roost applications.

    Returns the same ``Response`` type used in production. Sends requests
    through the WSGI interface directly — no HTTP involved. Cookies set
    by the app are kept and sent back, so sessions survive across calls.

    Usage::

        with TestClient(app) as client:
            response = client.get("/")
            assert response.status == 200
    """

    __slots__ = ("app", "cookies")

    def __init__(self, app: App) -> None:
        self.app = app
        self.cookies: dict[str, str] = {}

    def __enter__(self) -> TestClient:
        self.app._ensure_frozen()
        return self

    def __exit__(self, *args: object) -> None:
        pass

    def get(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        query: Mapping[str, str] | None = None,
    ) -> Response:
        """Send a GET request."""
        if query:
            path = f"{path}?{urlencode(query)}"
        return self.request("GET", path, headers=headers)

    def post(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        data: Mapping[str, str] | None = None,
        body: bytes | None = None,
    ) -> Response:
        """Send a POST request.

        *data* is sent as an urlencoded form; *body* is sent as-is.
        """
        extra_headers: dict[str, str] = {}
        request_body = body or b""

        if data is not None:
            request_body = urlencode(data).encode("utf-8")
            extra_headers["content-type"] = FORM_URLENCODED

        merged = {**extra_headers, **(headers or {})}
        return self.request("POST", path, headers=merged, body=request_body)

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Response:
        """Send an arbitrary request through the WSGI app."""
        # Split path and query string
        path_part, _, query_string = path.partition("?")
        request_body = body or b""

        # Build WSGI environ
        environ: dict[str, Any] = {
            "REQUEST_METHOD": method.upper(),
            "SCRIPT_NAME": "",
            "PATH_INFO": path_part,
            "QUERY_STRING": query_string,
            "SERVER_NAME": "testserver",
            "SERVER_PORT": "80",
            "SERVER_PROTOCOL": "HTTP/1.1",
            "HTTP_HOST": "testserver",
            "wsgi.version": (1, 0),
            "wsgi.url_scheme": "http",
            "wsgi.input": io.BytesIO(request_body),
            "wsgi.errors": io.StringIO(),
            "wsgi.multithread": False,
            "wsgi.multiprocess": False,
            "wsgi.run_once": False,
            "CONTENT_LENGTH": str(len(request_body)),
        }
        if self.cookies:
            environ["HTTP_COOKIE"] = "; ".join(f"{k}={v}" for k, v in self.cookies.items())
        for name, value in (headers or {}).items():
            key = name.upper().replace("-", "_")
            if key in {"CONTENT_TYPE", "CONTENT_LENGTH"}:
                environ[key] = value
            else:
                environ[f"HTTP_{key}"] = value

        # Capture status and headers via start_response
        captured: dict[str, Any] = {}

        def start_response(status: str, response_headers: list[tuple[str, str]], exc_info: Any = None) -> None:
            captured["status"] = status
            captured["headers"] = response_headers

        body_bytes = b"".join(self.app(environ, start_response))

        # Build roost Response from captured data
        code, _, reason = captured["status"].partition(" ")
        content_type = "text/html; charset=utf-8"
        extra_headers: list[tuple[str, str]] = []
        for name, value in captured["headers"]:
            lowered = name.lower()
            if lowered == "content-type":
                content_type = value
            elif lowered == "set-cookie":
                self._store_cookie(value)
                extra_headers.append((name, value))
            elif lowered != "content-length":
                extra_headers.append((name, value))

        return Response(
            body=body_bytes.decode("utf-8"),
            status=int(code),
            reason=reason,
            content_type=content_type,
            headers=tuple(extra_headers),
        )

    def _store_cookie(self, header_value: str) -> None:
        pair = header_value.split(";", 1)[0]
        name, _, value = pair.partition("=")
        self.cookies[name.strip()] = value.strip()
