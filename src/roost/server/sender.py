"""WSGI response sending — translates a roost Response into start_response + body.

This is the single exit point of a request: the status line, headers,
and body are emitted exactly once.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from roost.http.response import Response

logger = logging.getLogger("roost.server")

type StartResponse = Callable[..., Any]


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def build_headers(response: Response, body: bytes) -> list[tuple[str, str]]:
    """Header list for *response*: content type, custom headers, cookies, length."""
    headers: list[tuple[str, str]] = [("Content-Type", response.content_type)]
    headers.extend(response.headers)
    headers.extend(("Set-Cookie", cookie.to_header_value()) for cookie in response.cookies)
    headers.append(("Content-Length", str(len(body))))
    return headers


def send_response(response: Response, start_response: StartResponse) -> Iterable[bytes]:
    """Emit *response* through WSGI ``start_response`` and return the body iterable."""
    body = response.body_bytes if _body_allowed(response.status) else b""
    start_response(response.status_line, build_headers(response, body))
    logger.debug("Sent %s (%d bytes)", response.status_line, len(body))
    return [body]
