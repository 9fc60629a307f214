"""Error pages for the dispatch loop.

Only not-found conditions get a page here. Unauthorized requests are
answered with the login action, and every other exception propagates
to the WSGI server.
"""

import html
import logging

from roost.errors import NotFound
from roost.http.request import Request
from roost.http.response import Response

logger = logging.getLogger("roost.server")

GENERIC_NOT_FOUND = "Page not found."

_PAGE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>404</title>
</head>
<body>
    {message}
</body>
</html>
"""


def render_not_found(exc: NotFound, request: Request, response: Response, *, debug: bool) -> Response:
    """Turn *response* into the 404 page for *exc*.

    Debug mode shows the exception detail; otherwise a generic message.
    Either way the text is HTML-escaped.
    """
    logger.debug("404 %s %s — %s", request.method, request.path, exc.detail)
    message = exc.detail if debug else GENERIC_NOT_FOUND
    body = _PAGE.format(message=html.escape(message, quote=True))
    return response.with_status(404).with_body(body)
