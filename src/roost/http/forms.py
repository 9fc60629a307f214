"""Form body parsing.

Only ``application/x-www-form-urlencoded`` bodies are decoded; any other
content type yields an empty ``FormData``.
"""

import logging

from roost.http.query import QueryParams

logger = logging.getLogger("roost.server")

FORM_URLENCODED = "application/x-www-form-urlencoded"


class FormData(QueryParams):
    """Immutable submitted form fields. Same API as ``QueryParams``."""

    __slots__ = ()


def parse_form(body: bytes, content_type: str | None) -> FormData:
    """Decode a request body into ``FormData``."""
    media_type = (content_type or FORM_URLENCODED).split(";", 1)[0].strip().lower()
    if media_type != FORM_URLENCODED:
        logger.debug("Ignoring form body with content type %r", media_type)
        return FormData()
    return FormData(body.decode("utf-8", errors="replace"))
