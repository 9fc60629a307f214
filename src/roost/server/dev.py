"""Development server.

Serves a roost App with the stdlib ``wsgiref`` server: single process,
single thread, one request at a time.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from wsgiref.simple_server import make_server

if TYPE_CHECKING:
    from roost.app import App

logger = logging.getLogger("roost.server")


def run_dev_server(app: App, host: str, port: int) -> None:
    """Serve *app* on *host*:*port* until interrupted."""
    logging.basicConfig(
        level=app.config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    with make_server(host, port, app) as server:
        logger.info("Serving on http://%s:%d (debug=%s)", host, port, app.config.debug)
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Shutting down")
