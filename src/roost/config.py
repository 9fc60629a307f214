"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(
            debug=True,
            secret_key="s3cr3t",
            login_action=("account", "signin"),
        )
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Security
    secret_key: str = ""

    # Where unauthenticated requests for gated actions are sent.
    # (controller, action); must name an ungated action.
    login_action: tuple[str, str] | None = None

    # Templates
    template_dir: str | Path = "views"
    template_suffix: str = ".html"
    default_layout: str | None = "layout"
    autoescape: bool = True

    # Sessions
    session_cookie: str = "roost_session"
    session_max_age: int = 86400  # 24 hours
    session_secure: bool = False

    # Logging
    log_level: str = "info"
