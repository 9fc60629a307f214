"""Kida environment setup and app binding.

Creates a kida Environment from roost's AppConfig and binds
user-registered filters and globals. The environment is created
once during App._freeze() and shared by every request.
"""

from collections.abc import Callable
from typing import Any

from kida import Environment, FileSystemLoader
from kida.template import Markup

from roost.config import AppConfig
from roost.context import get_context
from roost.security.csrf import csrf_field


def _csrf_field(form_name: str) -> Markup:
    """``{{ csrf_field("account/signin") }}`` — hidden token input for the current session."""
    return csrf_field(get_context().session, form_name)


def bind_globals(
    env: Environment,
    filters: dict[str, Callable[..., Any]],
    globals_: dict[str, Any],
) -> Environment:
    """Register roost's built-in globals, then user filters and globals."""
    env.add_global("csrf_field", _csrf_field)

    if filters:
        env.update_filters(filters)

    for name, value in globals_.items():
        env.add_global(name, value)

    return env


def create_environment(
    config: AppConfig,
    filters: dict[str, Callable[..., Any]],
    globals_: dict[str, Any],
) -> Environment:
    """Create a kida Environment from app configuration.

    Called once during ``App._freeze()``. Templates are loaded from
    ``config.template_dir``; debug mode re-reads them on change.
    """
    env = Environment(
        loader=FileSystemLoader(str(config.template_dir)),
        autoescape=config.autoescape,
        auto_reload=config.debug,
    )
    return bind_globals(env, filters, globals_)
