"""Layout-aware view rendering.

A view renders a content template to a string, then — when a layout is
given — renders the layout with that string available as ``_content``.
Both steps return strings; nothing is written as a side effect.
"""

import html
from collections.abc import Mapping
from typing import Any

from kida import Environment
from kida.template import Markup


class View:
    """Renders ``<path><suffix>`` templates with shared defaults.

    Usage::

        view = View(env, {"base_url": request.base_url})
        view.set_layout_var("title", "Sign in")
        page = view.render("account/signin", {"user_name": ""}, layout="layout")

    Layouts see the defaults, the page variables, any layout variables,
    and the rendered page as ``_content`` (already marked safe).
    """

    __slots__ = ("_defaults", "_env", "_layout_vars", "_suffix")

    def __init__(
        self,
        env: Environment,
        defaults: Mapping[str, Any] | None = None,
        *,
        suffix: str = ".html",
    ) -> None:
        self._env = env
        self._defaults = dict(defaults or {})
        self._layout_vars: dict[str, Any] = {}
        self._suffix = suffix

    def set_layout_var(self, name: str, value: Any) -> None:
        """Expose *value* to the layout as *name*."""
        self._layout_vars[name] = value

    def render(
        self,
        path: str,
        variables: Mapping[str, Any] | None = None,
        layout: str | None = None,
    ) -> str:
        """Render *path*, wrapped in *layout* when given."""
        context = {**self._defaults, **(variables or {})}
        content = self._env.get_template(path + self._suffix).render(context)
        if not layout:
            return content
        layout_context = {**context, **self._layout_vars, "_content": Markup(content)}
        return self._env.get_template(layout + self._suffix).render(layout_context)

    @staticmethod
    def escape(value: Any) -> str:
        """HTML-escape *value* for manual string building."""
        return html.escape(str(value), quote=True)
