"""Controllers — named bundles of action handlers.

A controller subclass marks its handlers with ``@action``. The set of
actions is collected once, when the class is defined, into an explicit
``actions`` registry (action name → method name); nothing is looked up
by string concatenation at request time.

Usage::

    class UserController(Controller):
        auth_actions = {"edit"}

        @action
        def show(self, params):
            user = self.db.repository("user").fetch_by_id(params["id"])
            if user is None:
                self.forward_404()
            return self.render({"user": user})

        @action("edit")
        def edit_form(self, params):
            return self.render({"_token": self.generate_csrf_token("user/edit")})

Authentication gate: an action is gated when ``auth_actions`` is ``True``,
when its name is in ``auth_actions``, or when it was declared with
``@action(auth=True)``. ``run()`` raises ``Unauthorized`` for a gated
action on an unauthenticated session before the handler runs.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Collection, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, NoReturn, overload

from roost.errors import NotFound, Unauthorized
from roost.http.response import Response
from roost.security.csrf import check_csrf_token, generate_csrf_token
from roost.templating.view import View

if TYPE_CHECKING:
    from roost.app import App
    from roost.context import RequestContext
    from roost.data.database import DataSession

type ActionHandler = Callable[[Any, dict[str, str]], str | None]

_ACTION_MARKER = "_roost_action"
_ABSOLUTE_URL = re.compile(r"https?://")

# Sentinel: "use the app's default layout"
_DEFAULT_LAYOUT = object()


@overload
def action(name: ActionHandler, *, auth: bool = False) -> ActionHandler: ...


@overload
def action(
    name: str | None = None, *, auth: bool = False
) -> Callable[[ActionHandler], ActionHandler]: ...


def action(name: Any = None, *, auth: bool = False) -> Any:
    """Mark a controller method as an action handler.

    Works bare (``@action``, action name = method name) or called
    (``@action("signin", auth=False)``). Handlers take the resolved
    route params and return the response content.
    """

    def decorator(func: ActionHandler) -> ActionHandler:
        action_name = name if isinstance(name, str) else func.__name__
        setattr(func, _ACTION_MARKER, (action_name, auth))
        return func

    if callable(name):
        return decorator(name)
    return decorator


def _controller_name(cls_name: str) -> str:
    if cls_name.endswith("Controller") and cls_name != "Controller":
        cls_name = cls_name[: -len("Controller")]
    return cls_name.lower()


def _normalize_auth_actions(value: bool | str | Collection[str]) -> bool | frozenset[str]:
    # A bare string names one action, not a set of characters.
    if value is True:
        return True
    if not value:
        return frozenset()
    if isinstance(value, str):
        return frozenset({value})
    return frozenset(value)


class Controller:
    """Base class for controllers.

    Subclasses get:

    - ``name`` — defaults to the class name, lower-cased, without a
      ``Controller`` suffix. Also the template directory.
    - ``actions`` — read-only action name → method name registry,
      including inherited actions.
    """

    name: ClassVar[str] = ""
    auth_actions: ClassVar[bool | str | Collection[str]] = frozenset()
    actions: ClassVar[Mapping[str, str]] = MappingProxyType({})
    _gated_actions: ClassVar[frozenset[str]] = frozenset()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "name" not in vars(cls):
            cls.name = _controller_name(cls.__name__)
        if "auth_actions" in vars(cls):
            cls.auth_actions = _normalize_auth_actions(cls.auth_actions)

        actions = dict(cls.actions)
        gated = set(cls._gated_actions)
        for attr, value in vars(cls).items():
            marker = getattr(value, _ACTION_MARKER, None)
            if marker is None:
                continue
            action_name, auth = marker
            actions[action_name] = attr
            if auth:
                gated.add(action_name)
        cls.actions = MappingProxyType(actions)
        cls._gated_actions = frozenset(gated)

    def __init__(self, ctx: RequestContext) -> None:
        self.ctx = ctx
        self.app: App = ctx.app
        self.request = ctx.request
        self.session = ctx.session
        self.action_name: str | None = None

    # -- Dispatch --

    @classmethod
    def has_action(cls, action_name: str) -> bool:
        return action_name in cls.actions

    @classmethod
    def needs_authentication(cls, action_name: str) -> bool:
        """Whether *action_name* requires an authenticated session."""
        auth_actions = cls.auth_actions
        if auth_actions is True:
            return True
        if isinstance(auth_actions, frozenset) and action_name in auth_actions:
            return True
        return action_name in cls._gated_actions

    def run(self, action_name: str, params: dict[str, str] | None = None, *, authorize: bool = True) -> str:
        """Run *action_name* with *params* and return its content.

        Raises ``NotFound`` if the controller has no such action and
        ``Unauthorized`` if the action is gated and the session is not
        authenticated (skipped when *authorize* is false).
        """
        self.action_name = action_name
        method_name = self.actions.get(action_name)
        if method_name is None:
            self.forward_404()

        if authorize and self.needs_authentication(action_name) and not self.session.is_authenticated():
            raise Unauthorized(self.name, action_name)

        handler = getattr(self, method_name)
        content = handler(params or {})
        return "" if content is None else content

    # -- Response helpers --

    @property
    def db(self) -> DataSession | None:
        """The request's data-access handle (opened on first use)."""
        return self.ctx.db

    @property
    def response(self) -> Response:
        return self.ctx.response

    @response.setter
    def response(self, value: Response) -> None:
        self.ctx.response = value

    def render(
        self,
        variables: Mapping[str, Any] | None = None,
        template: str | None = None,
        layout: Any = _DEFAULT_LAYOUT,
    ) -> str:
        """Render ``<controller>/<template>`` inside the layout.

        *template* defaults to the current action name; *layout* defaults
        to ``AppConfig.default_layout`` (pass ``None`` for no layout).
        """
        config = self.app.config
        defaults = {
            "request": self.request,
            "base_url": self.request.base_url,
            "session": self.session,
        }
        view = View(self.app.kida_env, defaults, suffix=config.template_suffix)
        if layout is _DEFAULT_LAYOUT:
            layout = config.default_layout
        path = f"{self.name}/{template or self.action_name}"
        return view.render(path, variables, layout)

    def forward_404(self) -> NoReturn:
        """Abort the action with a 404."""
        raise NotFound(f"Forwarded 404 page from {self.name}/{self.action_name}")

    def redirect(self, url: str) -> None:
        """Redirect to *url* (302).

        App-relative paths (``/account``) are expanded with the request's
        scheme, host, and base URL.
        """
        if not _ABSOLUTE_URL.match(url):
            request = self.request
            url = f"{request.scheme}://{request.host}{request.base_url}{url}"
        self.response = self.response.with_redirect(url)

    # -- CSRF --

    def generate_csrf_token(self, form_name: str) -> str:
        return generate_csrf_token(self.session, form_name)

    def check_csrf_token(self, form_name: str, token: str | None) -> bool:
        return check_csrf_token(self.session, form_name, token)
