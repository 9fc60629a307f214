"""Roost application class.

Mutable during setup (routes, controllers, template filters).
Frozen on the first request, or when ``app.run()`` is called.

Request pipeline (``App.handle``)::

    resolve path ──► run_action ──► controller.run ──► handler ──► content
         │                │               │
         └── NotFound ◄───┴───────────────┤   → 404 page
                                          └── Unauthorized → login action
    ... then the session is saved and the response is sent, once.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from kida import Environment

from roost.config import AppConfig
from roost.context import RequestContext, bind_context
from roost.controller import Controller
from roost.data.database import Database
from roost.errors import ConfigurationError, NotFound, Unauthorized
from roost.http.request import Request
from roost.http.response import Response
from roost.routing.router import RouteDefinitions, Router
from roost.server.errors import render_not_found
from roost.server.sender import StartResponse, send_response
from roost.sessions import SessionConfig, SessionManager, SessionStore
from roost.templating.integration import bind_globals, create_environment

logger = logging.getLogger("roost.server")

type ControllerFactory = Callable[[RequestContext], Controller]


class App:
    """The roost application.

    Usage::

        app = App(
            AppConfig(secret_key="...", login_action=("account", "signin")),
            db="sqlite:///blog.db",
        )
        app.route("/", controller="status", action="index")
        app.route("/user/:user_name", controller="status", action="user")

        @app.controller()
        class AccountController(Controller):
            ...

    ``App`` is a WSGI callable.

    Thread safety:
        Setup is single-threaded (import time). The freeze transition uses
        a Lock + double-check so exactly one thread compiles the app. After
        that, the router, controller registry, and template environment are
        only read.
    """

    __slots__ = (
        "_controllers",
        "_custom_kida_env",
        "_freeze_lock",
        "_frozen",
        "_kida_env",
        "_pending_routes",
        "_router",
        "_session_store",
        "_sessions",
        "_template_filters",
        "_template_globals",
        "config",
        "database",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        routes: RouteDefinitions | None = None,
        db: Database | str | None = None,
        session_store: SessionStore | None = None,
        kida_env: Environment | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._pending_routes: list[tuple[str, Mapping[str, str]]] = []
        self._controllers: dict[str, ControllerFactory] = {}
        self._template_filters: dict[str, Callable[..., Any]] = {}
        self._template_globals: dict[str, Any] = {}
        self._session_store = session_store
        self._custom_kida_env = kida_env
        self._frozen = False
        self._freeze_lock = threading.Lock()

        # Database — accepts a Database instance or connection URL string.
        self.database: Database | None = Database(db) if isinstance(db, str) else db

        # Compiled state — set during _freeze()
        self._router: Router | None = None
        self._sessions: SessionManager | None = None
        self._kida_env: Environment | None = None

        if routes is not None:
            self.add_routes(routes)

    # -- Route registration --

    def route(self, pattern: str, *, controller: str, action: str, **extra: str) -> None:
        """Declare a route. Routes match in declaration order.

        Extra keyword arguments become fixed entries of the resolved
        params, next to ``controller`` and ``action``.
        """
        self._check_not_frozen()
        self._pending_routes.append((pattern, {"controller": controller, "action": action, **extra}))

    def add_routes(self, definitions: RouteDefinitions) -> None:
        """Declare several ``(pattern, target)`` routes at once."""
        self._check_not_frozen()
        items = definitions.items() if isinstance(definitions, Mapping) else definitions
        self._pending_routes.extend((pattern, dict(target)) for pattern, target in items)

    # -- Controller registration --

    def register_controller(self, name: str, factory: ControllerFactory) -> None:
        """Register *factory* under *name*.

        *factory* is called with the request context and must return a
        ``Controller``; a ``Controller`` subclass is the usual factory.
        """
        self._check_not_frozen()
        if name in self._controllers:
            msg = f"Controller {name!r} is already registered."
            raise ConfigurationError(msg)
        self._controllers[name] = factory

    def controller(self, name: str | None = None) -> Callable[[type[Controller]], type[Controller]]:
        """Register a ``Controller`` subclass via decorator.

        The registry name defaults to the class's ``name``.
        """

        def decorator(cls: type[Controller]) -> type[Controller]:
            self.register_controller(name or cls.name, cls)
            return cls

        return decorator

    # -- Templates --

    def template_filter(self, name: str | None = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a template filter via decorator."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_filters[name or func.__name__] = func
            return func

        return decorator

    def template_global(self, name: str | None = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a template global via decorator."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_globals[name or func.__name__] = func
            return func

        return decorator

    # -- Compiled state --

    @property
    def router(self) -> Router:
        self._ensure_frozen()
        assert self._router is not None
        return self._router

    @property
    def kida_env(self) -> Environment:
        self._ensure_frozen()
        assert self._kida_env is not None
        return self._kida_env

    @property
    def sessions(self) -> SessionManager:
        self._ensure_frozen()
        assert self._sessions is not None
        return self._sessions

    @property
    def controllers(self) -> Mapping[str, ControllerFactory]:
        return dict(self._controllers)

    # -- Dispatch --

    def handle(self, request: Request) -> Response:
        """Run the full pipeline for *request* and return the final response.

        ``NotFound`` becomes a 404 page. ``Unauthorized`` is answered by
        running the configured login action once, without the auth check.
        Any other exception propagates.
        """
        self._ensure_frozen()
        assert self._router is not None
        assert self._sessions is not None

        session = self._sessions.open(request)
        ctx = RequestContext(app=self, request=request, session=session)
        try:
            with bind_context(ctx):
                try:
                    params = self._router.resolve(request.path)
                    if params is None:
                        raise NotFound(f"No route found for {request.path}")
                    self.run_action(ctx, params["controller"], params["action"], params)
                except NotFound as exc:
                    ctx.response = render_not_found(exc, request, ctx.response, debug=self.config.debug)
                except Unauthorized as exc:
                    self._run_login_action(ctx, exc)
        finally:
            ctx.close()

        return self._sessions.close(session, ctx.response)

    def _run_login_action(self, ctx: RequestContext, exc: Unauthorized) -> None:
        if self.config.login_action is None:
            msg = "A gated action was requested but AppConfig.login_action is not set."
            raise ConfigurationError(msg) from exc

        controller_name, action_name = self.config.login_action
        logger.info(
            "Unauthenticated request for %s/%s; running %s/%s",
            exc.controller,
            exc.action,
            controller_name,
            action_name,
        )
        try:
            self.run_action(ctx, controller_name, action_name, authorize=False)
        except NotFound as not_found:
            ctx.response = render_not_found(not_found, ctx.request, ctx.response, debug=self.config.debug)

    def run_action(
        self,
        ctx: RequestContext,
        controller_name: str,
        action_name: str,
        params: dict[str, str] | None = None,
        *,
        authorize: bool = True,
    ) -> None:
        """Construct *controller_name* and run *action_name*; store the content.

        Raises ``NotFound`` for an unknown controller or action and
        ``Unauthorized`` for a gated action on an anonymous session.
        """
        factory = self._controllers.get(controller_name)
        if factory is None:
            raise NotFound(f"{controller_name!r} controller is not found.")

        controller = factory(ctx)
        content = controller.run(action_name, params or {}, authorize=authorize)
        ctx.response = ctx.response.with_body(content)

    # -- WSGI interface --

    def __call__(self, environ: dict[str, Any], start_response: StartResponse) -> Iterable[bytes]:
        """WSGI entry point."""
        response = self.handle(Request.from_environ(environ))
        return send_response(response, start_response)

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Start the development server."""
        self._ensure_frozen()

        from roost.server.dev import run_dev_server

        run_dev_server(self, host or self.config.host, port or self.config.port)

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        # 1. Compile route table
        router = Router(self._pending_routes)

        # 2. Check the login target before any request can need it
        self._check_login_action()

        # 3. Sessions
        cfg = self.config
        sessions = SessionManager(
            SessionConfig(
                secret_key=cfg.secret_key,
                cookie_name=cfg.session_cookie,
                max_age=cfg.session_max_age,
                secure=cfg.session_secure,
            ),
            self._session_store,
        )

        # 4. Template environment
        if self._custom_kida_env is not None:
            env = bind_globals(self._custom_kida_env, self._template_filters, self._template_globals)
        else:
            env = create_environment(cfg, self._template_filters, self._template_globals)

        self._router = router
        self._sessions = sessions
        self._kida_env = env
        self._frozen = True
        logger.debug("App frozen: %d routes, %d controllers", len(router), len(self._controllers))

    def _check_login_action(self) -> None:
        """The login target must exist and must not itself be gated."""
        controller_classes = {
            name: factory
            for name, factory in self._controllers.items()
            if isinstance(factory, type) and issubclass(factory, Controller)
        }
        login = self.config.login_action

        if login is None:
            gating = sorted(
                name
                for name, cls in controller_classes.items()
                if cls.auth_actions or cls._gated_actions
            )
            if gating:
                msg = f"Controllers {gating} gate actions but AppConfig.login_action is not set."
                raise ConfigurationError(msg)
            return

        controller_name, action_name = login
        if controller_name not in self._controllers:
            msg = f"Login controller {controller_name!r} is not registered."
            raise ConfigurationError(msg)

        cls = controller_classes.get(controller_name)
        if cls is None:
            return
        if not cls.has_action(action_name):
            msg = f"Login action {controller_name}/{action_name} does not exist."
            raise ConfigurationError(msg)
        if cls.needs_authentication(action_name):
            msg = f"Login action {controller_name}/{action_name} must not require authentication."
            raise ConfigurationError(msg)

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, controllers, and filters before the first request."
            )
            raise RuntimeError(msg)
