"""Roost — a small MVC toolkit for WSGI applications.

Routes map URL patterns to controller actions; controllers render kida
templates inside a layout; sessions, CSRF tokens, and a named-connection
data layer come built in.

Basic usage::

    from roost import App, AppConfig, Controller, action

    app = App(AppConfig(secret_key="change-me"))
    app.route("/", controller="home", action="index")

    @app.controller()
    class HomeController(Controller):
        @action
        def index(self, params):
            return self.render({"title": "Hello"})

    app.run()

Data access::

    from roost.data import Database
    app = App(config, db="sqlite:///app.db")
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Controller",
    "HTTPError",
    "NotFound",
    "Request",
    "Response",
    "RoostError",
    "Router",
    "Session",
    "Unauthorized",
    "View",
    "action",
    "get_context",
]

_EXPORTS: dict[str, str] = {
    "App": "roost.app",
    "AppConfig": "roost.config",
    "Controller": "roost.controller",
    "action": "roost.controller",
    "get_context": "roost.context",
    "Request": "roost.http.request",
    "Response": "roost.http.response",
    "Router": "roost.routing.router",
    "Session": "roost.sessions",
    "View": "roost.templating.view",
    "RoostError": "roost.errors",
    "ConfigurationError": "roost.errors",
    "HTTPError": "roost.errors",
    "NotFound": "roost.errors",
    "Unauthorized": "roost.errors",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import roost`` fast while providing a clean top-level API.
    """
    module_name = _EXPORTS.get(name)
    if module_name is None:
        msg = f"module 'roost' has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)
