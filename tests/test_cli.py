"""Tests for roost.cli — argument parsing, app resolution, route listing."""

import sys
import types
from argparse import Namespace

import pytest
from kida import DictLoader, Environment

from roost.app import App
from roost.cli import main
from roost.cli._resolve import resolve_app
from roost.cli._routes import run_routes
from roost.cli._run import run_server
from roost.config import AppConfig


def _make_app() -> App:
    app = App(AppConfig(secret_key="k"), kida_env=Environment(loader=DictLoader({})))
    app.route("/", controller="home", action="index")
    app.route("/user/:id", controller="user", action="show", tab="profile")
    return app


@pytest.fixture
def _fake_app_module(monkeypatch: pytest.MonkeyPatch) -> None:
    """Register a fake module with a roost App on sys.modules."""
    mod = types.ModuleType("_fake_roost_app")
    mod.app = _make_app()  # type: ignore[attr-defined]
    mod.create_app = _make_app  # type: ignore[attr-defined]
    mod.not_an_app = "just a string"  # type: ignore[attr-defined]
    mod.broken = lambda: 1 / 0  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "_fake_roost_app", mod)


@pytest.mark.usefixtures("_fake_app_module")
class TestResolveApp:
    def test_explicit_attribute(self) -> None:
        assert isinstance(resolve_app("_fake_roost_app:app"), App)

    def test_default_attribute(self) -> None:
        assert resolve_app("_fake_roost_app") is sys.modules["_fake_roost_app"].app

    def test_factory(self) -> None:
        assert isinstance(resolve_app("_fake_roost_app:create_app"), App)

    def test_missing_module(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            resolve_app("nonexistent_module_xyz:app")

    def test_missing_attribute(self) -> None:
        with pytest.raises(AttributeError):
            resolve_app("_fake_roost_app:does_not_exist")

    def test_not_an_app(self) -> None:
        with pytest.raises(TypeError, match="not a roost.App"):
            resolve_app("_fake_roost_app:not_an_app")

    def test_factory_error(self) -> None:
        with pytest.raises(TypeError, match="raised an error"):
            resolve_app("_fake_roost_app:broken")


@pytest.mark.usefixtures("_fake_app_module")
class TestRoutesCommand:
    def test_lists_routes_in_order(self, capsys: pytest.CaptureFixture[str]) -> None:
        run_routes(Namespace(app="_fake_roost_app:app"))
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["PATTERN", "TARGET", "PARAMS"]
        assert lines[2].split() == ["/", "home/index"]
        assert lines[3].split() == ["/user/:id", "user/show", ":id,", "tab=profile"]

    def test_bad_import_exits(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run_routes(Namespace(app="_fake_roost_app:not_an_app"))
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_main_dispatches(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["routes", "_fake_roost_app:app"])
        assert "/user/:id" in capsys.readouterr().out


@pytest.mark.usefixtures("_fake_app_module")
class TestRunCommand:
    def test_passes_host_and_port(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[tuple[str | None, int | None]] = []
        monkeypatch.setattr(App, "run", lambda self, host=None, port=None: calls.append((host, port)))
        run_server(Namespace(app="_fake_roost_app:app", host="0.0.0.0", port=9000))
        assert calls == [("0.0.0.0", 9000)]


class TestMain:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "roost" in capsys.readouterr().out
