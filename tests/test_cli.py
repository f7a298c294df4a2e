"""Tests for roost.cli: entrypoint, argument parsing, and subcommands."""

import json
import logging
import sys
import threading
import types

import pytest

import roost.supervisor
from roost.app import App
from roost.cli import main
from roost.cli._call import resolve_target
from roost.handlers import Handler
from roost.server.worker import SocketService


class HomeHandler(Handler):
    def index(self) -> dict:
        return {"message": "Hello World!"}


@pytest.fixture
def _fake_app_module(monkeypatch: pytest.MonkeyPatch) -> None:
    mod = types.ModuleType("_fake_roost_cli")
    app = App()
    app.add_handler("home", HomeHandler)
    app.routes(
        "/",
        [{"controller": "home", "action": "index", "method": "GET", "uri": "/", "is_public": True}],
    )
    app.routes("/admin", [{"controller": "home", "action": "index", "method": "GET", "uri": "/stats"}])
    app.service("web")
    mod.app = app  # type: ignore[attr-defined]
    mod.empty = App()  # type: ignore[attr-defined]
    broken = App()
    broken.routes("/", [{"controller": "ghost", "action": "x", "method": "GET", "uri": "/"}])
    mod.broken = broken  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "_fake_roost_cli", mod)


@pytest.fixture(autouse=True)
def _restore_roost_logger():
    logger = logging.getLogger("roost")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestCLIHelp:
    @pytest.mark.parametrize("argv", [["--help"], ["run", "--help"], ["routes", "--help"], ["call", "--help"]])
    def test_help_exits_zero(self, argv) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        assert exc_info.value.code == 0


class TestCLIMissingArgs:
    @pytest.mark.parametrize("command", ["run", "routes", "call"])
    def test_missing_positional(self, command) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([command])
        assert exc_info.value.code == 2

    def test_bad_log_level(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "x:app", "--log-level", "loud"])
        assert exc_info.value.code == 2


class TestCLINoCommand:
    def test_no_command_exits_zero(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "roost" in capsys.readouterr().out


@pytest.mark.usefixtures("_fake_app_module")
class TestRoutesCommand:
    def test_table(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["routes", "_fake_roost_cli:app"])
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["METHOD", "PATH", "HANDLER", "ACCESS"]
        assert lines[2].split() == ["GET", "/", "home.index", "public"]
        assert lines[3].split() == ["GET", "/admin/stats", "home.index", "private"]

    def test_no_routes(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["routes", "_fake_roost_cli:empty"])
        assert "No routes registered." in capsys.readouterr().out

    def test_bad_routes(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["routes", "_fake_roost_cli:broken"])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_unknown_app(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["routes", "nonexistent_module_xyz:app"])
        assert exc_info.value.code == 1


@pytest.mark.usefixtures("_fake_app_module")
class TestRunCommand:
    @pytest.fixture
    def supervisor_calls(self, monkeypatch) -> list:
        calls: list = []

        class FakeSupervisor:
            def __init__(self, context, routes) -> None:
                calls.append(context.config)

            def register_service(self, service_class, name) -> None:
                calls.append(name)

            def run(self) -> None:
                calls.append("run")

        monkeypatch.setattr(roost.supervisor, "Supervisor", FakeSupervisor)
        return calls

    def test_runs_supervisor(self, supervisor_calls, socket_dir) -> None:
        sys.modules["_fake_roost_cli"].app._guard = roost.TokenGuard("secret")
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "_fake_roost_cli:app", "--socket-dir", str(socket_dir), "--log-format", "json"])
        assert exc_info.value.code == 0
        config = supervisor_calls[0]
        assert config.socket_dir == str(socket_dir)
        assert config.log_format == "json"
        assert supervisor_calls[1:] == ["web", "run"]

    def test_config_file(self, supervisor_calls, socket_dir) -> None:
        config_file = socket_dir / "roost.toml"
        config_file.write_text(
            f'[roost]\nsocket_dir = "{socket_dir}"\ntoken_path = "{socket_dir}/token"\nrequire_auth = true\n'
        )
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "_fake_roost_cli:app", "--config", str(config_file), "--log-level", "debug"])
        assert exc_info.value.code == 0
        config = supervisor_calls[0]
        assert config.require_auth is True
        assert config.log_level == "debug"

    def test_no_services(self, supervisor_calls, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "_fake_roost_cli:empty"])
        assert exc_info.value.code == 1
        assert "No services declared" in capsys.readouterr().err

    def test_bad_config_file(self, supervisor_calls, socket_dir) -> None:
        config_file = socket_dir / "bad.toml"
        config_file.write_text("no_such_key = 1\n")
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "_fake_roost_cli:app", "--config", str(config_file)])
        assert exc_info.value.code == 1

    def test_unknown_app(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "nonexistent_module_xyz:app"])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err


class TestResolveTarget:
    def test_path(self) -> None:
        assert str(resolve_target("/run/app/service_web.sock")) == "/run/app/service_web.sock"

    def test_relative_sock_file(self) -> None:
        assert str(resolve_target("service_web.sock")) == "service_web.sock"

    def test_service_name(self) -> None:
        assert str(resolve_target("web")) == "/tmp/service/service_web.sock"

    def test_service_name_with_dir(self) -> None:
        assert str(resolve_target("web", "/run/app")) == "/run/app/service_web.sock"


class TestCallCommand:
    @pytest.fixture
    def service(self, context, routes):
        worker = SocketService("cli", context, manage_process=False)
        thread = threading.Thread(target=worker.listen, args=(routes,), daemon=True)
        thread.start()
        yield worker
        worker.stop()
        thread.join(5)

    def test_prints_response(self, service, socket_dir, capsys: pytest.CaptureFixture[str]) -> None:
        main(["call", "cli", "--socket-dir", str(socket_dir), "--method", "post", "--path", "/echo", "--data", '{"a": 1}'])
        assert json.loads(capsys.readouterr().out) == {"data": {"a": 1}}

    def test_token_file(self, service, guard, socket_dir, capsys: pytest.CaptureFixture[str]) -> None:
        token_file = socket_dir / "token"
        token_file.write_text(guard.token + "\n")
        main(["call", str(service.socket_path), "--path", "/admin/stats", "--token-file", str(token_file)])
        assert json.loads(capsys.readouterr().out) == {"message": "Hello World!"}

    @pytest.mark.parametrize("data", ["{nope", "[1, 2]"])
    def test_bad_data(self, data, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["call", "web", "--data", data])
        assert exc_info.value.code == 2
        assert "--data" in capsys.readouterr().err

    def test_missing_token_file(self, socket_dir) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["call", "web", "--token-file", str(socket_dir / "absent")])
        assert exc_info.value.code == 1

    def test_no_service(self, socket_dir, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["call", "ghost", "--socket-dir", str(socket_dir), "--timeout", "0.5"])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err
