import json
import textwrap
from pathlib import Path

from typer.testing import CliRunner

from atomicdocs import cli
from atomicdocs.service import binary as binary_mod

runner = CliRunner()


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(s), encoding="utf-8")


def test_ping():
    result = runner.invoke(cli.app, ["ping"])
    assert result.exit_code == 0
    assert "pong" in result.stdout


def test_routes_json(tmp_path: Path, monkeypatch):
    write(
        tmp_path / "cli_host_app.py",
        """
        from starlette.applications import Starlette
        from starlette.responses import JSONResponse
        from starlette.routing import Mount, Route

        async def users(request):
            return JSONResponse([])

        app = Starlette(routes=[
            Route("/users", users),
            Mount("/admin", routes=[Route("/{id}", users, methods=["DELETE"])]),
        ])
        """,
    )
    monkeypatch.syspath_prepend(str(tmp_path))

    result = runner.invoke(cli.app, ["routes", "cli_host_app:app", "--format", "json"])

    assert result.exit_code == 0, result.stdout
    assert json.loads(result.stdout) == [
        {"method": "GET", "path": "/users"},
        {"method": "DELETE", "path": "/admin/:id"},
    ]


def test_routes_table(tmp_path: Path, monkeypatch):
    write(
        tmp_path / "cli_table_app.py",
        """
        from fastapi import FastAPI

        app = FastAPI()

        @app.get("/items")
        def items():
            return []
        """,
    )
    monkeypatch.syspath_prepend(str(tmp_path))

    result = runner.invoke(cli.app, ["routes", "cli_table_app:app"])

    assert result.exit_code == 0, result.stdout
    assert "starlette" in result.stdout
    assert "/items" in result.stdout


def test_routes_bad_target():
    result = runner.invoke(cli.app, ["routes", "no_such_module_xyz:app"])
    assert result.exit_code != 0


def test_binary_found(tmp_path: Path, monkeypatch):
    binary = tmp_path / "atomicdocs-linux-x64"
    binary.write_text("", encoding="utf-8")
    monkeypatch.setattr(binary_mod.platform, "system", lambda: "Linux")
    monkeypatch.setattr(binary_mod.platform, "machine", lambda: "x86_64")
    monkeypatch.setenv("ATOMICDOCS_BIN_DIR", str(tmp_path))

    result = runner.invoke(cli.app, ["binary"])

    assert result.exit_code == 0
    assert "atomicdocs-linux-x64" in result.stdout
    assert "found" in result.stdout


def test_binary_unsupported_platform(monkeypatch):
    monkeypatch.setattr(binary_mod.platform, "system", lambda: "Plan9")
    monkeypatch.setattr(binary_mod.platform, "machine", lambda: "mips")

    result = runner.invoke(cli.app, ["binary"])

    assert result.exit_code == 1
    assert "Unsupported platform" in result.stdout


def test_status_unreachable(monkeypatch):
    # nothing listens on port 1
    monkeypatch.setenv("ATOMICDOCS_SERVICE_PORT", "1")
    monkeypatch.setenv("ATOMICDOCS_CONNECT_TIMEOUT", "0.5")

    result = runner.invoke(cli.app, ["status"])

    assert result.exit_code == 1
    assert "unreachable" in result.stdout
