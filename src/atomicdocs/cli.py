from __future__ import annotations

import importlib
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from atomicdocs.client import RegistrationClient
from atomicdocs.config import AtomicDocsSettings
from atomicdocs.domain.models import RouteBatch
from atomicdocs.errors import RegistrationError, ServiceUnavailableError, UnsupportedPlatformError
from atomicdocs.extractors.detect import detect_framework, detect_route_source
from atomicdocs.service.binary import resolve_binary_name, resolve_binary_path
from atomicdocs.service.process import DocsService

app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()


@app.callback()
def main_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def load_app(target: str) -> Any:
    """Import `module:attribute` (attribute defaults to `app`)."""
    module_name, _, attr = target.partition(":")
    attr = attr or "app"
    if "" not in sys.path and str(Path.cwd()) not in sys.path:
        sys.path.insert(0, str(Path.cwd()))
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"Cannot import {module_name!r}: {e}")
    obj = module
    for part in attr.split("."):
        if not hasattr(obj, part):
            raise typer.BadParameter(f"{module_name!r} has no attribute {attr!r}")
        obj = getattr(obj, part)
    return obj


@app.command()
def routes(
    target: str = typer.Argument(..., help="Host app as module:attribute"),
    format: str = typer.Option("table", help="Output format: table|json"),
    show_handler: bool = typer.Option(False, help="Include captured handler source (json only)"),
) -> None:
    """List the routes atomicdocs would register for an app."""
    settings = AtomicDocsSettings()
    host = load_app(target)
    found = detect_route_source(host, settings).list_routes()

    fmt = format.lower().strip()
    if fmt not in ("table", "json"):
        raise typer.BadParameter("format must be one of: table, json")

    if fmt == "json":
        rows = [r.model_dump() if show_handler else {"method": r.method, "path": r.path} for r in found]
        console.print(json.dumps(rows, indent=2))
        return

    console.print(f"[bold]Framework:[/bold] {detect_framework(host)}")
    console.print(f"[bold]Routes:[/bold] {len(found)}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("HANDLER", no_wrap=True)
    for r in found:
        first_line = r.handler.splitlines()[0] if r.handler else "-"
        table.add_row(r.method, r.path, first_line)
    console.print(table)


@app.command()
def register(
    target: str = typer.Argument(..., help="Host app as module:attribute"),
    port: int = typer.Option(..., help="Port the host app listens on"),
    timeout: Optional[float] = typer.Option(None, help="Seconds to wait for the docs service"),
) -> None:
    """Register an app's routes once, starting the docs service if needed."""
    settings = AtomicDocsSettings()
    host = load_app(target)
    batch = RouteBatch(routes=detect_route_source(host, settings).list_routes(), port=port)

    service = DocsService(settings)
    try:
        service.wait_ready(timeout=timeout)
        RegistrationClient(settings, service=service).send(batch)
    except (ServiceUnavailableError, RegistrationError) as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        raise typer.Exit(code=1)

    console.print(f"[bold green]✓[/bold green] Registered {len(batch.routes)} routes")
    console.print(f"Docs: http://localhost:{port}{settings.docs_path}")
    if service.process is not None:
        console.print("Docs service keeps running in the background until it is stopped.")


@app.command()
def binary() -> None:
    """Show which docs service binary this platform resolves to."""
    settings = AtomicDocsSettings()
    try:
        name = resolve_binary_name()
        path = resolve_binary_path(settings)
    except UnsupportedPlatformError as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        raise typer.Exit(code=1)

    console.print(f"[bold]Binary:[/bold] {name}")
    console.print(f"[bold]Path:[/bold] {path}")
    if path.is_file():
        console.print("[bold green]found[/bold green]")
    else:
        console.print("[bold yellow]missing[/bold yellow] (docs will be unavailable)")


@app.command()
def status() -> None:
    """Probe the docs service."""
    settings = AtomicDocsSettings()
    service = DocsService(settings)
    up = service.is_ready()
    state = "[bold green]ready[/bold green]" if up else "[bold red]unreachable[/bold red]"
    console.print(f"{settings.service_url}: {state}")
    if not up:
        raise typer.Exit(code=1)


@app.command()
def ping() -> None:
    console.print("pong")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
