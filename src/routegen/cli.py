from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from routegen.config import ProjectConfig, load_config
from routegen.errors import RoutegenError
from routegen.log import configure_logging
from routegen.orchestrator.pipeline import resolve_routes, run_build
from routegen.orchestrator.worker import WorkerHost
from routegen.paths import relative_to_root
from routegen.progress import ConsoleSpinners
from routegen.routes.tokens import path_pattern

app = typer.Typer(no_args_is_help=True, add_completion=False)

routes_app = typer.Typer(no_args_is_help=True)
app.add_typer(routes_app, name="routes")

console = Console()
err_console = Console(stderr=True)


def _load(app_root: str, source_folder: Optional[str], verbose: bool) -> ProjectConfig:
    configure_logging(verbose, err_console)
    root = Path(app_root).expanduser().resolve()
    if not root.exists():
        raise typer.BadParameter(f"App root does not exist: {root}")
    if not root.is_dir():
        raise typer.BadParameter(f"App root is not a directory: {root}")
    try:
        return load_config(root, source_folder=source_folder)
    except RoutegenError as exc:
        err_console.print(f"[bold red]error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


@app.command()
def build(
    app_root: str = typer.Argument(".", help="Project root (holds pyproject.toml or routegen.toml)"),
    source_folder: Optional[str] = typer.Option(None, help="Source folder, relative to the app root"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Resolve every route and run all generators once."""
    config = _load(app_root, source_folder, verbose)

    try:
        with ConsoleSpinners(err_console) as spinners:
            result = run_build(config, spinners)
    except RoutegenError as exc:
        err_console.print(f"[bold red]error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    api = sum(1 for e in result.routes if e.kind == "api")
    console.print(f"[bold green]routegen[/bold green] build: {config.app_root}")
    console.print(f"Routes resolved: [bold]{len(result.routes)}[/bold] ({api} api, {len(result.routes) - api} pages)")
    console.print(f"Generators: {', '.join(result.generators) or '-'}")

    if not result.ok:
        console.print(f"[bold red]{result.failures} task(s) failed[/bold red]")
        raise typer.Exit(1)


@app.command()
def dev(
    app_root: str = typer.Argument(".", help="Project root (holds pyproject.toml or routegen.toml)"),
    source_folder: Optional[str] = typer.Option(None, help="Source folder, relative to the app root"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Resolve, generate, then keep regenerating on every change until Ctrl-C."""
    config = _load(app_root, source_folder, verbose)

    exited = threading.Event()
    exit_codes: list[Optional[int]] = []

    def on_ready() -> None:
        err_console.print(f"[bold green]ready[/bold green], watching {config.source_root}")

    def on_exit(code: Optional[int]) -> None:
        exit_codes.append(code)
        exited.set()

    with ConsoleSpinners(err_console) as spinners:
        host = WorkerHost(config, spinners, on_ready=on_ready, on_exit=on_exit, verbose=verbose)
        host.start()
        try:
            while not exited.wait(0.5):
                pass
        except KeyboardInterrupt:
            host.terminate()
            return

    if exit_codes and exit_codes[0]:
        err_console.print(f"[bold red]worker exited with code {exit_codes[0]}[/bold red]")
        raise typer.Exit(1)


@routes_app.command("list")
def routes_list(
    app_root: str = typer.Argument(".", help="Project root"),
    kind: Optional[str] = typer.Option(None, help="Filter by route kind: api|page"),
    format: str = typer.Option("table", help="Output format: table|json"),
    source_folder: Optional[str] = typer.Option(None, help="Source folder, relative to the app root"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    fmt = format.lower().strip()
    if fmt not in ("table", "json"):
        raise typer.BadParameter("format must be one of: table, json")
    if kind is not None and kind not in ("api", "page"):
        raise typer.BadParameter("kind must be one of: api, page")

    config = _load(app_root, source_folder, verbose)
    # json goes to pipes; keep progress out of the way
    progress_console = Console(stderr=True, quiet=True) if fmt == "json" else err_console
    try:
        with ConsoleSpinners(progress_console) as spinners:
            result = resolve_routes(config, spinners)
    except RoutegenError as exc:
        err_console.print(f"[bold red]error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    rows = [
        {
            "kind": e.kind,
            "name": e.route.name,
            "path": "/" + path_pattern(e.route.path_tokens),
            "methods": list(getattr(e.route, "methods", ())),
            "file": relative_to_root(e.route.file_fullpath, config.app_root),
        }
        for e in result.routes
        if kind is None or e.kind == kind
    ]
    rows.sort(key=lambda r: (r["kind"], r["name"]))

    if fmt == "json":
        typer.echo(json.dumps(rows, indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("KIND", no_wrap=True)
    table.add_column("NAME")
    table.add_column("PATH")
    table.add_column("METHODS", no_wrap=True)
    table.add_column("FILE")

    for r in rows:
        table.add_row(*(escape(v) for v in (r["kind"], r["name"], r["path"], ",".join(r["methods"]), r["file"])))

    console.print(f"[bold]Routes:[/bold] {len(rows)}")
    console.print(table)

    if not result.ok:
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
