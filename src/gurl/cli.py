from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from gurl.config import ConfigError, load_options, resolve_base_url
from gurl.domain.models import LinkedHandler
from gurl.orchestrator.pipeline import AnalyzeResult, run_analyze
from gurl.requestgen.curl import generate_curl

app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()
err_console = Console(stderr=True)


@app.callback()
def main_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log extraction details"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _analyze(repo: str, max_files: Optional[int] = None) -> tuple[Path, AnalyzeResult]:
    repo_path = Path(repo).expanduser().resolve()
    if not repo_path.exists():
        raise typer.BadParameter(f"Repo path does not exist: {repo_path}")
    if not repo_path.is_dir():
        raise typer.BadParameter(f"Repo path is not a directory: {repo_path}")
    return repo_path, run_analyze(repo_path, max_files=max_files)


def _only_file(repo_path: Path, file: Optional[str], linked: list[LinkedHandler]) -> list[LinkedHandler]:
    # relative paths are taken relative to the repo, like the paths we report
    if file is None:
        return linked
    target = Path(file).expanduser()
    if not target.is_absolute():
        target = repo_path / target
    rel = os.path.relpath(target.resolve(), repo_path)
    return [lh for lh in linked if os.path.normpath(lh.handler.file_path) == rel]


def _file_line(file_path: str, span) -> str:
    if span is None:
        return file_path
    return f"{file_path}:{span.start.line + 1}"


@app.command()
def handlers(
    repo: str = typer.Argument(..., help="Path to the Go repo"),
    file: Optional[str] = typer.Option(None, "--file", help="Only handlers declared in this file"),
    max_files: Optional[int] = typer.Option(None, help="Limit scanned files (debug)"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    """List Gin handlers and the routes that point at them."""
    repo_path, result = _analyze(repo, max_files)
    linked = _only_file(repo_path, file, result.linked)

    if format.lower() == "json":
        typer.echo(json.dumps([asdict(lh) for lh in linked], indent=2))
        return

    console.print(f"Go files scanned: {result.files_scanned}")
    console.print(f"Handlers found: [bold]{len(linked)}[/bold]")

    table = Table(show_header=True, header_style="bold")
    table.add_column("HANDLER", no_wrap=True)
    table.add_column("ROUTES")
    table.add_column("BODY", no_wrap=True)
    table.add_column("FILE:LINE", no_wrap=True)

    for lh in linked:
        h = lh.handler
        routes = ", ".join(f"{r.method} {r.path}" for r in lh.routes) or "-"
        body = h.shape.body_encoding
        if h.shape.json_type:
            body = f"{body} ({h.shape.json_type})"
        table.add_row(h.name, routes, body, _file_line(h.file_path, h.name_span))

    console.print(table)


@app.command()
def routes(
    repo: str = typer.Argument(..., help="Path to the Go repo"),
    method: Optional[str] = typer.Option(None, help="Filter by HTTP method (GET/POST/.../ANY)"),
    path_contains: Optional[str] = typer.Option(None, help="Substring match on HTTP path"),
    max_files: Optional[int] = typer.Option(None, help="Limit scanned files (debug)"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    """List route registrations with their group prefixes resolved."""
    _, result = _analyze(repo, max_files)

    rows = result.routes
    if method:
        rows = [r for r in rows if r.method == method.upper()]
    if path_contains:
        rows = [r for r in rows if path_contains in r.path]

    if format.lower() == "json":
        typer.echo(json.dumps([asdict(r) for r in rows], indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("HANDLER")
    table.add_column("FILE:LINE", no_wrap=True)
    for r in rows:
        table.add_row(r.method, r.path, r.handler_name, _file_line(r.file_path, r.span))
    console.print(table)


@app.command()
def curl(
    repo: str = typer.Argument(..., help="Path to the Go repo"),
    handler: str = typer.Argument(..., help="Handler name"),
    route: int = typer.Option(0, help="Which of the handler's routes to use (0-based)"),
    base_url: Optional[str] = typer.Option(None, help="Base URL (default: inferred)"),
    header: List[str] = typer.Option([], "--header", "-H", help="Extra header 'Name: value'"),
    config: Optional[Path] = typer.Option(None, help="Config file (default: <repo>/.gurl.json)"),
    file: Optional[str] = typer.Option(None, "--file", help="Only consider handlers declared in this file"),
) -> None:
    """Print an example curl command for a handler."""
    repo_path, result = _analyze(repo)

    try:
        options = load_options(repo_path, config_path=config, base_url=base_url, headers=header)
    except ConfigError as e:
        raise typer.BadParameter(str(e)) from e
    options = resolve_base_url(options, result.sources)

    matches = _only_file(repo_path, file, result.find(handler))
    if not matches:
        where = f" in {file}" if file else ""
        err_console.print(f"[red]No Gin handler named {handler!r}{where}[/red]")
        raise typer.Exit(code=1)
    if len(matches) > 1:
        where = ", ".join(lh.handler.file_path for lh in matches)
        err_console.print(f"[yellow]{len(matches)} handlers named {handler!r} ({where}); using the first[/yellow]")

    linked = matches[0]
    selected = None
    if linked.routes:
        if not 0 <= route < len(linked.routes):
            raise typer.BadParameter(f"--route must be between 0 and {len(linked.routes) - 1}")
        selected = linked.routes[route]
    else:
        err_console.print(f"[yellow]No route registers {handler!r}; using /{handler}[/yellow]")

    # not console.print: rich markup would eat placeholders like [..]
    typer.echo(generate_curl(linked, selected, options))


@app.command("base-url")
def base_url_cmd(
    repo: str = typer.Argument(..., help="Path to the Go repo"),
) -> None:
    """Show the base URL inferred from r.Run(...) / r.RunTLS(...) calls."""
    _, result = _analyze(repo)
    if result.inferred_base_url is None:
        console.print("Could not infer a base URL")
        raise typer.Exit(code=1)
    console.print(result.inferred_base_url)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
