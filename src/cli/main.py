"""CLI de schema-differ (Typer).

La CLI es un adaptador fino: valida los locators, construye un
`DiffSessionRequest` y delega en `core.services.diff_session`. Todo lo que se
imprime pasa por Rich; el Core solo notifica mediante hooks.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from cli import doctor
from cli.ui_components import (
    build_cache_table,
    build_report_table,
    build_sources_table,
    build_summary_panel,
    print_banner,
)
from core.cache_store import SchemaCache
from core.config import AppSettings, HttpCredentials
from core.domain.models import DiffSessionRequest, ServerMetadata
from core.errors import SchemaDiffError, ValidationError
from core.services.diff_session import DiffSession, SessionHooks
from core.services.schema_resolver import validate_locators

app = typer.Typer(
    no_args_is_help=True,
    help="Diff API schemas between two servers (or snapshot files).",
)
cache_app = typer.Typer(no_args_is_help=True, help="Inspect and clear the local schema cache.")
app.add_typer(cache_app, name="cache")
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)


def _hooks() -> SessionHooks:
    def cache_hit(url: str, meta: ServerMetadata) -> None:
        _console.print(f"[green]Cache hit![/green] {url} (version {meta.version}, rev {meta.revision})")

    def downloading(url: str, meta: ServerMetadata) -> None:
        _console.print(f"Downloading schemas for {url}. Version: {meta.version} rev: {meta.revision}")

    def cached(path: Path) -> None:
        _console.print(f"[dim]Cached snapshot: {path}[/dim]")

    def written(kind: str, path: Path) -> None:
        label = "Visual output written" if kind == "visualization" else "Delta written"
        _console.print(f"[green]{label}:[/green] {path}")

    return SessionHooks(cache_hit=cache_hit, downloading=downloading, cached=cached, written=written)


def _credentials(settings: AppSettings, user: str | None, password: str | None) -> HttpCredentials | None:
    if not user:
        if password is None:
            return settings.credentials()
        if not settings.auth_username:
            raise ValidationError("--password needs --user (or SCHEMA_DIFFER_AUTH_USERNAME).")
        user = settings.auth_username
    if password is None:
        password = typer.prompt("Password", hide_input=True)
    return HttpCredentials(username=user, password=password)


@app.command()
def diff(
    source1: str = typer.Argument(
        ...,
        help="Left source: a server locator (relative to --base-url, or absolute URL) or a snapshot file.",
    ),
    source2: str = typer.Argument(
        ...,
        help="Right source: a server locator (relative to --base-url, or absolute URL) or a snapshot file.",
    ),
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Base URL for relative locators (e.g. /dev). Empty uses the configured SCHEMA_DIFFER_BASE_URL.",
    ),
    absolute: bool = typer.Option(
        False,
        "--absolute",
        "-a",
        help="Only accept absolute URLs (scheme and host) or snapshot files; the base URL is ignored.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the raw delta (jsondiffpatch JSON) to this file.",
    ),
    generate: str | None = typer.Option(
        None,
        "--generate",
        "-g",
        help=(
            "Write an HTML visual diff. Pass an empty string (or a directory) to use "
            "LEFT-version_revision__RIGHT-version_revision.html."
        ),
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Do not read or write the schema cache."),
    user: str | None = typer.Option(None, "--user", "-u", help="HTTP basic auth user."),
    password: str | None = typer.Option(
        None,
        "--password",
        "-p",
        help="HTTP basic auth password (user defaults to SCHEMA_DIFFER_AUTH_USERNAME).",
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print errors."),
) -> None:
    """Diff the schemas of SOURCE1 against SOURCE2."""

    settings = AppSettings()
    effective_base_url = base_url or settings.base_url

    try:
        validate_locators((source1, source2), effective_base_url, absolute=absolute)
        credentials = _credentials(settings, user, password)
    except ValidationError as exc:
        _err_console.print(f"[red]Invalid arguments:[/red] {escape(str(exc))}")
        raise typer.Exit(code=2) from exc

    request = DiffSessionRequest(
        source1=source1,
        source2=source2,
        base_url=effective_base_url,
        absolute=absolute,
        output_path=output,
        visualization_target=generate,
        use_cache=not no_cache,
    )
    session = DiffSession(
        settings,
        credentials=credentials,
        hooks=None if quiet else _hooks(),
    )

    if not quiet:
        print_banner(_console)
    try:
        result = asyncio.run(session.run(request))
    except SchemaDiffError as exc:
        _err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        _err_console.print("[dim]Exiting[/dim]")
        raise typer.Exit(code=1) from exc

    if quiet:
        return
    _console.print(build_sources_table(result.left, result.right))
    _console.print(build_summary_panel(result.report))
    if not result.report.is_empty:
        _console.print(build_report_table(result.report))


@cache_app.command("list")
def cache_list() -> None:
    """List cached schema snapshots."""

    settings = AppSettings()
    entries = SchemaCache(settings.cache_dir).entries()
    if not entries:
        _console.print(f"[dim]No cached schemas in {settings.cache_dir}[/dim]")
        return
    _console.print(build_cache_table(entries))


@cache_app.command("clear")
def cache_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete every cached schema snapshot."""

    settings = AppSettings()
    cache = SchemaCache(settings.cache_dir)
    if not yes:
        typer.confirm(f"Delete cached schemas in {cache.directory}?", abort=True)
    try:
        removed = cache.clear()
    except SchemaDiffError as exc:
        _err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    _console.print(f"[green]Removed {removed} cached snapshot(s).[/green]")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
