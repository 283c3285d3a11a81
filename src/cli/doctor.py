"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from adapters.asset_store import AssetStore
from adapters.http_client import HttpJsonFetcher, build_async_client
from adapters.report_exporter import render_visual_diff_html
from core.config import AppSettings
from core.domain.models import VisualAssets
from core.errors import SchemaDiffError
from core.services.schema_resolver import SchemaResolver

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_server(settings: AppSettings, base_url: str) -> tuple[bool, str]:
    try:
        async with build_async_client(settings, credentials=settings.credentials()) as client:
            resolver = SchemaResolver(
                fetcher=HttpJsonFetcher(client),
                info_endpoint=settings.info_endpoint,
                schemas_endpoint=settings.schemas_endpoint,
            )
            meta = await resolver.fetch_metadata(base_url)
        return True, f"version {meta.version}, rev {meta.revision}"
    except SchemaDiffError as exc:
        return False, str(exc)


def _check_cache_dir(directory: Path) -> tuple[bool, str]:
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=directory, suffix=".tmp"):
            pass
        return True, str(directory.resolve())
    except OSError as exc:
        return False, str(exc)


def _check_template() -> tuple[bool, str]:
    """Render a minimal visual diff to detect template/Jinja2 issues."""

    try:
        meta = {"version": "doctor", "revision": "0"}
        render_visual_diff_html(
            left={},
            delta={},
            meta={"left": meta, "right": meta},
            assets=VisualAssets(css="", js=""),
        )
        return True, "OK"
    except Exception as exc:
        return False, str(exc)


@app.command()
def run(
    base_url: str | None = typer.Option(None, "--base-url", "-b", help="Server to check (defaults to the configured base URL)."),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()
    target = base_url or settings.base_url

    table = Table(title="schema-differ Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    if target:
        table.add_row("Base URL", "OK", target)
    else:
        table.add_row("Base URL", "OPTIONAL", "Not set -> only absolute URLs or snapshot files")
    if settings.credentials() is not None:
        table.add_row("Credentials", "OK", f"user {settings.auth_username}")
    else:
        table.add_row("Credentials", "OPTIONAL", "No credentials -> anonymous requests")
    table.add_row("Identity fields", "OK", ", ".join(settings.identity_fields))
    table.add_row("Excluded properties", "OK", ", ".join(settings.excluded_properties) or "-")

    ok_cache, detail_cache = _check_cache_dir(settings.cache_dir)
    table.add_row("Cache directory", "OK" if ok_cache else "FAIL", detail_cache)

    ok_template, detail_template = _check_template()
    table.add_row("HTML template", "OK" if ok_template else "FAIL", detail_template)

    assets = AssetStore(settings.cache_dir / "assets", settings.assets_base_url)
    if assets.missing():
        table.add_row(
            "Visual assets",
            "OPTIONAL",
            f"Downloaded on first --generate from {settings.assets_base_url}",
        )
    else:
        table.add_row("Visual assets", "OK", str(assets.directory))

    ok_http = True
    if target:
        ok_http, detail_http = asyncio.run(_check_server(settings, target))
        table.add_row("Server info", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if not ok_http:
        _console.print(
            "\n[yellow]Note:[/yellow] The info endpoint must answer with version/revision; "
            "check the base URL, SCHEMA_DIFFER_INFO_ENDPOINT and credentials."
        )
    if not (ok_cache and ok_template and ok_http):
        raise typer.Exit(code=1)
