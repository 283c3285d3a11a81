"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from pathlib import Path

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import DeltaReport, ResolvedSchemas

_KIND_STYLES = {
    "added": "green",
    "removed": "red",
    "modified": "yellow",
    "moved": "dim",
}


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("schema-differ", style="bold cyan")
    subtitle = Text("Schemas • Caché • Diff semántico", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_sources_table(left: ResolvedSchemas, right: ResolvedSchemas) -> Table:
    """Tabla con la metadata de ambas fuentes."""

    table = Table(title="Sources")
    table.add_column("Side", style="cyan", no_wrap=True)
    table.add_column("Version", style="white")
    table.add_column("Revision", style="white")
    table.add_column("Origin", style="magenta")
    table.add_column("Cache", style="dim")
    for side, resolved in (("left", left), ("right", right)):
        table.add_row(
            side,
            resolved.meta.version,
            resolved.meta.revision,
            resolved.origin,
            "hit" if resolved.from_cache else "-",
        )
    return table


def build_report_table(report: DeltaReport) -> Table:
    """Tabla de cambios por colección y nodo."""

    table = Table(title="Semantic changes")
    table.add_column("Collection", style="cyan", no_wrap=True)
    table.add_column("Node", style="white")
    table.add_column("Change", no_wrap=True)
    table.add_column("Fields", style="dim")
    for collection in report.collections:
        for change in collection.changes:
            table.add_row(
                collection.name,
                change.identity,
                Text(change.kind, style=_KIND_STYLES.get(change.kind, "white")),
                ", ".join(change.changed_fields),
            )
    return table


def build_summary_panel(report: DeltaReport) -> Panel:
    if report.is_empty:
        return Panel(Text("No semantic differences.", style="green"), title="Diff", border_style="green")

    totals = report.totals()
    body = Text()
    for kind in ("added", "removed", "modified", "moved"):
        body.append(f"{totals[kind]} {kind}", style=_KIND_STYLES[kind])
        body.append("  ")
    return Panel(body, title="Diff", border_style="yellow")


def build_cache_table(entries: list[Path]) -> Table:
    table = Table(title="Cached schemas")
    table.add_column("Snapshot", style="cyan", no_wrap=True)
    table.add_column("Size", style="white", justify="right")
    for path in entries:
        table.add_row(path.stem, f"{path.stat().st_size / 1024:.1f} KiB")
    return table
