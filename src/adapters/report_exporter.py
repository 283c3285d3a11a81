"""Exportación de la visualización del diff.

Por qué está en adapters:
- El HTML es un detalle de infraestructura (Jinja2 + formatter JS de
  jsondiffpatch).
- El Core solo conoce el documento izquierdo, el delta y la metadata.

El HTML es autocontenido: CSS y JS del formatter van incrustados (ver
`adapters.asset_store`), así que se abre sin red.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from core.domain.models import Delta, DeltaReport, SchemaDocument, VisualAssets
from core.errors import OutputWriteError


_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
_CLOSING_TAG = re.compile(r"</(?=(script|style)\b)", re.IGNORECASE)


def _get_env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
    )
    env.filters["script_json"] = _script_json
    env.filters["inline_asset"] = _inline_asset
    return env


def _script_json(value: Any) -> Markup:
    """Serializa JSON apto para un bloque <script type="application/json">."""

    text = json.dumps(value, ensure_ascii=False)
    text = text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")
    return Markup(text)


def _inline_asset(text: str) -> Markup:
    """Incrusta CSS/JS sin que un `</script>` o `</style>` cierre el bloque."""

    return Markup(_CLOSING_TAG.sub(r"<\\/", text))


def render_visual_diff_html(
    *,
    left: SchemaDocument,
    delta: Delta,
    meta: Mapping[str, Any],
    assets: VisualAssets,
    report: DeltaReport | None = None,
) -> str:
    """Renderiza un HTML con el delta embebido y el formatter de jsondiffpatch."""

    generated_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
    template = _get_env().get_template("visual_diff.html")
    return template.render(
        left=left,
        delta=delta,
        meta=dict(meta),
        report=report,
        totals=report.totals() if report else None,
        generated_at=generated_at,
        assets=assets,
    )


class JinjaDiffRenderer:
    """`DiffRenderer` basado en la plantilla `visual_diff.html`."""

    def render(
        self,
        *,
        left: SchemaDocument,
        delta: Delta,
        meta: Mapping[str, Any],
        assets: VisualAssets,
        report: DeltaReport | None = None,
    ) -> str:
        return render_visual_diff_html(
            left=left,
            delta=delta,
            meta=meta,
            assets=assets,
            report=report,
        )


def export_visual_diff_html(*, html: str, output_path: Path) -> Path:
    """Escribe el HTML ya renderizado."""

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(html, encoding="utf-8")
    except OSError as exc:
        raise OutputWriteError(output_path, str(exc)) from exc
    return output_path
