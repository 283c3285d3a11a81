"""Exportación JSON del delta.

Por qué JSON:
- Es la codificación de jsondiffpatch: cualquier consumidor compatible puede
  reaplicarla (patch) o formatearla.
- Permite persistir el resultado sin depender del render HTML.
"""

from __future__ import annotations

import json
from pathlib import Path

from core.domain.models import Delta
from core.errors import OutputWriteError


def export_delta_json(*, delta: Delta, output_path: Path) -> Path:
    """Exporta el delta a JSON UTF-8 con formato estable."""

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(delta, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
    except OSError as exc:
        raise OutputWriteError(output_path, str(exc)) from exc
    return output_path
