"""Caché de snapshots de schemas.

Este módulo vive en `core/` porque:
- centraliza *qué* se persiste (documento + metadata) y con qué clave,
  sin acoplarse a la CLI ni al transporte HTTP.
- la clave es `(version, revision)` y no la URL: dos servidores que reportan
  la misma versión comparten entrada.

Formato: `<cache_dir>/<version>_<revision>.json` con el documento y la
metadata adjunta en el campo `meta`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from core.domain.models import SchemaDocument, ServerMetadata
from core.errors import OutputWriteError, PreconditionError


class SchemaCache:
    """Persistencia content-addressed de documentos de schemas."""

    def __init__(self, directory: Path | str = "cache") -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, metadata: ServerMetadata) -> Path:
        return self._directory / f"{metadata.cache_key}.json"

    def read(self, metadata: ServerMetadata) -> SchemaDocument | None:
        """Devuelve el documento cacheado o `None` si no existe.

        Un fichero ilegible o corrupto cuenta como miss: se volverá a
        descargar y sobrescribir.
        """

        path = self.path_for(metadata)
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return None
        if not isinstance(data, dict):
            return None
        data.pop("meta", None)
        return data

    def write(self, metadata: ServerMetadata | None, document: SchemaDocument) -> Path:
        """Persiste `document` con `meta` adjunta. Last writer wins."""

        if metadata is None:
            raise PreconditionError("Should have metadata before writing a cache entry")

        payload: dict[str, Any] = {**document, "meta": metadata.model_dump(mode="json")}
        path = self.path_for(metadata)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise OutputWriteError(path, str(exc)) from exc
        return path

    def entries(self) -> list[Path]:
        if not self._directory.is_dir():
            return []
        return sorted(self._directory.glob("*.json"))

    def clear(self) -> int:
        removed = 0
        for path in self.entries():
            try:
                path.unlink()
            except OSError as exc:
                raise OutputWriteError(path, str(exc)) from exc
            removed += 1
        return removed
