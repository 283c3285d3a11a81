"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- La metadata del servidor es extensible: se conservan campos extra
  (contextPath, buildTime, etc.) para mostrarlos en la visualización.

Nota:
- Los documentos de schemas y los deltas se manejan como JSON plano
  (`dict`/`list`); solo se modela lo que el Core inspecciona.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

SchemaDocument = dict[str, Any]
Delta = dict[str, Any]


class ServerMetadata(BaseModel):
    """Identifica un snapshot de schemas (clave de caché).

    Inmutable: una vez descargada no se modifica.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    version: str = Field(
        ...,
        min_length=1,
        description="Versión reportada por el servidor (p.ej. '2.30').",
    )
    revision: str = Field(
        ...,
        min_length=1,
        description="Revisión de build reportada por el servidor.",
    )

    @field_validator("version", "revision", mode="before")
    @classmethod
    def _scalar_to_str(cls, value: Any) -> Any:
        # Algunos servidores reportan la versión como número.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def cache_key(self) -> str:
        return f"{self.version}_{self.revision}"


class ResolvedSchemas(BaseModel):
    """Resultado de resolver un locator: metadata + documento."""

    meta: ServerMetadata
    schemas: SchemaDocument = Field(default_factory=dict)
    origin: str = Field(
        default="",
        description="Ruta local o URL de la que proviene el documento.",
    )
    from_cache: bool = Field(
        default=False,
        description="True si el documento se leyó de la caché local.",
    )


ChangeKind = Literal["added", "removed", "moved", "modified"]


class NodeChange(BaseModel):
    """Cambio de un nodo (tipo de la API) identificado semánticamente."""

    identity: str = Field(..., description="Identidad del nodo (singular/type o índice).")
    kind: ChangeKind
    index: int | None = Field(
        default=None,
        description="Índice en el array derecho (added/moved/modified) o izquierdo (removed).",
    )
    changed_fields: list[str] = Field(
        default_factory=list,
        description="Propiedades de primer nivel modificadas (solo modified/moved).",
    )


class CollectionChanges(BaseModel):
    name: str
    changes: list[NodeChange] = Field(default_factory=list)

    def count(self, kind: ChangeKind) -> int:
        return sum(1 for c in self.changes if c.kind == kind)


class DeltaReport(BaseModel):
    """Resumen legible del delta, por colección."""

    collections: list[CollectionChanges] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any(c.changes for c in self.collections)

    def totals(self) -> dict[str, int]:
        out = {"added": 0, "removed": 0, "moved": 0, "modified": 0}
        for collection in self.collections:
            for change in collection.changes:
                out[change.kind] += 1
        return out


@dataclass(frozen=True)
class VisualAssets:
    """CSS y JS del formatter HTML de jsondiffpatch, listos para incrustar."""

    css: str
    js: str


@dataclass
class DiffSessionRequest:
    """Configuración resuelta de una ejecución de diff."""

    source1: str
    source2: str
    base_url: str | None = None
    absolute: bool = False
    output_path: Path | None = None
    # None: no se genera; "": nombre derivado de la metadata.
    visualization_target: Path | str | None = None
    use_cache: bool = True


@dataclass
class DiffSessionResult:
    """Salida de una ejecución."""

    delta: Delta
    left: ResolvedSchemas
    right: ResolvedSchemas
    report: DeltaReport
    output_path: Path | None = None
    visualization_path: Path | None = None
