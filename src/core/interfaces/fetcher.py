"""Contratos de los colaboradores externos (HTTP y render).

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite sustituir el transporte HTTP o el motor de plantillas en tests sin
  acoplar el Core a implementaciones concretas.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from core.domain.models import Delta, DeltaReport, SchemaDocument, VisualAssets


@runtime_checkable
class JsonFetcher(Protocol):
    """Contrato mínimo para obtener JSON (y assets de texto) de un endpoint.

    Reglas de diseño:
    - Los métodos son asíncronos porque hacen I/O (HTTP).
    - Ante cualquier fallo (red, no-2xx, cuerpo inválido) lanzan
      `core.errors.RetrievalError`; nunca devuelven un resultado parcial.
    """

    async def fetch_json(self, url: str) -> Any:
        """Descarga `url` (absoluta) y devuelve el cuerpo JSON parseado."""

        ...

    async def fetch_text(self, url: str) -> str:
        """Descarga `url` (absoluta) y devuelve el cuerpo como texto."""

        ...


@runtime_checkable
class DiffRenderer(Protocol):
    """Convierte un delta en un artefacto visual (HTML) autocontenido."""

    def render(
        self,
        *,
        left: SchemaDocument,
        delta: Delta,
        meta: Mapping[str, Any],
        assets: VisualAssets,
        report: DeltaReport | None = None,
    ) -> str:
        ...
