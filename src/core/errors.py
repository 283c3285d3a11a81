"""Errores del Core.

Por qué una jerarquía propia:
- La CLI captura `SchemaDiffError` en un único punto y termina con un mensaje
  claro; el Core nunca imprime ni llama a `sys.exit`.
- Cada tipo identifica qué fase falló (caché, descarga, validación, escritura).
"""

from __future__ import annotations

from pathlib import Path


class SchemaDiffError(Exception):
    """Base de todos los errores que abortan una ejecución."""


class PreconditionError(SchemaDiffError):
    """Error de programación: p.ej. cachear un documento sin metadata."""


class ValidationError(SchemaDiffError):
    """La invocación no es válida (se rechaza antes de cualquier request)."""


class RetrievalError(SchemaDiffError):
    """Fallo al obtener o parsear un documento (red, HTTP no-2xx, JSON inválido)."""

    def __init__(
        self,
        url: str,
        cause: str,
        *,
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.cause = cause
        self.status_code = status_code
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Request {url} failed{status}: {cause}")


class OutputWriteError(SchemaDiffError):
    """Fallo al persistir un artefacto (delta, visualización o caché)."""

    def __init__(self, path: Path | str, cause: str) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Could not write {self.path}: {cause}")
