"""Resolución de una fuente de schemas (fichero local o servidor).

Un único punto de clasificación decide si el locator es un fichero o un
servidor; no hay caminos paralelos para cada tipo de entrada.

Servidor:
1. Se descarga siempre la metadata (version/revision) en vivo.
2. Con esa metadata se consulta la caché; solo el documento se cachea.
3. En un miss se descarga el documento una vez y se escribe en la caché.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Literal
from urllib.parse import urlparse

from pydantic import ValidationError as PydanticValidationError

from core.cache_store import SchemaCache
from core.domain.models import ResolvedSchemas, SchemaDocument, ServerMetadata
from core.errors import RetrievalError, ValidationError
from core.interfaces.fetcher import JsonFetcher


LocatorKind = Literal["file", "url"]


@dataclass(frozen=True)
class Locator:
    kind: LocatorKind
    # Ruta local o URL raíz del servidor (sin endpoint).
    target: str


@dataclass
class ResolverHooks:
    """Callbacks opcionales para la capa de UI (progreso)."""

    cache_hit: Callable[[str, ServerMetadata], None] | None = None
    downloading: Callable[[str, ServerMetadata], None] | None = None
    cached: Callable[[Path], None] | None = None


def is_absolute_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


def join_url(base_url: str, path: str) -> str:
    if not path:
        return base_url
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def classify_locator(location: str, base_url: str | None = None, *, absolute: bool = False) -> Locator:
    """Clasifica `location`.

    Orden: fichero existente, URL absoluta, ruta relativa a `base_url`.
    En modo absoluto solo se aceptan ficheros o URLs con esquema y host; sin
    `base_url` un locator relativo es inválido.
    """

    if Path(location).is_file():
        return Locator(kind="file", target=location)
    if is_absolute_url(location):
        return Locator(kind="url", target=location.rstrip("/"))
    if absolute:
        raise ValidationError(
            f"'{location}' is not an existing file nor an absolute URL (scheme and host) "
            "and --absolute was given."
        )
    if not base_url:
        raise ValidationError(
            f"'{location}' is not an existing file nor an absolute URL; "
            "specify absolute urls when --base-url is not given."
        )
    return Locator(kind="url", target=join_url(base_url, location).rstrip("/"))


def validate_locators(locations: Iterable[str], base_url: str | None = None, *, absolute: bool = False) -> list[Locator]:
    """Valida todos los locators antes de cualquier request."""

    return [classify_locator(location, base_url, absolute=absolute) for location in locations]


def _split_file_payload(payload: Any, path: Path) -> tuple[dict[str, Any] | None, SchemaDocument]:
    if not isinstance(payload, dict):
        raise RetrievalError(str(path), "expected a JSON object with schemas")

    meta = payload.get("meta")
    schemas = payload.get("schemas")
    if set(payload) == {"meta", "schemas"} and isinstance(schemas, dict):
        return meta, schemas

    document = {k: v for k, v in payload.items() if k != "meta"}
    return meta, document


def load_schema_file(path: Path) -> ResolvedSchemas:
    """Lee un snapshot local (entrada de caché, `{meta, schemas}` o documento crudo)."""

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise RetrievalError(str(path), str(exc)) from exc

    raw_meta, document = _split_file_payload(payload, path)
    try:
        if isinstance(raw_meta, dict):
            meta = ServerMetadata.model_validate(raw_meta)
        else:
            meta = ServerMetadata(version=path.stem, revision="local")
    except PydanticValidationError as exc:
        raise RetrievalError(str(path), f"invalid meta block: {exc}") from exc

    return ResolvedSchemas(meta=meta, schemas=document, origin=str(path))


class SchemaResolver:
    """Produce `(metadata, documento)` para un locator."""

    def __init__(
        self,
        *,
        fetcher: JsonFetcher,
        cache: SchemaCache | None = None,
        schemas_endpoint: str = "/api/schemas.json",
        info_endpoint: str = "/api/system/info.json",
        hooks: ResolverHooks | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._schemas_endpoint = schemas_endpoint
        self._info_endpoint = info_endpoint
        self._hooks = hooks or ResolverHooks()

    async def resolve(
        self,
        location: str,
        base_url: str | None = None,
        *,
        absolute: bool = False,
    ) -> ResolvedSchemas:
        locator = classify_locator(location, base_url, absolute=absolute)
        if locator.kind == "file":
            return load_schema_file(Path(locator.target))
        return await self.from_server(locator.target)

    async def fetch_metadata(self, root_url: str) -> ServerMetadata:
        info_url = join_url(root_url, self._info_endpoint)
        info = await self._fetcher.fetch_json(info_url)
        if not isinstance(info, dict):
            raise RetrievalError(info_url, "server info is not a JSON object")
        try:
            return ServerMetadata.model_validate(info)
        except PydanticValidationError as exc:
            raise RetrievalError(info_url, f"server info lacks version/revision: {exc}") from exc

    async def from_server(self, root_url: str) -> ResolvedSchemas:
        meta = await self.fetch_metadata(root_url)

        if self._cache is not None:
            cached = self._cache.read(meta)
            if cached is not None:
                if self._hooks.cache_hit:
                    self._hooks.cache_hit(root_url, meta)
                return ResolvedSchemas(meta=meta, schemas=cached, origin=root_url, from_cache=True)

        if self._hooks.downloading:
            self._hooks.downloading(root_url, meta)
        schemas_url = join_url(root_url, self._schemas_endpoint)
        document = await self._fetcher.fetch_json(schemas_url)
        if not isinstance(document, dict):
            raise RetrievalError(schemas_url, "schemas payload is not a JSON object")

        if self._cache is not None:
            path = self._cache.write(meta, document)
            if self._hooks.cached:
                self._hooks.cached(path)

        return ResolvedSchemas(meta=meta, schemas=document, origin=root_url)
