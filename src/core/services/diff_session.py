"""Diff session orchestration.

Drives one diff run end to end: both sources are resolved concurrently,
the two documents are diffed, and the delta is dispatched to the optional
JSON output and HTML visualization. The CLI delegates everything here and
only wires the hooks to the console, which keeps the pipeline reusable from
tests or other entry points.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable

from adapters.asset_store import AssetStore
from adapters.http_client import HttpJsonFetcher, build_async_client
from adapters.json_exporter import export_delta_json
from adapters.report_exporter import JinjaDiffRenderer, export_visual_diff_html
from core.cache_store import SchemaCache
from core.config import AppSettings, HttpCredentials
from core.domain.models import (
    DiffSessionRequest,
    DiffSessionResult,
    ResolvedSchemas,
    ServerMetadata,
    VisualAssets,
)
from core.interfaces.fetcher import DiffRenderer, JsonFetcher
from core.services.delta_report import build_delta_report
from core.services.schema_resolver import ResolverHooks, SchemaResolver, validate_locators
from core.services.semantic_differ import IdentityStrategy, SemanticDiffer


def schema_identifier(meta: ServerMetadata) -> str:
    return meta.cache_key


def schema_diff_identifier(left: ServerMetadata, right: ServerMetadata) -> str:
    return f"{schema_identifier(left)}__{schema_identifier(right)}"


@dataclass
class SessionHooks:
    """Optional callbacks for UI layers (progress, written files)."""

    cache_hit: Callable[[str, ServerMetadata], None] | None = None
    downloading: Callable[[str, ServerMetadata], None] | None = None
    cached: Callable[[Path], None] | None = None
    written: Callable[[str, Path], None] | None = None

    def resolver_hooks(self) -> ResolverHooks:
        return ResolverHooks(
            cache_hit=self.cache_hit,
            downloading=self.downloading,
            cached=self.cached,
        )


def build_differ(settings: AppSettings) -> SemanticDiffer:
    return SemanticDiffer(
        identity=IdentityStrategy(fields=tuple(settings.identity_fields)),
        excluded_properties=settings.excluded_properties,
    )


class DiffSession:
    """Orchestrator for one `DiffSessionRequest`.

    Configuration is explicit: endpoints, cache directory and credentials come
    from the `AppSettings` (and optional `credentials`) passed at construction.
    When no fetcher is injected an `httpx.AsyncClient` is opened for the run
    and closed before `run` returns. The same fetcher downloads the
    visualization assets the first time an HTML output is requested.
    """

    def __init__(
        self,
        settings: AppSettings,
        *,
        credentials: HttpCredentials | None = None,
        fetcher: JsonFetcher | None = None,
        cache: SchemaCache | None = None,
        assets: AssetStore | None = None,
        differ: SemanticDiffer | None = None,
        renderer: DiffRenderer | None = None,
        hooks: SessionHooks | None = None,
    ) -> None:
        self._settings = settings
        self._credentials = credentials if credentials is not None else settings.credentials()
        self._fetcher = fetcher
        self._cache = cache or SchemaCache(settings.cache_dir)
        self._assets = assets or AssetStore(settings.cache_dir / "assets", settings.assets_base_url)
        self._differ = differ or build_differ(settings)
        self._renderer = renderer or JinjaDiffRenderer()
        self._hooks = hooks or SessionHooks()

    def _resolver(self, fetcher: JsonFetcher, use_cache: bool) -> SchemaResolver:
        return SchemaResolver(
            fetcher=fetcher,
            cache=self._cache if use_cache and self._settings.use_cache else None,
            schemas_endpoint=self._settings.schemas_endpoint,
            info_endpoint=self._settings.info_endpoint,
            hooks=self._hooks.resolver_hooks(),
        )

    def _base_url(self, request: DiffSessionRequest) -> str | None:
        return request.base_url or self._settings.base_url

    def _validate(self, request: DiffSessionRequest) -> None:
        validate_locators(
            (request.source1, request.source2),
            self._base_url(request),
            absolute=request.absolute,
        )

    @asynccontextmanager
    async def _open_fetcher(self) -> AsyncIterator[JsonFetcher]:
        if self._fetcher is not None:
            yield self._fetcher
            return
        async with build_async_client(self._settings, credentials=self._credentials) as client:
            yield HttpJsonFetcher(client)

    async def _resolve_with(
        self, fetcher: JsonFetcher, request: DiffSessionRequest
    ) -> tuple[ResolvedSchemas, ResolvedSchemas]:
        base_url = self._base_url(request)
        resolver = self._resolver(fetcher, request.use_cache)
        tasks = [
            asyncio.ensure_future(resolver.resolve(source, base_url, absolute=request.absolute))
            for source in (request.source1, request.source2)
        ]
        try:
            left, right = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return left, right

    async def resolve_pair(self, request: DiffSessionRequest) -> tuple[ResolvedSchemas, ResolvedSchemas]:
        """Resolve both sources concurrently; the first failure cancels the other."""

        self._validate(request)
        async with self._open_fetcher() as fetcher:
            return await self._resolve_with(fetcher, request)

    @staticmethod
    def visualization_path(target: Path | str, left: ServerMetadata, right: ServerMetadata) -> Path:
        """Empty target (or an existing directory) gets a name derived from both metadata blocks."""

        derived = f"{schema_diff_identifier(left, right)}.html"
        if isinstance(target, str) and not target.strip():
            return Path(derived)
        path = Path(target)
        if path.is_dir():
            return path / derived
        return path

    async def run(self, request: DiffSessionRequest) -> DiffSessionResult:
        self._validate(request)
        assets: VisualAssets | None = None
        async with self._open_fetcher() as fetcher:
            left, right = await self._resolve_with(fetcher, request)
            if request.visualization_target is not None:
                assets = await self._assets.load(fetcher)

        delta = self._differ.diff(left.schemas, right.schemas)
        report = build_delta_report(left.schemas, right.schemas, delta, self._differ.identity)
        result = DiffSessionResult(delta=delta, left=left, right=right, report=report)

        if request.output_path is not None:
            result.output_path = export_delta_json(delta=delta, output_path=Path(request.output_path))
            if self._hooks.written:
                self._hooks.written("delta", result.output_path)

        if assets is not None:
            target = self.visualization_path(request.visualization_target, left.meta, right.meta)
            html = self._renderer.render(
                left=left.schemas,
                delta=delta,
                meta={
                    "left": left.meta.model_dump(mode="json"),
                    "right": right.meta.model_dump(mode="json"),
                },
                assets=assets,
                report=report,
            )
            result.visualization_path = export_visual_diff_html(html=html, output_path=target)
            if self._hooks.written:
                self._hooks.written("visualization", result.visualization_path)

        return result
