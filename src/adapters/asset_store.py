"""Copia local de los assets del formatter HTML de jsondiffpatch.

Por qué:
- La visualización debe abrirse sin red: el CSS y el JS se incrustan en el
  HTML en lugar de enlazarse a un CDN.
- Se descargan una sola vez desde `assets_base_url` y se guardan en
  `<cache_dir>/assets/`; las ejecuciones siguientes leen de disco.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from core.domain.models import VisualAssets
from core.errors import OutputWriteError
from core.interfaces.fetcher import JsonFetcher

# Rutas relativas a `assets_base_url` (layout de `dist/` de jsondiffpatch 0.4.x).
JSONDIFFPATCH_ASSETS: dict[str, str] = {
    "css": "formatters-styles/html.css",
    "js": "jsondiffpatch.umd.slim.js",
}


class AssetStore:
    """Descarga perezosa + caché en disco de `JSONDIFFPATCH_ASSETS`."""

    def __init__(self, directory: Path | str, base_url: str) -> None:
        self._directory = Path(directory)
        self._base_url = base_url.rstrip("/")

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, name: str) -> Path:
        return self._directory / PurePosixPath(JSONDIFFPATCH_ASSETS[name]).name

    def url_for(self, name: str) -> str:
        return f"{self._base_url}/{JSONDIFFPATCH_ASSETS[name]}"

    def missing(self) -> list[str]:
        return [name for name in JSONDIFFPATCH_ASSETS if not self.path_for(name).is_file()]

    async def load(self, fetcher: JsonFetcher) -> VisualAssets:
        """Devuelve los assets, descargando solo los que faltan en disco."""

        for name in self.missing():
            text = await fetcher.fetch_text(self.url_for(name))
            self._write(self.path_for(name), text)

        contents: dict[str, str] = {}
        for name in JSONDIFFPATCH_ASSETS:
            path = self.path_for(name)
            try:
                contents[name] = path.read_text(encoding="utf-8")
            except OSError as exc:
                raise OutputWriteError(path, str(exc)) from exc
        return VisualAssets(**contents)

    def _write(self, path: Path, text: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise OutputWriteError(path, str(exc)) from exc
