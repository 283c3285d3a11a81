from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import pytest

from core.errors import RetrievalError


def make_schema(singular: str, *, host: str = "https://play.example.org", **extra: Any) -> dict[str, Any]:
    node: dict[str, Any] = {
        "singular": singular,
        "plural": f"{singular}s",
        "klass": f"org.example.{singular.capitalize()}",
        "href": f"{host}/api/schemas/{singular}",
        "apiEndpoint": f"{host}/api/{singular}s",
        "shareable": True,
        "properties": [
            {"name": "id", "propertyType": "IDENTIFIER", "href": f"{host}/api/{singular}s/id"},
            {"name": "name", "propertyType": "TEXT"},
        ],
    }
    node.update(extra)
    return node


@pytest.fixture
def schema_document() -> dict[str, Any]:
    return {
        "schemas": [
            make_schema("dataElement"),
            make_schema("indicator"),
            make_schema("organisationUnit"),
        ]
    }


def write_snapshot(path: Path, document: dict[str, Any], meta: dict[str, Any] | None = None) -> Path:
    payload = dict(document)
    if meta is not None:
        payload["meta"] = meta
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class FakeFetcher:
    """In-memory `JsonFetcher` that records every requested URL."""

    def __init__(self, routes: dict[str, Any]) -> None:
        self.routes = routes
        self.calls: list[str] = []

    async def fetch_json(self, url: str) -> Any:
        self.calls.append(url)
        if url not in self.routes:
            raise RetrievalError(url, "Not Found", status_code=404)
        value = self.routes[url]
        if isinstance(value, Exception):
            raise value
        return copy.deepcopy(value)

    async def fetch_text(self, url: str) -> str:
        value = await self.fetch_json(url)
        return value if isinstance(value, str) else json.dumps(value)


def server_routes(root: str, meta: dict[str, Any], document: dict[str, Any]) -> dict[str, Any]:
    return {
        f"{root}/api/system/info.json": meta,
        f"{root}/api/schemas.json": document,
    }


FAKE_CSS = ".jsondiffpatch-added { background: #bbffbb; }\n"
FAKE_JS = "var jsondiffpatch = window.jsondiffpatch || {};\n"


def seed_assets(cache_dir: Path) -> Path:
    """Deja los assets del formatter en `<cache_dir>/assets` para no ir a la red."""

    directory = cache_dir / "assets"
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "html.css").write_text(FAKE_CSS, encoding="utf-8")
    (directory / "jsondiffpatch.umd.slim.js").write_text(FAKE_JS, encoding="utf-8")
    return directory
