from __future__ import annotations

import asyncio
import copy
import json
import re

import pytest
from conftest import FAKE_JS, FakeFetcher, make_schema, seed_assets, server_routes, write_snapshot

from core.config import AppSettings
from core.domain.models import DiffSessionRequest, ServerMetadata
from core.errors import OutputWriteError, RetrievalError, ValidationError
from core.services.diff_session import DiffSession, SessionHooks, schema_diff_identifier

BASE = "https://example.org"
META = {"version": "2.30", "revision": "abc"}


@pytest.fixture
def settings(tmp_path):
    return AppSettings(cache_dir=tmp_path / "cache", base_url=None)


@pytest.fixture
def cached_assets(tmp_path):
    return seed_assets(tmp_path / "cache")


@pytest.fixture
def identical_files(tmp_path, schema_document):
    left = write_snapshot(tmp_path / "left.json", schema_document, META)
    right = tmp_path / "right.json"
    right.write_bytes(left.read_bytes())
    return left, right


def test_schema_diff_identifier():
    left = ServerMetadata(version="2.29", revision="x1")
    right = ServerMetadata(version="2.30", revision="abc")

    assert schema_diff_identifier(left, right) == "2.29_x1__2.30_abc"


@pytest.mark.asyncio
async def test_identical_files_give_empty_delta_and_visualization(
    settings, identical_files, cached_assets, tmp_path, monkeypatch
):
    monkeypatch.chdir(tmp_path)
    left, right = identical_files
    session = DiffSession(settings, fetcher=FakeFetcher({}))

    result = await session.run(
        DiffSessionRequest(source1=str(left), source2=str(right), visualization_target="")
    )

    assert result.delta == {}
    assert result.report.is_empty
    assert result.visualization_path is not None
    assert result.visualization_path.name == "2.30_abc__2.30_abc.html"
    html = (tmp_path / result.visualization_path).read_text(encoding="utf-8")
    assert html
    assert 'id="meta-data"' in html
    assert html.count('"revision": "abc"') >= 1
    assert "No semantic differences." in html
    assert FAKE_JS in html


@pytest.mark.asyncio
async def test_visualization_into_existing_directory(settings, identical_files, cached_assets, tmp_path):
    left, right = identical_files
    out_dir = tmp_path / "reports"
    out_dir.mkdir()

    result = await DiffSession(settings, fetcher=FakeFetcher({})).run(
        DiffSessionRequest(source1=str(left), source2=str(right), visualization_target=out_dir)
    )

    assert result.visualization_path == out_dir / "2.30_abc__2.30_abc.html"
    assert result.visualization_path.is_file()


@pytest.mark.asyncio
async def test_servers_are_diffed_cached_and_written(settings, cached_assets, tmp_path, schema_document):
    right_document = copy.deepcopy(schema_document)
    right_document["schemas"].append(make_schema("program"))
    routes = {
        **server_routes(f"{BASE}/2.29", {"version": "2.29", "revision": "x1"}, schema_document),
        **server_routes(f"{BASE}/dev", {"version": "2.31", "revision": "y2"}, right_document),
    }
    fetcher = FakeFetcher(routes)
    output = tmp_path / "out" / "delta.json"
    written = []
    session = DiffSession(
        settings,
        fetcher=fetcher,
        hooks=SessionHooks(written=lambda kind, path: written.append(kind)),
    )

    result = await session.run(
        DiffSessionRequest(
            source1="/2.29",
            source2="/dev",
            base_url=BASE,
            output_path=output,
            visualization_target=tmp_path / "visual.html",
        )
    )

    assert result.delta == {"schemas": {"_t": "a", "3": [make_schema("program")]}}
    assert json.loads(output.read_text(encoding="utf-8")) == result.delta
    assert (tmp_path / "visual.html").is_file()
    assert written == ["delta", "visualization"]
    assert sorted(p.name for p in (tmp_path / "cache").glob("*.json")) == ["2.29_x1.json", "2.31_y2.json"]
    assert result.left.meta.version == "2.29"
    assert result.right.meta.version == "2.31"


@pytest.mark.asyncio
async def test_second_run_uses_cache(settings, schema_document):
    routes = server_routes(f"{BASE}/dev", {"version": "2.31", "revision": "y2"}, schema_document)
    request = DiffSessionRequest(source1="/dev", source2="/dev", base_url=BASE)

    await DiffSession(settings, fetcher=FakeFetcher(routes)).run(request)
    fetcher = FakeFetcher(routes)
    result = await DiffSession(settings, fetcher=fetcher).run(request)

    assert result.delta == {}
    assert result.left.from_cache and result.right.from_cache
    assert all(url.endswith("/api/system/info.json") for url in fetcher.calls)


@pytest.mark.asyncio
async def test_use_cache_false_skips_cache(settings, schema_document, tmp_path):
    routes = server_routes(f"{BASE}/dev", {"version": "2.31", "revision": "y2"}, schema_document)

    await DiffSession(settings, fetcher=FakeFetcher(routes)).run(
        DiffSessionRequest(source1="/dev", source2="/dev", base_url=BASE, use_cache=False)
    )

    assert not (tmp_path / "cache").exists()


@pytest.mark.asyncio
async def test_base_url_falls_back_to_settings(tmp_path, schema_document):
    settings = AppSettings(cache_dir=tmp_path / "cache", base_url=BASE)
    routes = server_routes(f"{BASE}/dev", {"version": "2.31", "revision": "y2"}, schema_document)

    result = await DiffSession(settings, fetcher=FakeFetcher(routes)).run(
        DiffSessionRequest(source1="/dev", source2="/dev")
    )

    assert result.delta == {}


@pytest.mark.asyncio
async def test_relative_locators_without_base_are_rejected_before_fetching(settings, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    fetcher = FakeFetcher({})

    with pytest.raises(ValidationError):
        await DiffSession(settings, fetcher=fetcher).run(DiffSessionRequest(source1="/2.29", source2="/dev"))

    assert fetcher.calls == []


@pytest.mark.asyncio
async def test_absolute_mode_rejects_relative_locators_before_fetching(settings, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    fetcher = FakeFetcher({})

    with pytest.raises(ValidationError):
        await DiffSession(settings, fetcher=fetcher).run(
            DiffSessionRequest(source1="/2.29", source2="/dev", absolute=True)
        )

    assert fetcher.calls == []


@pytest.mark.asyncio
async def test_visualization_assets_are_downloaded_once_and_inlined(settings, identical_files, tmp_path):
    left, right = identical_files
    base = settings.assets_base_url
    routes = {
        f"{base}/formatters-styles/html.css": ".jsondiffpatch-deleted { color: red; }",
        f"{base}/jsondiffpatch.umd.slim.js": "window.jsondiffpatch = {};",
    }
    request = DiffSessionRequest(source1=str(left), source2=str(right), visualization_target=tmp_path / "v.html")

    fetcher = FakeFetcher(routes)
    result = await DiffSession(settings, fetcher=fetcher).run(request)
    again = FakeFetcher(routes)
    await DiffSession(settings, fetcher=again).run(request)

    assert sorted(fetcher.calls) == sorted(routes)
    assert again.calls == []
    assert (tmp_path / "cache" / "assets" / "jsondiffpatch.umd.slim.js").is_file()
    html = result.visualization_path.read_text(encoding="utf-8")
    assert "<style>.jsondiffpatch-deleted { color: red; }</style>" in html
    assert "<script>window.jsondiffpatch = {};</script>" in html
    assert not re.search(r"""(src|href)\s*=\s*["']?https?://""", html)


@pytest.mark.asyncio
async def test_asset_download_failure_writes_nothing(settings, identical_files, tmp_path):
    left, right = identical_files
    output = tmp_path / "delta.json"

    with pytest.raises(RetrievalError):
        await DiffSession(settings, fetcher=FakeFetcher({})).run(
            DiffSessionRequest(
                source1=str(left),
                source2=str(right),
                output_path=output,
                visualization_target=tmp_path / "v.html",
            )
        )

    assert not output.exists()
    assert not (tmp_path / "v.html").exists()


@pytest.mark.asyncio
async def test_failure_of_one_source_aborts_and_writes_nothing(settings, tmp_path, schema_document):
    routes = server_routes(f"{BASE}/2.29", {"version": "2.29", "revision": "x1"}, schema_document)
    routes[f"{BASE}/dev/api/system/info.json"] = RetrievalError(f"{BASE}/dev/api/system/info.json", "Bad Gateway", status_code=502)
    output = tmp_path / "delta.json"

    with pytest.raises(RetrievalError) as exc_info:
        await DiffSession(settings, fetcher=FakeFetcher(routes)).run(
            DiffSessionRequest(source1="/2.29", source2="/dev", base_url=BASE, output_path=output)
        )

    assert exc_info.value.status_code == 502
    assert not output.exists()


class _SlowAndFailingFetcher:
    def __init__(self) -> None:
        self.cancelled = False

    async def fetch_json(self, url: str):
        if "/slow/" in url:
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        raise RetrievalError(url, "boom")


@pytest.mark.asyncio
async def test_first_failure_cancels_sibling_resolution(settings):
    fetcher = _SlowAndFailingFetcher()

    with pytest.raises(RetrievalError):
        await asyncio.wait_for(
            DiffSession(settings, fetcher=fetcher).run(
                DiffSessionRequest(source1="/slow", source2="/fail", base_url=BASE)
            ),
            timeout=5,
        )

    assert fetcher.cancelled


@pytest.mark.asyncio
async def test_output_write_failure_is_surfaced(settings, identical_files, tmp_path):
    left, right = identical_files
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(OutputWriteError) as exc_info:
        await DiffSession(settings, fetcher=FakeFetcher({})).run(
            DiffSessionRequest(source1=str(left), source2=str(right), output_path=blocker / "delta.json")
        )

    assert exc_info.value.path == blocker / "delta.json"
