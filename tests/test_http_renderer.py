# File: tests/test_http_renderer.py
# Prerendering a live aiohttp application through HttpRenderer
from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import web

from site_prerender.crawler.models import PageEntry, RedirectEntry
from site_prerender.engine import Engine, start_prerender
from site_prerender.errors import RendererNotConfiguredError
from site_prerender.renderer import HttpRenderer, RenderOptions, RenderRequest, RenderResponse
from tests.conftest import html


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


@pytest.fixture()
def referers() -> list:
    return []


@pytest_asyncio.fixture
async def app_server(unused_tcp_port: int, referers: list) -> AsyncIterator[str]:
    app = web.Application()

    async def handle_root(_):
        return web.Response(
            text='<a href="/about">About</a><a href="/old">Old</a><a href="/missing">?</a>',
            content_type="text/html",
        )

    async def handle_about(_):
        return web.Response(text='<h1>About</h1><a href="/">home</a>', content_type="text/html")

    async def handle_old(_):
        return web.Response(status=301, headers={"Location": "/about"})

    async def handle_data(request):
        referers.append(request.headers.get("Referer"))
        return web.json_response({"answer": 42})

    app.router.add_get("/", handle_root)
    app.router.add_get("/about", handle_about)
    app.router.add_get("/old", handle_old)
    app.router.add_get("/api/data.json", handle_data)

    async for url in _serve_app(app, unused_tcp_port):
        yield url


class StaticRenderer:
    """Renderer referenced by import string in the engine test."""

    async def render(self, request: RenderRequest, options: RenderOptions) -> RenderResponse:
        return html(f"<p>static {request.path}</p>")


@pytest.mark.asyncio()
async def test_prerender_running_app(make_config, out_dir, app_server: str):
    config = make_config(app_url=app_server)

    manifest = await start_prerender(config)

    assert manifest.pages == {"/": PageEntry("index.html"), "/about": PageEntry("about.html")}
    assert manifest.redirects == {"/old": RedirectEntry(301, "/about")}
    assert manifest.paths == ["/", "/about", "/old"]
    assert "<h1>About</h1>" in (out_dir / "about.html").read_text(encoding="utf-8")
    assert (out_dir / "old.html").read_text(encoding="utf-8") == (
        '<meta http-equiv="refresh" content="0;url=/about">'
    )


@pytest.mark.asyncio()
async def test_external_fetch_during_render(make_config, out_dir, app_server: str):
    trackers = []

    class ExternalDataRenderer:
        async def render(self, request, options):
            trackers.append(options.tracker)
            response = await options.tracker.fetch(f"{app_server}/api/data.json")
            data = await response.json()
            return html(f"<p>{data['answer']}</p>")

    manifest = await start_prerender(make_config(), ExternalDataRenderer())

    assert manifest.paths == ["/"]
    assert (out_dir / "index.html").read_text(encoding="utf-8") == "<p>42</p>"
    [tracker] = trackers
    # external responses feed hydration but never become output files
    assert len(tracker) == 0
    assert [payload.url for payload in tracker.fetched] == [f"{app_server}/api/data.json"]


@pytest.mark.asyncio()
async def test_external_fetch_sends_referer(make_config, app_server: str, referers: list):
    class Renderer:
        async def render(self, request, options):
            await options.tracker.fetch(f"{app_server}/api/data.json")
            return html("<p>ok</p>")

    await start_prerender(make_config(entries=["/", "/contact"], crawl=False), Renderer())
    assert sorted(referers) == ["http://prerender/", "http://prerender/contact"]


@pytest.mark.asyncio()
async def test_http_renderer_requires_session():
    renderer = HttpRenderer("http://localhost:1")
    with pytest.raises(RuntimeError):
        await renderer.render(RenderRequest("http://prerender/"), RenderOptions())


@pytest.mark.asyncio()
async def test_missing_renderer_configuration(make_config):
    with pytest.raises(RendererNotConfiguredError):
        await start_prerender(make_config())


def test_engine_with_renderer_import_string(make_config, out_dir):
    config = make_config(renderer="tests.test_http_renderer:StaticRenderer", crawl=False)
    manifest = Engine(config).start()
    assert manifest.pages == {"/": PageEntry("index.html")}
    assert (out_dir / "index.html").read_text(encoding="utf-8") == "<p>static /</p>"
