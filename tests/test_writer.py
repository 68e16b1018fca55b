# File: tests/test_writer.py
from __future__ import annotations

import logging

import pytest

from site_prerender.crawler.models import AssetEntry, PageEntry, RedirectEntry
from site_prerender.crawler.paths import PathResolver
from site_prerender.crawler.writer import OutputWriter
from site_prerender.errors import (
    CallbackPolicy,
    ContinuePolicy,
    FailPolicy,
    PrerenderError,
    make_error_policy,
)
from site_prerender.renderer import RenderResponse


@pytest.fixture()
def enqueued() -> list[tuple]:
    return []


@pytest.fixture()
def writer(out_dir, enqueued) -> OutputWriter:
    return OutputWriter(
        out_dir,
        PathResolver("", "never"),
        ContinuePolicy(),
        lambda referrer, decoded, encoded: enqueued.append((referrer, decoded, encoded)),
    )


def html(body: str, status: int = 200) -> RenderResponse:
    return RenderResponse(body, status=status, headers={"content-type": "text/html"})


@pytest.mark.asyncio()
async def test_html_page_is_written_and_listed(writer, out_dir):
    await writer.save(html("<h1>hi</h1>"), "<h1>hi</h1>", "/about", "/about", "/", "linked")

    assert (out_dir / "about.html").read_text(encoding="utf-8") == "<h1>hi</h1>"
    assert writer.manifest.pages == {"/about": PageEntry("about.html")}
    assert writer.manifest.paths == ["/about"]


@pytest.mark.asyncio()
async def test_html_with_charset_is_still_a_page(writer, out_dir):
    response = RenderResponse("x", headers={"content-type": "text/html; charset=utf-8"})
    await writer.save(response, b"x", "/", "/", None, "linked")
    assert writer.manifest.pages == {"/": PageEntry("index.html")}
    assert (out_dir / "index.html").read_bytes() == b"x"


@pytest.mark.asyncio()
async def test_non_html_is_an_asset(writer, out_dir):
    response = RenderResponse(b"{}", headers={"content-type": "application/json"})
    await writer.save(response, b"{}", "/api/data.json", "/api/data.json", "/", "fetched")

    assert (out_dir / "api" / "data.json").read_bytes() == b"{}"
    assert writer.manifest.assets == {"/api/data.json": AssetEntry("application/json")}
    assert writer.manifest.pages == {}


@pytest.mark.asyncio()
async def test_redirect_writes_meta_refresh_and_enqueues_target(writer, out_dir, enqueued):
    response = RenderResponse(None, status=301, headers={"location": "/redirected"})
    await writer.save(response, b"", "/redirect", "/redirect", "/", "linked")

    assert (out_dir / "redirect.html").read_text(encoding="utf-8") == (
        '<meta http-equiv="refresh" content="0;url=/redirected">'
    )
    assert writer.manifest.redirects == {"/redirect": RedirectEntry(301, "/redirected")}
    assert writer.manifest.paths == ["/redirect"]
    assert enqueued == [("/redirect", "/redirected", "/redirected")]


@pytest.mark.asyncio()
async def test_redirect_location_is_escaped(writer, out_dir, enqueued):
    location = 'https://example.com/</script>alert("pwned")'
    response = RenderResponse(None, status=302, headers={"location": location})
    await writer.save(response, b"", "/redirect-malicious", "/redirect-malicious", None, "linked")

    assert (out_dir / "redirect-malicious.html").read_text(encoding="utf-8") == (
        '<meta http-equiv="refresh" '
        'content="0;url=https://example.com/&lt;/script&gt;alert(&quot;pwned&quot;)">'
    )
    assert enqueued == []


@pytest.mark.asyncio()
async def test_redirect_location_is_not_double_encoded(writer, out_dir):
    location = "https://example.com/redirected?returnTo=%2Ffoo%3Fbar%3Dbaz"
    response = RenderResponse(None, status=307, headers={"location": location})
    await writer.save(response, b"", "/redirect-encoded", "/redirect-encoded", None, "linked")

    assert (out_dir / "redirect-encoded.html").read_text(encoding="utf-8") == (
        '<meta http-equiv="refresh" '
        'content="0;url=https://example.com/redirected?returnTo=%2Ffoo%3Fbar%3Dbaz">'
    )
    assert writer.manifest.redirects["/redirect-encoded"].location == location


@pytest.mark.asyncio()
async def test_relative_redirect_is_resolved_against_current_path(writer, enqueued):
    response = RenderResponse(None, status=301, headers={"location": "../new/"})
    await writer.save(response, b"", "/old/page", "/old/page", None, "linked")

    assert writer.manifest.redirects["/old/page"] == RedirectEntry(301, "/new")
    assert enqueued == [("/old/page", "/new", "/new")]


@pytest.mark.asyncio()
async def test_redirect_without_location_is_skipped(writer, out_dir, enqueued, caplog):
    caplog.set_level(logging.WARNING, logger="SitePrerender")
    await writer.save(RenderResponse(None, status=301), b"", "/nowhere", "/nowhere", None, "linked")

    assert not (out_dir / "nowhere.html").exists()
    assert "/nowhere" not in writer.manifest
    assert enqueued == []
    assert "location header missing" in caplog.text


@pytest.mark.asyncio()
async def test_first_writer_wins(writer, out_dir):
    await writer.save(html("first"), "first", "/page", "/page", "/", "linked")
    await writer.save(html("second"), "second", "/page", "/page", "/other", "linked")

    assert (out_dir / "page.html").read_text(encoding="utf-8") == "first"
    assert writer.manifest.paths == ["/page"]
    assert len(writer.written) == 1


@pytest.mark.asyncio()
async def test_error_statuses_are_reported_and_not_written(out_dir, caplog):
    caplog.set_level(logging.ERROR, logger="SitePrerender")
    writer = OutputWriter(out_dir, PathResolver(), ContinuePolicy(), lambda *a: None)

    await writer.save(html("nope", 404), "nope", "/missing", "/missing", "/", "linked")
    await writer.save(RenderResponse(None, status=204), b"", "/empty", "/empty", "/", "fetched")

    assert not out_dir.exists()
    assert writer.manifest.paths == []
    assert "404 /missing (linked from /)" in caplog.text
    assert "204 /empty (fetched from /)" in caplog.text


@pytest.mark.asyncio()
async def test_fail_policy_raises(out_dir):
    writer = OutputWriter(out_dir, PathResolver(), FailPolicy(), lambda *a: None)
    with pytest.raises(PrerenderError, match="500 /broken"):
        await writer.save(html("err", 500), "err", "/broken", "/broken", None, "linked")


@pytest.mark.asyncio()
async def test_callback_policy_receives_details(out_dir):
    calls = []
    policy = make_error_policy(lambda *args: calls.append(args))
    assert isinstance(policy, CallbackPolicy)
    writer = OutputWriter(out_dir, PathResolver(), policy, lambda *a: None)

    await writer.save(html("gone", 410), "gone", "/gone", "/gone", "/", "linked")
    assert calls == [(410, "/gone", "/", "linked")]


def test_make_error_policy_rejects_unknown_values():
    with pytest.raises(ValueError):
        make_error_policy("explode")  # type: ignore[arg-type]
