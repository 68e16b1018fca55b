# === FILE: site_prerender/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Optional, Set

from aiohttp import ClientSession, ClientTimeout

from site_prerender.config import BuildData, PrerenderConfig
from site_prerender.crawler.dependencies import DependencyTracker, ReadFile
from site_prerender.crawler.link_extractor import crawl
from site_prerender.crawler.models import Manifest, WorkItem
from site_prerender.crawler.paths import PRERENDER_ORIGIN, PathResolver, pathname
from site_prerender.crawler.queue import WorkQueue
from site_prerender.crawler.writer import ClaimSet, OutputWriter, write_file
from site_prerender.errors import PrerenderFailure, make_error_policy
from site_prerender.renderer import Renderer, RenderOptions, RenderRequest
from site_prerender.utils import decode_uri, encode_uri, file_reader, is_html_type

__all__ = ("Prerenderer", "prerender", "FALLBACK_PATH")

#: Request path of the single-page-app fallback render.
FALLBACK_PATH = "/[fallback]"


class Prerenderer:
    """Обходит приложение от точек входа и пишет каждую страницу ровно один раз.

    Holds the shared state of one run: the seen set, the work queue, the output
    writer (with its written set and manifest) and the HTTP session used for
    external fetches made during renders.
    """

    def __init__(
        self,
        config: PrerenderConfig,
        renderer: Renderer,
        build: Optional[BuildData] = None,
        *,
        read: Optional[ReadFile] = None,
    ) -> None:
        self.config = config
        self.renderer = renderer
        self.build = build if build is not None else config.load_build_data()
        self.resolver = PathResolver(config.base_path, config.trailing_slash)
        self.errors = make_error_policy(config.on_error)
        self.queue = WorkQueue(config.concurrency)
        self.files: Set[str] = self.build.files(config.app_dir)
        self.known: Set[str] = self.build.known_paths(config.app_dir)
        self.seen = ClaimSet()
        self.writer = OutputWriter(config.out_dir, self.resolver, self.errors, self.enqueue)
        if read is None and config.assets_dir is not None:
            read = file_reader(config.assets_dir)
        self.read = read
        self.session: Optional[ClientSession] = None
        self.logger = logging.getLogger("SitePrerender")

    @property
    def manifest(self) -> Manifest:
        return self.writer.manifest

    async def run(self) -> Manifest:
        if not self.config.enabled and not self.config.fallback:
            return self.manifest

        start = time.monotonic()
        timeout = ClientTimeout(total=self.config.fetch_timeout)
        async with ClientSession(timeout=timeout) as session:
            self.session = session
            try:
                if self.config.enabled:
                    self.logger.info("Старт пререндера: %s", self.config.out_dir)
                    self.seed()
                    await self.queue.done()
                if self.config.fallback:
                    await self.render_fallback()
            finally:
                self.session = None

        duration = time.monotonic() - start
        self.logger.info(
            "Завершено: %d страниц, %d ассетов, %d редиректов за %.2f с",
            len(self.manifest.pages),
            len(self.manifest.assets),
            len(self.manifest.redirects),
            duration,
        )
        return self.manifest

    def seed(self) -> None:
        for entry in self.config.entries:
            if entry == "*":
                for route in self.build.entries:
                    self.enqueue(None, self.resolver.seed(route))
            else:
                self.enqueue(None, self.resolver.seed(entry))

    def enqueue(
        self, referrer: Optional[str], decoded: str, encoded: Optional[str] = None
    ) -> Optional["asyncio.Future[Any]"]:
        """Queue *decoded* for rendering unless it was seen before or is a build file."""
        if not self.seen.claim(decoded):
            return None
        if self.resolver.under_base(decoded) and self.resolver.relative_file(decoded) in self.known:
            return None
        item = WorkItem(decoded, encoded or encode_uri(decoded), referrer)
        return self.queue.add(lambda: self.visit(item))

    async def visit(self, item: WorkItem) -> None:
        decoded, encoded, referrer = item.decoded_path, item.encoded_path, item.referrer

        if not self.resolver.under_base(decoded):
            self.errors.report(PrerenderFailure(404, decoded, referrer, "linked"))
            return

        options = RenderOptions(all=self.config.all)
        tracker = self._tracker(encoded, options)
        response = await self.renderer.render(RenderRequest(PRERENDER_ORIGIN + encoded), options)
        body = await response.read()

        await self.writer.save(response, body, decoded, encoded, referrer, "linked")

        for dependency_path, record in tracker:
            # works the same whether dependency_path is encoded or not
            encoded_dependency = pathname(dependency_path)
            decoded_dependency = decode_uri(encoded_dependency)
            if not self.resolver.under_base(decoded_dependency):
                self.errors.report(
                    PrerenderFailure(404, decoded_dependency, decoded, "fetched")
                )
                continue
            self.seen.claim(decoded_dependency)
            await self.writer.save(
                record.response,
                await record.payload(),
                decoded_dependency,
                encoded_dependency,
                decoded,
                "fetched",
            )

        if self.config.crawl and is_html_type(response.content_type):
            self._follow_links(body.decode(response.charset, errors="replace"), decoded, encoded)

    def _follow_links(self, html: str, decoded: str, encoded: str) -> None:
        for href in crawl(html):
            if href.startswith(("data:", "#")):
                continue
            target = self.resolver.link_target(encoded, href)
            if target is None:
                self.logger.debug("Пропущена ссылка %s на %s", href, decoded)
                continue
            self.enqueue(decoded, *target)

    async def render_fallback(self) -> Path:
        """Render the SPA fallback document outside the crawl graph."""
        if not self.config.fallback:
            raise ValueError("fallback is not configured")
        options = RenderOptions(fallback=self.config.fallback, all=False)
        self._tracker(FALLBACK_PATH, options)
        response = await self.renderer.render(
            RenderRequest(PRERENDER_ORIGIN + FALLBACK_PATH), options
        )
        dest = Path(self.config.out_dir) / self.config.fallback
        await asyncio.to_thread(write_file, dest, await response.read())
        self.logger.info("Фолбэк записан: %s", dest)
        return dest

    def _tracker(self, encoded: str, options: RenderOptions) -> DependencyTracker:
        # sub-requests share the page's options, so nested fetches land in the same map
        tracker = DependencyTracker(
            encoded,
            respond=lambda request: self.renderer.render(request, options),
            files=self.files,
            read=self.read,
            base_path=self.config.base_path,
            session=self.session,
        )
        options.tracker = tracker
        return tracker


async def prerender(
    config: PrerenderConfig,
    renderer: Renderer,
    build: Optional[BuildData] = None,
    *,
    read: Optional[ReadFile] = None,
) -> Manifest:
    """Run one prerender and return its manifest."""
    return await Prerenderer(config, renderer, build, read=read).run()
