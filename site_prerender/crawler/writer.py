# site_prerender/crawler/writer.py
"""
Output writer: turns render responses into files under the output directory and
records them in the :class:`~site_prerender.crawler.models.Manifest`.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Protocol, Set, Union

from multidict import CIMultiDict

from site_prerender.crawler.models import AssetEntry, Manifest, PageEntry, RedirectEntry
from site_prerender.crawler.paths import PathResolver, is_root_relative, normalize_path, resolve
from site_prerender.errors import ErrorPolicy, PrerenderFailure, ReferenceType
from site_prerender.utils import decode_uri, escape_html_attr, is_html_type

REDIRECT = 3

Enqueue = Callable[[Optional[str], str, Optional[str]], object]


class ResponseLike(Protocol):
    status: int

    @property
    def headers(self) -> CIMultiDict: ...


class ClaimSet:
    """Write-once membership set. :meth:`claim` checks and inserts in one step."""

    def __init__(self) -> None:
        self._items: Set[str] = set()

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def claim(self, key: str) -> bool:
        """Return True for the first caller with *key*, False afterwards."""
        if key in self._items:
            return False
        self._items.add(key)
        return True


def redirect_document(location: str) -> str:
    return f'<meta http-equiv="refresh" content={escape_html_attr(f"0;url={location}")}>'


def write_file(dest: Path, data: bytes) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(data)


class OutputWriter:
    """Writes each output file at most once (first writer wins) and fills the manifest."""

    def __init__(
        self,
        out_dir: Union[str, Path],
        resolver: PathResolver,
        errors: ErrorPolicy,
        enqueue: Enqueue,
        manifest: Optional[Manifest] = None,
    ) -> None:
        self.out_dir = Path(out_dir)
        self.resolver = resolver
        self.errors = errors
        self.enqueue = enqueue
        self.manifest = manifest if manifest is not None else Manifest()
        self.written = ClaimSet()
        self.logger = logging.getLogger("SitePrerender.writer")

    async def save(
        self,
        response: ResponseLike,
        body: Union[bytes, str],
        decoded: str,
        encoded: str,
        referrer: Optional[str],
        reference_type: ReferenceType,
    ) -> None:
        response_type = response.status // 100
        content_type = response.headers.get("content-type")
        is_html = response_type == REDIRECT or is_html_type(content_type)

        file = self.resolver.output_filename(decoded, is_html)
        if not self.written.claim(file):
            return
        dest = self.out_dir / file

        if response_type == REDIRECT:
            await self._save_redirect(response, decoded, encoded, dest)
            return

        if response.status == 200:
            self.logger.info("%s %s", response.status, decoded)
            data = body.encode("utf-8") if isinstance(body, str) else body
            await asyncio.to_thread(write_file, dest, data)

            entry = PageEntry(file) if is_html else AssetEntry(content_type)
            self.manifest.add(decoded, entry, normalize_path(decoded, "never"))
        else:
            # any other status, 204/206 included
            self.errors.report(
                PrerenderFailure(response.status, decoded, referrer, reference_type)
            )

    async def _save_redirect(
        self, response: ResponseLike, decoded: str, encoded: str, dest: Path
    ) -> None:
        location = response.headers.get("location")
        if not location:
            self.logger.warning("location header missing on redirect received from %s", decoded)
            return

        self.logger.warning("%s %s -> %s", response.status, decoded, location)
        await asyncio.to_thread(write_file, dest, redirect_document(location).encode("utf-8"))

        resolved = resolve(encoded, location)
        if is_root_relative(resolved):
            resolved = self.resolver.normalize(resolved)
            self.enqueue(decoded, decode_uri(resolved), resolved)

        self.manifest.add(
            decoded, RedirectEntry(response.status, resolved), normalize_path(decoded, "never")
        )


__all__ = ["OutputWriter", "ClaimSet", "redirect_document", "write_file", "REDIRECT"]
