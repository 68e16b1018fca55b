# site_prerender/crawler/link_extractor.py
"""
Link extraction for rendered HTML documents.

The crawler only extracts raw attribute values; resolution and filtering belong to
:mod:`site_prerender.crawler.paths` and the prerenderer.
"""
from __future__ import annotations

from typing import Iterator, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

# attribute -> tags that carry a URL in it
_URL_ATTRS: dict[str, tuple[str, ...]] = {
    "href": ("a", "link", "area", "base"),
    "src": ("img", "script", "iframe", "source", "audio", "video", "embed", "track", "input"),
    "poster": ("video",),
    "data": ("object",),
}
_SRCSET_TAGS = ("img", "source")


def _srcset_urls(value: str) -> Iterator[str]:
    # "a.png 1x, b.png 2x" -> a.png, b.png
    for candidate in value.split(","):
        url = candidate.strip().split(" ", 1)[0]
        if url:
            yield url


class LinkCrawler:
    """
    Re-iterable sequence of href-like references found in an HTML document.

    The document is parsed on first iteration; every iteration walks it again
    lazily, in document order.
    """

    def __init__(self, html: str) -> None:
        self.html = html
        self._soup: Optional[BeautifulSoup] = None

    def _document(self) -> BeautifulSoup:
        if self._soup is None:
            self._soup = BeautifulSoup(self.html, "html.parser")
        return self._soup

    def __iter__(self) -> Iterator[str]:
        for tag in self._document().descendants:
            if not isinstance(tag, Tag):
                continue
            for attr, tags in _URL_ATTRS.items():
                if tag.name not in tags:
                    continue
                value = tag.get(attr)
                if isinstance(value, str) and value.strip():
                    yield value.strip()
            if tag.name in _SRCSET_TAGS:
                srcset = tag.get("srcset")
                if isinstance(srcset, str):
                    yield from _srcset_urls(srcset)


def crawl(html: str) -> LinkCrawler:
    """Shortcut: ``for href in crawl(html): ...``."""
    return LinkCrawler(html)


__all__ = ["LinkCrawler", "crawl"]
