# site_prerender/crawler/paths.py
"""
Path resolution for the prerenderer: relative-URL resolution against the synthetic
origin, root-relative checks, trailing-slash normalisation and output file names.
"""
from __future__ import annotations

import re
from typing import Literal, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from site_prerender.utils import decode_uri

TrailingSlash = Literal["never", "always", "ignore"]

#: Origin used for every request issued while prerendering.
PRERENDER_ORIGIN = "http://prerender"

_LAST_SEGMENT_WITHOUT_DOT = re.compile(r"/[^./]+$")


def is_root_relative(path: str) -> bool:
    """True for ``/foo`` style paths, false for ``//host/foo``, ``https://…`` and relative refs."""
    return path.startswith("/") and not path.startswith("//")


def resolve(base: str, href: str) -> str:
    """
    Resolve *href* against the encoded page path *base*.

    References that land on the prerender origin come back root-relative
    (path, query and fragment); everything else comes back absolute.
    Percent-escapes are kept as they are, so resolving twice gives the same string.
    """
    absolute = urljoin(PRERENDER_ORIGIN + base, href)
    parsed = urlsplit(absolute)
    if f"{parsed.scheme}://{parsed.netloc}" != PRERENDER_ORIGIN:
        return absolute
    return urlunsplit(("", "", parsed.path or "/", parsed.query, parsed.fragment))


def normalize_path(path: str, trailing_slash: TrailingSlash) -> str:
    """Apply the trailing-slash policy so one resource always maps to one key."""
    if path == "/" or trailing_slash == "ignore":
        return path
    if trailing_slash == "never":
        return path[:-1] if path.endswith("/") else path
    if trailing_slash == "always" and _LAST_SEGMENT_WITHOUT_DOT.search(path):
        return path + "/"
    return path


def pathname(url: str) -> str:
    """Encoded path component of a root-relative or absolute reference."""
    return urlsplit(urljoin(PRERENDER_ORIGIN + "/", url)).path or "/"


class PathResolver:
    """Base-path aware helpers bound to one configuration."""

    def __init__(self, base_path: str = "", trailing_slash: TrailingSlash = "never") -> None:
        self.base_path = base_path
        self.trailing_slash: TrailingSlash = trailing_slash

    def under_base(self, path: str) -> bool:
        """``/docs/a`` is under ``/docs``, ``/docsfoo`` is not."""
        if not self.base_path:
            return True
        return path == self.base_path or path.startswith(self.base_path + "/")

    def relative_file(self, decoded_path: str) -> str:
        """``/base/docs/a`` → ``docs/a`` (strip base path and leading slash)."""
        return decoded_path[len(self.base_path) + 1 :]

    def normalize(self, path: str, trailing_slash: Optional[TrailingSlash] = None) -> str:
        return normalize_path(path, trailing_slash or self.trailing_slash)

    def output_filename(self, decoded_path: str, is_html: bool) -> str:
        """Map a decoded path to the file it is written to, relative to the output dir."""
        file = self.relative_file(decoded_path)

        if file == "":
            return "index.html"

        if is_html and not file.endswith(".html"):
            if file.endswith("/"):
                return file + "index.html"
            if self.trailing_slash == "always":
                return file + "/index.html"
            return file + ".html"

        return file

    def seed(self, entry: str) -> str:
        """Turn a configured entry (``/about``) into a normalised decoded path."""
        return self.normalize(self.base_path + entry)

    def link_target(self, encoded_page: str, href: str) -> Optional[tuple[str, str]]:
        """
        Resolve a crawled *href* found on *encoded_page*.

        Returns ``(decoded, encoded)`` for root-relative, query-less links, else ``None``.
        """
        resolved = resolve(encoded_page, href)
        if not is_root_relative(resolved):
            return None
        parsed = urlsplit(resolved)
        if parsed.query:
            return None
        encoded = self.normalize(parsed.path)
        return decode_uri(encoded), encoded


__all__ = [
    "PRERENDER_ORIGIN",
    "TrailingSlash",
    "PathResolver",
    "is_root_relative",
    "normalize_path",
    "pathname",
    "resolve",
]
