# File: site_prerender/utils.py
"""site_prerender.utils: URI encoding helpers, HTML escaping and content-type handling."""

from __future__ import annotations

import mimetypes
import re
from pathlib import Path
from typing import Callable, Optional, Sequence, Union
from urllib.parse import quote, unquote

__all__: Sequence[str] = (
    "encode_uri",
    "decode_uri",
    "escape_html_attr",
    "mime_type",
    "is_html_type",
    "guess_type",
    "file_reader",
)

# Same set of characters encodeURI leaves alone (alphanumerics and "-_.~" are never quoted).
_URI_SAFE = "!#$&'()*+,/:;=?@"

# Escapes that decode to reserved URI characters stay encoded, like decodeURI.
_RESERVED_ESCAPE_RE = re.compile(r"(%(?:2[346BCFbcf]|3[ABDFabdf]|40))")

# A "%" that does not start a valid escape is data and gets encoded as %25.
_ESCAPE_RE = re.compile(r"(%[0-9A-Fa-f]{2})")

_ATTR_ESCAPES = {"&": "&amp;", '"': "&quot;", "<": "&lt;", ">": "&gt;"}
_ATTR_RE = re.compile(r'[&"<>]')


def encode_uri(path: str) -> str:
    """Percent-encode *path* without touching existing escapes or URI delimiters."""
    parts = _ESCAPE_RE.split(path)
    return "".join(part if i % 2 else quote(part, safe=_URI_SAFE) for i, part in enumerate(parts))


def decode_uri(path: str) -> str:
    """Decode percent-escapes except those of reserved characters (``%2F`` stays)."""
    parts = _RESERVED_ESCAPE_RE.split(path)
    # odd indices are the reserved escapes captured by the split
    return "".join(part if i % 2 else unquote(part) for i, part in enumerate(parts))


def escape_html_attr(value: str) -> str:
    """Return *value* as a double-quoted, escaped HTML attribute value."""
    return '"' + _ATTR_RE.sub(lambda m: _ATTR_ESCAPES[m.group(0)], value) + '"'


def mime_type(content_type: Optional[str]) -> str:
    """``"text/html; charset=utf-8"`` → ``"text/html"``."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def is_html_type(content_type: Optional[str]) -> bool:
    return mime_type(content_type) == "text/html"


def guess_type(filename: str) -> Optional[str]:
    """MIME type for a static file name, ``None`` if unknown."""
    if filename.endswith("/index.html") or filename.endswith(".html"):
        return "text/html"
    return mimetypes.guess_type(filename, strict=False)[0]


def file_reader(root: Union[str, Path]) -> Callable[[str], bytes]:
    """Build a ``read(relative_file) -> bytes`` callable rooted at *root*."""
    base = Path(root).expanduser()

    def read(file: str) -> bytes:
        return (base / file).read_bytes()

    return read
