"""
SitePrerender package initializer.
Defines package version and exposes the prerender API and CLI.
"""
__version__ = "0.1.0"

from site_prerender.crawler.crawler import Prerenderer, prerender
from site_prerender.crawler.models import AssetEntry, Manifest, PageEntry, RedirectEntry
from site_prerender.renderer import HttpRenderer, RenderOptions, RenderRequest, RenderResponse

# Expose CLI entry point
from site_prerender.cli import cli as main_cli
from .cli import cli  # экспорт для pytest

__all__ = [
    "__version__",
    "Prerenderer",
    "prerender",
    "Manifest",
    "PageEntry",
    "AssetEntry",
    "RedirectEntry",
    "HttpRenderer",
    "RenderOptions",
    "RenderRequest",
    "RenderResponse",
    "cli",
    "main_cli",
]
