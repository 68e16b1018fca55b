# site_prerender/crawler/models.py
"""
Data models for the prerenderer: work items, manifest entries and the manifest itself.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Union


@dataclass(frozen=True, slots=True)
class WorkItem:
    """One unit of prerender work. Identity is the decoded path."""

    decoded_path: str
    encoded_path: str
    referrer: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PageEntry:
    """An HTML document written to ``file``."""

    file: str


@dataclass(frozen=True, slots=True)
class AssetEntry:
    """Any non-HTML 200 response."""

    content_type: Optional[str]


@dataclass(frozen=True, slots=True)
class RedirectEntry:
    """A 3xx response; ``location`` is root-relative or absolute."""

    status: int
    location: str


ManifestEntry = Union[PageEntry, AssetEntry, RedirectEntry]


@dataclass(slots=True)
class Manifest:
    """Everything a prerender run produced, keyed by decoded path."""

    pages: Dict[str, PageEntry] = field(default_factory=dict)
    assets: Dict[str, AssetEntry] = field(default_factory=dict)
    redirects: Dict[str, RedirectEntry] = field(default_factory=dict)
    paths: List[str] = field(default_factory=list)
    _listed: Set[str] = field(default_factory=set, repr=False)

    def __contains__(self, path: object) -> bool:
        return path in self.pages or path in self.assets or path in self.redirects

    def add(self, path: str, entry: ManifestEntry, listed_as: str) -> bool:
        """
        Record *entry* under *path* unless the path already has an entry.

        ``listed_as`` is the form appended to :attr:`paths` (trailing slash removed).
        Returns False when the path was already recorded (first write wins).
        """
        if path in self:
            return False
        if isinstance(entry, PageEntry):
            self.pages[path] = entry
        elif isinstance(entry, AssetEntry):
            self.assets[path] = entry
        else:
            self.redirects[path] = entry
        if listed_as not in self._listed:
            self._listed.add(listed_as)
            self.paths.append(listed_as)
        return True

    def get(self, path: str) -> Optional[ManifestEntry]:
        return self.pages.get(path) or self.assets.get(path) or self.redirects.get(path)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pages": {p: {"file": e.file} for p, e in self.pages.items()},
            "assets": {p: {"type": e.content_type} for p, e in self.assets.items()},
            "redirects": {
                p: {"status": e.status, "location": e.location} for p, e in self.redirects.items()
            },
            "paths": list(self.paths),
        }


__all__ = [
    "WorkItem",
    "PageEntry",
    "AssetEntry",
    "RedirectEntry",
    "ManifestEntry",
    "Manifest",
]
