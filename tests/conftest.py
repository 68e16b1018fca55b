# File: tests/conftest.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Union

import pytest

from site_prerender.config import BuildData, PrerenderConfig
from site_prerender.renderer import RenderOptions, RenderRequest, RenderResponse

Handler = Callable[[RenderRequest, RenderOptions], Awaitable[RenderResponse]]
Route = Union[Handler, RenderResponse, str]


def html(body: str, status: int = 200) -> RenderResponse:
    return RenderResponse(body, status=status, headers={"content-type": "text/html"})


def redirect(location: str, status: int = 301) -> RenderResponse:
    return RenderResponse(None, status=status, headers={"location": location})


class FakeApp:
    """
    In-memory renderer. Routes map a request path to an HTML string, a ready
    response (copied per render) or an async handler ``(request, options)``.
    Unknown paths render a 404.
    """

    def __init__(self, routes: Dict[str, Route]) -> None:
        self.routes = routes
        self.calls: List[str] = []
        self.options: List[RenderOptions] = []

    async def render(self, request: RenderRequest, options: RenderOptions) -> RenderResponse:
        self.calls.append(request.path)
        self.options.append(options)
        route = self.routes.get(request.path)
        if route is None:
            return RenderResponse("Not found", status=404, headers={"content-type": "text/plain"})
        if isinstance(route, str):
            return html(route)
        if isinstance(route, RenderResponse):
            return RenderResponse(route._body, status=route.status, headers=route.headers)
        return await route(request, options)


@pytest.fixture()
def out_dir(tmp_path) -> Path:
    return tmp_path / "build"


@pytest.fixture()
def make_config(out_dir) -> Callable[..., PrerenderConfig]:
    """
    Return a factory for PrerenderConfig writing into a temporary directory.
    """

    def factory(**overrides) -> PrerenderConfig:
        values = {"out_dir": out_dir, "entries": ["/"], "on_error": "continue"}
        values.update(overrides)
        return PrerenderConfig(**values)

    return factory


@pytest.fixture()
def build_data_file(tmp_path) -> Path:
    """
    Build description with one static file, one static index.html and a client chunk.
    """
    path = tmp_path / "build_data.json"
    path.write_text(
        json.dumps(
            {
                "static": ["robots.txt", "data/static.json", "docs/index.html"],
                "client": {"chunks": ["start-abc.js"], "assets": ["style-def.css"]},
                "entries": ["/", "/blog"],
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def build_data(build_data_file) -> BuildData:
    return BuildData.model_validate_json(build_data_file.read_text(encoding="utf-8"))
