# File: site_prerender/renderer.py
"""site_prerender.renderer: the interface between the prerenderer and the application renderer.

The prerenderer never knows how a page is produced. It hands a :class:`RenderRequest`
and :class:`RenderOptions` to any object implementing :class:`Renderer` and gets back a
:class:`RenderResponse`. :class:`HttpRenderer` is the bundled implementation that
renders by requesting pages from a running application server.
"""
from __future__ import annotations

import codecs
import json
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Mapping, Optional, Protocol, Sequence, Union
from urllib.parse import urlsplit

from aiohttp import ClientResponse, ClientSession, ClientTimeout
from multidict import CIMultiDict

from site_prerender.errors import BodyConsumedError
from site_prerender.logger import get_logger

if TYPE_CHECKING:
    from site_prerender.crawler.dependencies import DependencyTracker

__all__: Sequence[str] = (
    "RenderRequest",
    "RenderResponse",
    "RenderOptions",
    "Renderer",
    "HttpRenderer",
)

HeadersT = Union[Mapping[str, str], CIMultiDict, None]

logger = get_logger("renderer")


@dataclass(slots=True)
class RenderRequest:
    """A synthetic request on the prerender origin (or any absolute URL for sub-requests)."""

    url: str
    method: str = "GET"
    headers: CIMultiDict = field(default_factory=CIMultiDict)
    body: Optional[str] = None

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def path_qs(self) -> str:
        parts = urlsplit(self.url)
        return (parts.path or "/") + (f"?{parts.query}" if parts.query else "")


class RenderResponse:
    """Status, headers and a body that can be consumed exactly once."""

    def __init__(
        self,
        body: Union[bytes, str, None] = None,
        *,
        status: int = 200,
        headers: HeadersT = None,
    ) -> None:
        self.status = status
        self.headers: CIMultiDict = CIMultiDict(headers or {})
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body: bytes = body or b""
        self._consumed = False

    def __repr__(self) -> str:
        return f"<RenderResponse status={self.status} type={self.content_type!r}>"

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    @property
    def reason(self) -> str:
        try:
            return HTTPStatus(self.status).phrase
        except ValueError:
            return ""

    @property
    def body_used(self) -> bool:
        return self._consumed

    @property
    def charset(self) -> str:
        for param in (self.content_type or "").split(";")[1:]:
            key, _, value = param.strip().partition("=")
            if key.lower() == "charset" and value:
                charset = value.strip('"')
                try:
                    codecs.lookup(charset)
                except LookupError:
                    logger.warning("Unknown charset %r, decoding as utf-8", charset)
                    return "utf-8"
                return charset
        return "utf-8"

    async def read(self) -> bytes:
        if self._consumed:
            raise BodyConsumedError("response body already consumed")
        self._consumed = True
        return self._body

    async def text(self) -> str:
        return (await self.read()).decode(self.charset, errors="replace")

    async def json(self) -> Any:
        return json.loads(await self.text())

    @classmethod
    async def from_client_response(cls, resp: ClientResponse) -> "RenderResponse":
        """Buffer an aiohttp response into a :class:`RenderResponse`."""
        body = await resp.read()
        return cls(body, status=resp.status, headers=CIMultiDict(resp.headers))


@dataclass(slots=True)
class RenderOptions:
    """Per-render context handed to the renderer.

    ``tracker`` captures in-render data fetches (see
    :class:`~site_prerender.crawler.dependencies.DependencyTracker`); ``fallback`` is set
    only for the single-page-app fallback render; ``all`` asks the renderer to
    prerender every route regardless of per-page opt-outs.
    """

    tracker: Optional["DependencyTracker"] = None
    fallback: Optional[str] = None
    all: bool = False


class Renderer(Protocol):
    async def render(self, request: RenderRequest, options: RenderOptions) -> RenderResponse:
        ...


class HttpRenderer:
    """Renders pages by requesting them from a running application server.

    Redirects are not followed so that 3xx responses reach the output writer.
    No dependency capture happens: the server's own data fetches are invisible here.
    """

    def __init__(
        self,
        app_url: str,
        *,
        timeout: float = 30.0,
        user_agent: str = "SitePrerender/0.1",
        session: Optional[ClientSession] = None,
    ) -> None:
        self.app_url = str(app_url).rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "HttpRenderer":
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.timeout),
                headers={"User-Agent": self.user_agent},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
        if self._owns_session:
            self.session = None

    async def render(self, request: RenderRequest, options: RenderOptions) -> RenderResponse:
        if not self.session:
            raise RuntimeError("Session not initialized")
        url = self.app_url + request.path_qs
        logger.debug("%s %s", request.method, url)
        async with self.session.request(
            request.method,
            url,
            headers=request.headers,
            data=request.body,
            allow_redirects=False,
        ) as resp:
            return await RenderResponse.from_client_response(resp)
