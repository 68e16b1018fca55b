# site_prerender/crawler/dependencies.py
"""
Capture of in-render data fetches.

A renderer receives one :class:`DependencyTracker` per page render (inside
:class:`~site_prerender.renderer.RenderOptions`) and routes every data fetch of the
page logic through :meth:`DependencyTracker.fetch`. Same-origin fetches are answered
by rendering the sub-request and are recorded so the prerenderer can write them next
to the page without rendering them again. Bodies are captured when the page logic
reads them, and text bodies are also serialized for client-side hydration.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Collection,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)
from urllib.parse import unquote, urljoin, urlsplit

from aiohttp import ClientSession
from multidict import CIMultiDict

from site_prerender.crawler.paths import PRERENDER_ORIGIN, is_root_relative, resolve
from site_prerender.logger import get_logger
from site_prerender.renderer import RenderRequest, RenderResponse
from site_prerender.utils import guess_type

logger = get_logger("dependencies")

Respond = Callable[[RenderRequest], Awaitable[RenderResponse]]
ReadFile = Callable[[str], bytes]

_HYDRATION_SKIP_HEADERS = frozenset({"set-cookie", "etag"})


@dataclass(slots=True)
class DependencyRecord:
    """A sub-resource fetched during a render, with its body once it has been read."""

    resolved_path: str
    response: RenderResponse
    body: Union[bytes, str, None] = None

    @property
    def response_status(self) -> int:
        return self.response.status

    @property
    def response_headers(self) -> CIMultiDict:
        return self.response.headers

    async def payload(self) -> Union[bytes, str]:
        """Captured body, or the unread response body."""
        if self.body is None:
            self.body = await self.response.read()
        return self.body


@dataclass(frozen=True, slots=True)
class FetchedPayload:
    """A fetch serialized for the page's hydration data."""

    url: str
    request_body: Optional[str]
    json: str


class CapturingResponse:
    """Wraps a response and records its body into the tracker when it is read."""

    def __init__(
        self,
        response: RenderResponse,
        *,
        url: str,
        request_body: Optional[str],
        tracker: "DependencyTracker",
        record: Optional[DependencyRecord] = None,
    ) -> None:
        self._response = response
        self._url = url
        self._request_body = request_body
        self._tracker = tracker
        self._record = record

    def __repr__(self) -> str:
        return f"<CapturingResponse {self._url} status={self.status}>"

    @property
    def status(self) -> int:
        return self._response.status

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def headers(self) -> CIMultiDict:
        return self._response.headers

    @property
    def content_type(self) -> Optional[str]:
        return self._response.content_type

    @property
    def reason(self) -> str:
        return self._response.reason

    @property
    def body_used(self) -> bool:
        return self._response.body_used

    async def read(self) -> bytes:
        data = await self._response.read()
        if self._record is not None:
            self._record.body = data
        return data

    async def text(self) -> str:
        body = await self._response.text()
        self._tracker._serialize(self._url, self._request_body, self._response, body)
        if self._record is not None:
            self._record.body = body
        return body

    async def json(self) -> Any:
        return json.loads(await self.text())


class DependencyTracker:
    """Render-scoped map of captured dependencies plus the hydration payload."""

    def __init__(
        self,
        page_path: str,
        *,
        respond: Respond,
        files: Collection[str] = (),
        read: Optional[ReadFile] = None,
        base_path: str = "",
        session: Optional[ClientSession] = None,
        origin: str = PRERENDER_ORIGIN,
    ) -> None:
        self.page_path = page_path
        self.origin = origin
        self.base_path = base_path
        self.dependencies: Dict[str, DependencyRecord] = {}
        self.fetched: List[FetchedPayload] = []
        self._respond = respond
        self._files = files
        self._read = read
        self._session = session

    def __len__(self) -> int:
        return len(self.dependencies)

    def __iter__(self) -> Iterator[Tuple[str, DependencyRecord]]:
        return iter(list(self.dependencies.items()))

    def add(
        self,
        path: str,
        body: Union[bytes, str],
        *,
        status: int = 200,
        content_type: Optional[str] = None,
    ) -> DependencyRecord:
        """Record a dependency the renderer produced itself (e.g. ``<page>/__data.json``)."""
        headers = {"content-type": content_type} if content_type else {}
        record = DependencyRecord(path, RenderResponse(None, status=status, headers=headers), body)
        self.dependencies[path] = record
        return record

    async def fetch(
        self,
        resource: str,
        *,
        method: str = "GET",
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[str] = None,
        base: Optional[str] = None,
    ) -> CapturingResponse:
        """Fetch *resource* on behalf of the page being rendered."""
        if body is not None and not isinstance(body, str):
            raise TypeError("Request body must be a string")

        base_path = base or self.page_path
        request_headers = CIMultiDict(headers or {})
        request_headers["referer"] = self.origin + base_path

        resolved = resolve(base_path, resource.split("?", 1)[0])
        record: Optional[DependencyRecord] = None

        static_file = self._static_file(resolved)
        if static_file is not None:
            response = self._serve_file(*static_file)
        elif is_root_relative(resolved):
            key = urlsplit(resolved).path
            request = RenderRequest(
                url=urljoin(self.origin + base_path, resource),
                method=method,
                headers=request_headers,
                body=body,
            )
            response = await self._respond(request)
            record = DependencyRecord(key, response)
            self.dependencies[key] = record
            logger.debug("Captured dependency %s of %s", key, self.page_path)
        else:
            if resource.startswith("//"):
                raise ValueError(
                    f"Cannot request protocol-relative URL ({resource}) in server-side fetch"
                )
            response = await self._external(resource, method, request_headers, body)

        return CapturingResponse(
            response, url=resource, request_body=body, tracker=self, record=record
        )

    def hydration_payload(self) -> List[Dict[str, Any]]:
        return [{"url": f.url, "body": f.request_body, "json": f.json} for f in self.fetched]

    # ------------------------------------------------------------------ #
    # internals                                                          #
    # ------------------------------------------------------------------ #

    def _static_file(self, resolved: str) -> Optional[Tuple[str, bool]]:
        if not is_root_relative(resolved):
            return None
        path = urlsplit(resolved).path
        if path.startswith(self.base_path):
            path = path[len(self.base_path) :]
        filename = unquote(path)[1:]
        if filename in self._files:
            return filename, False
        if f"{filename}/index.html" in self._files:
            return f"{filename}/index.html", True
        return None

    def _serve_file(self, file: str, is_index: bool) -> RenderResponse:
        if self._read is None:
            logger.warning("No assets directory configured, cannot serve %s", file)
            return RenderResponse(None, status=404)
        content_type = "text/html" if is_index else guess_type(file)
        headers = {"content-type": content_type} if content_type else {}
        return RenderResponse(self._read(file), headers=headers)

    async def _external(
        self, url: str, method: str, headers: CIMultiDict, body: Optional[str]
    ) -> RenderResponse:
        if self._session is not None:
            return await self._request(self._session, url, method, headers, body)
        async with ClientSession() as session:
            return await self._request(session, url, method, headers, body)

    @staticmethod
    async def _request(
        session: ClientSession, url: str, method: str, headers: CIMultiDict, body: Optional[str]
    ) -> RenderResponse:
        async with session.request(method, url, headers=headers, data=body) as resp:
            return await RenderResponse.from_client_response(resp)

    def _serialize(
        self, url: str, request_body: Optional[str], response: RenderResponse, body: str
    ) -> None:
        headers = {
            k.lower(): v
            for k, v in response.headers.items()
            if k.lower() not in _HYDRATION_SKIP_HEADERS
        }
        payload = json.dumps(
            {
                "status": response.status,
                "statusText": response.reason,
                "headers": headers,
                "body": body,
            }
        )
        self.fetched.append(FetchedPayload(url=url, request_body=request_body, json=payload))


__all__ = [
    "DependencyRecord",
    "FetchedPayload",
    "CapturingResponse",
    "DependencyTracker",
]
