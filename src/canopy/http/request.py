"""Immutable HTTP request.

Frozen metadata with async body access. Path parameters are rebound per
middleware step with ``dataclasses.replace``; the body cache is shared by
every rebound copy, so the body is consumed once per request.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import unquote, urlsplit

from canopy._internal.asgi import Receive
from canopy._internal.types import Params
from canopy.errors import BadRequest
from canopy.http.cookies import parse_cookies
from canopy.http.headers import Headers, HeaderSource
from canopy.http.query import QueryParams

_FORM_TYPE = "application/x-www-form-urlencoded"


def _receive_bytes(body: bytes) -> Receive:
    """A receive callable replaying *body* as a single ASGI message."""
    sent = False

    async def receive() -> dict[str, Any]:
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return receive


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Body is accessed asynchronously via ``.body()``, ``.json()``, ``.form()``.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: Params
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None
    cookies: Mapping[str, str]

    # Private: ASGI receive callable for body streaming
    _receive: Receive

    # Private: body cache shared by every copy made with ``with_params``
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def url(self) -> str:
        """Full request URL (path + query string)."""
        qs = self.query.raw
        if qs:
            return f"{self.path}?{qs.decode('latin-1')}"
        return self.path

    @property
    def remote(self) -> str | None:
        """Client host, when the transport reported one."""
        return self.client[0] if self.client else None

    def with_params(self, params: Params) -> Request:
        """Return a copy carrying *params* as its path parameters."""
        return replace(self, path_params=params)

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        Result is cached: the ASGI receive is consumed once, then
        the same bytes are returned on subsequent calls.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncIterator[bytes]:
        """Stream the request body in chunks."""
        if "_body" in self._cache:
            yield self._cache["_body"]
            return
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def json(self) -> Any:
        """Parse the body as JSON.

        Raises:
            BadRequest: If the body is not valid JSON.
        """
        raw = await self.body()
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise BadRequest(f"Invalid JSON body: {exc}") from exc

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        return raw.decode("utf-8")

    async def form(self) -> QueryParams:
        """Parse a ``application/x-www-form-urlencoded`` body.

        Result is cached alongside the raw body.

        Raises:
            BadRequest: If the Content-Type is not url-encoded form data.
        """
        if "_form" in self._cache:
            return self._cache["_form"]
        content_type = (self.content_type or _FORM_TYPE).split(";")[0].strip().lower()
        if content_type != _FORM_TYPE:
            raise BadRequest(f"Unsupported form encoding: {content_type}")
        result = QueryParams(await self.body())
        self._cache["_form"] = result
        return result

    # -- Factories --

    @classmethod
    def from_asgi(
        cls,
        scope: dict[str, Any],
        receive: Receive,
        path_params: Params | None = None,
    ) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers.from_raw(scope.get("headers", ()))
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            path_params=path_params or {},
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "")),
            _receive=receive,
        )

    @classmethod
    def build(
        cls,
        method: str,
        url: str,
        *,
        headers: HeaderSource = None,
        body: bytes | str = b"",
        client: tuple[str, int] | None = None,
    ) -> Request:
        """Create a Request without a transport (for ``App.handle`` and tests).

        *url* may carry a query string; scheme and host are ignored.
        """
        parts = urlsplit(url)
        if isinstance(body, str):
            body = body.encode("utf-8")
        request_headers = Headers(headers)
        return cls(
            method=method.upper(),
            path=unquote(parts.path) or "/",
            headers=request_headers,
            query=QueryParams(parts.query),
            path_params={},
            http_version="1.1",
            server=None,
            client=client,
            cookies=parse_cookies(request_headers.get("cookie", "")),
            _receive=_receive_bytes(body),
        )
