"""HTTP response model.

``Response`` is what handlers build and return, and it is also the
accumulator the middleware chain merges every partial result into.
``transform()`` lowers it to a ``WireResponse``: status, header pairs and
an encoded body, ready for ``send_response``.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from canopy.http.cookies import CookieStore
from canopy.http.headers import Headers, HeaderSource, MutableHeaders, combine_headers
from canopy.http.query import QueryParams

if TYPE_CHECKING:
    from canopy.routing.route import ResponseDefaults

JSON_TYPE = "application/json; charset=utf-8"

# Statuses that never carry a body on the wire
NO_BODY_STATUSES = frozenset({101, 204, 205, 304})

WireBody = bytes | Iterator[bytes] | AsyncIterator[bytes]


class BodyKind(Enum):
    """The closed set of body shapes a ``Response`` can carry."""

    ABSENT = "absent"
    TEXT = "text"
    BINARY = "binary"
    STREAM = "stream"
    FORM = "form"
    STRUCTURED = "structured"


def classify_body(body: Any) -> BodyKind:
    if body is None:
        return BodyKind.ABSENT
    if isinstance(body, str):
        return BodyKind.TEXT
    if isinstance(body, (bytes, bytearray, memoryview)):
        return BodyKind.BINARY
    if isinstance(body, QueryParams):
        return BodyKind.FORM
    if isinstance(body, (Iterator, AsyncIterator)):
        return BodyKind.STREAM
    return BodyKind.STRUCTURED


def is_blank(body: Any) -> bool:
    """True for None, empty text or bytes, zero, and False.

    Containers are never blank: an empty dict still encodes as ``{}``.
    """
    if body is None:
        return True
    if isinstance(body, (str, bytes, bytearray, memoryview, bool, int, float)):
        return not body
    return False


def encode_body(body: Any) -> WireBody:
    """Encode a response body for the wire according to its kind."""
    match classify_body(body):
        case BodyKind.ABSENT:
            return b""
        case BodyKind.TEXT:
            return body.encode("utf-8")
        case BodyKind.BINARY:
            return bytes(body)
        case BodyKind.STREAM:
            return body
        case BodyKind.FORM:
            return body.encode().encode("utf-8")
        case BodyKind.STRUCTURED:
            if is_blank(body):
                return b""
            return json.dumps(body, default=str).encode("utf-8")


@dataclass(slots=True)
class Response:
    """An HTTP response under construction.

    ``status`` and ``content_type`` may be left as ``None`` ("not set");
    the chain fills them from route defaults and ``transform()`` falls
    back to 200. A zero-argument callable *body* is called once here.

    Unlike the request, a response is mutable: ``context.response`` is
    updated in place as the chain unwinds. The ``with_*()`` helpers return
    modified copies and leave the original alone.
    """

    body: Any = None
    status: int | None = field(default=None, kw_only=True)
    content_type: str | None = field(default=None, kw_only=True)
    headers: MutableHeaders = field(default_factory=MutableHeaders, kw_only=True)

    def __post_init__(self) -> None:
        if callable(self.body) and not isinstance(self.body, type):
            self.body = self.body()
        if not isinstance(self.headers, MutableHeaders):
            self.headers = MutableHeaders(self.headers)
        if self.content_type is None and isinstance(self.body, (dict, list, tuple)):
            self.content_type = JSON_TYPE

    @classmethod
    def from_value(cls, value: Any) -> Response | None:
        """Normalize a handler return value.

        ``None`` stays ``None`` and a ``Response`` is returned unchanged.
        ``(body, status)`` and ``(body, status, headers)`` tuples are
        unpacked; any other value becomes the body.
        """
        if value is None or isinstance(value, Response):
            return value
        if (
            isinstance(value, tuple)
            and len(value) in (2, 3)
            and isinstance(value[1], int)
            and not isinstance(value[1], bool)
        ):
            body, status, *rest = value
            return cls(body, status=status, headers=rest[0] if rest else None)
        return cls(value)

    # -- Chainable copies --

    def _copy(self, **changes: Any) -> Response:
        values = {
            "body": self.body,
            "status": self.status,
            "content_type": self.content_type,
            "headers": self.headers.copy(),
        }
        values.update(changes)
        return Response(values.pop("body"), **values)

    def with_status(self, status: int) -> Response:
        """Return a copy with a different status code."""
        return self._copy(status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a copy with an additional header."""
        copy = self._copy()
        copy.headers.append(name, value)
        return copy

    def with_headers(self, headers: HeaderSource) -> Response:
        """Return a copy with every header in *headers* set."""
        copy = self._copy()
        copy.headers.update(headers)
        return copy

    def with_content_type(self, content_type: str) -> Response:
        """Return a copy with a different content type."""
        return self._copy(content_type=content_type)

    def with_body(self, body: Any) -> Response:
        """Return a copy with a different body."""
        return self._copy(body=body)

    # -- Accumulator operations --

    def empty(self) -> bool:
        """True when nothing was produced: no headers and a blank body."""
        return len(self.headers) == 0 and is_blank(self.body)

    def apply_cookies(self, store: CookieStore) -> None:
        """Append one ``Set-Cookie`` header per cookie that must be sent."""
        for cookie in store.outgoing():
            self.headers.append("Set-Cookie", cookie.to_header_value())

    def merge(self, returned: Response, defaults: ResponseDefaults | None = None) -> None:
        """Fold a handler's result into this accumulator.

        The body is replaced wholesale. Headers are a union where the
        returned response wins, then the route defaults, then whatever was
        already accumulated. Content type and status come from the returned
        response when set, otherwise from the defaults.
        """
        default_headers = Headers(defaults.headers) if defaults else None
        self.body = returned.body
        self.headers = combine_headers(returned.headers, default_headers, self.headers)
        self.content_type = returned.content_type or (defaults.content_type if defaults else None)
        self.status = returned.status or (defaults.status if defaults else None) or 200

    # -- Wire form --

    def transform(self) -> WireResponse:
        """Lower to a ``WireResponse``.

        Empty header values are dropped and ``Content-Type`` is set from
        ``content_type``. No-body statuses always send an empty body.
        """
        status = self.status or 200
        headers = MutableHeaders([(name, value) for name, value in self.headers.multi_items() if value])
        if self.content_type:
            headers.set("Content-Type", self.content_type)
        body = b"" if status in NO_BODY_STATUSES else encode_body(self.body)
        return WireResponse(
            status=status,
            headers=tuple((name.lower(), value) for name, value in headers.multi_items()),
            body=body,
        )


def redirect(url: str, status: int = 307, headers: HeaderSource = None) -> Response:
    """Build a redirect response with a ``Location`` header."""
    response_headers = MutableHeaders(headers)
    response_headers.set("Location", str(url))
    return Response(None, status=status, headers=response_headers)


@dataclass(frozen=True, slots=True)
class WireResponse:
    """The final response as it goes on the wire.

    Header names are lower-cased. ``body`` is bytes, or an iterator of
    byte chunks for streamed responses.
    """

    status: int
    headers: tuple[tuple[str, str], ...] = ()
    body: WireBody = b""

    def header(self, name: str, default: str | None = None) -> str | None:
        """Return the first value for *name* (case-insensitive)."""
        name_lower = name.lower()
        for key, value in self.headers:
            if key == name_lower:
                return value
        return default

    def header_list(self, name: str) -> list[str]:
        """Return every value for *name* (case-insensitive)."""
        name_lower = name.lower()
        return [value for key, value in self.headers if key == name_lower]

    @property
    def streamed(self) -> bool:
        return not isinstance(self.body, bytes)

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (buffered bodies only)."""
        if not isinstance(self.body, bytes):
            raise TypeError("Streamed body must be read with read()")
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Body parsed as JSON (buffered bodies only)."""
        return json.loads(self.text)

    async def read(self) -> bytes:
        """Collect the body, draining a stream if necessary."""
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, AsyncIterator):
            return b"".join([chunk async for chunk in self.body])
        return b"".join(self.body)
