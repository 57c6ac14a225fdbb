"""Middleware chain composition.

``combine()`` turns the entries matched for a request into one callable.
The first matched entry runs outermost; each handler receives a
single-use ``Next`` continuation that runs the remaining entries and
resolves to the accumulated response::

    async def outer(context, next):
        # before everything registered after this entry
        response = await next()
        # after everything registered after this entry
        return None

Handlers that return ``None`` leave the accumulator alone. Anything else
is normalized with ``Response.from_value`` and merged into
``context.response`` using the entry's route defaults. An ``HTTPError``,
raised or returned, is handed to the error handler first.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING

from canopy._internal.invoke import invoke
from canopy._internal.types import ErrorHandler
from canopy.errors import ChainError, HTTPError
from canopy.http.response import Response
from canopy.routing.route import RouteEntry
from canopy.server.errors import handle_http_error

if TYPE_CHECKING:
    from canopy.context import Context


class _Chain:
    """Execution state for one run of a composed chain.

    ``stack`` holds the matched entries in reverse registration order, so
    position ``len - 1`` is the first registered entry. ``index`` only
    ever decreases; claiming a position at or above it means a handler
    called its continuation twice.
    """

    __slots__ = ("context", "error_handler", "index", "path", "stack")

    def __init__(
        self,
        path: str,
        entries: tuple[RouteEntry, ...],
        error_handler: ErrorHandler,
        context: Context,
    ) -> None:
        self.path = path
        self.stack = tuple(reversed(entries))
        self.error_handler = error_handler
        self.context = context
        self.index = len(self.stack)

    def claim(self, position: int) -> None:
        if position >= self.index:
            msg = "next() called multiple times"
            raise ChainError(msg)
        self.index = position

    async def run(self, position: int) -> Response:
        context = self.context
        if position < 0:
            return context.response

        entry = self.stack[position]
        context.bind_params(entry.extract_params(self.path))

        try:
            result = await invoke(entry.handler, context, Next(self, position - 1))
        except HTTPError as exc:
            result = exc

        if isinstance(result, HTTPError):
            result = await handle_http_error(context, result, self.error_handler)

        response = Response.from_value(result)
        if response is not None:
            context.response.merge(response, entry.defaults)
        return context.response


class Next:
    """Single-use continuation handed to each handler.

    Calling it claims the next position immediately, so a second call
    raises ``ChainError`` before anything runs. The returned awaitable
    runs the rest of the chain.
    """

    __slots__ = ("_chain", "_position")

    def __init__(self, chain: _Chain, position: int) -> None:
        self._chain = chain
        self._position = position

    def __call__(self) -> Awaitable[Response]:
        self._chain.claim(self._position)
        return self._chain.run(self._position)


def combine(
    path: str,
    entries: Iterable[RouteEntry],
    error_handler: ErrorHandler,
) -> Callable[[Context], Awaitable[Response]]:
    """Compose *entries* (in registration order) into one chain runner."""
    snapshot = tuple(entries)

    async def run_chain(context: Context) -> Response:
        chain = _Chain(path, snapshot, error_handler, context)
        return await Next(chain, len(snapshot) - 1)()

    return run_chain
