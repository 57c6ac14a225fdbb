"""Per-request context.

Provides:
- ``Context``: what every handler receives as its first argument.
- ``context_var``: the current ``Context`` for this task, set by the
  dispatcher and reset after each request.

Thread safety:
    ``ContextVar`` is task-local under asyncio and thread-local under
    free-threading (3.14t). No locks needed.
"""

from contextvars import ContextVar
from os import PathLike
from typing import Any

from canopy._internal.types import Params
from canopy.http.cookies import CookieStore
from canopy.http.request import Request
from canopy.http.response import Response
from canopy.middleware.static import DEFAULT_CHUNK_SIZE, serve_static


class Context:
    """Everything one request carries through the middleware chain.

    Attributes:
        request: The frozen request. Replaced before each chain step with
            a copy carrying that step's own path parameters.
        response: The accumulated response, starting as an empty 200.
            Handlers may mutate it directly instead of returning a value.
        cookies: Inbound cookies plus whatever handlers set or delete.
        state: Free-form per-request storage shared between handlers.
    """

    __slots__ = ("cookies", "request", "response", "state")

    def __init__(self, request: Request) -> None:
        self.request = request
        self.response = Response(status=200)
        self.cookies = CookieStore(request.cookies, overwrite=False)
        self.state: dict[str, Any] = {}

    @property
    def params(self) -> Params:
        """Path parameters extracted by the current entry's pattern."""
        return self.request.path_params

    def bind_params(self, params: Params) -> None:
        """Rebind the request to carry *params* as its path parameters."""
        self.request = self.request.with_params(params)

    async def send(
        self,
        directory: str | PathLike[str],
        *,
        mount: str = "/",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> Response:
        """Serve the current request path from *directory*.

        Raises the same ``Forbidden`` / ``NotFound`` errors as
        ``serve_static``; inside a handler they reach the error handler.
        """
        return await serve_static(self.request.path, mount, directory, chunk_size=chunk_size)

    def __repr__(self) -> str:
        return f"<Context {self.request.method} {self.request.path}>"


context_var: ContextVar[Context] = ContextVar("canopy_context")
"""The current context. Set by the dispatcher before the chain runs."""


def get_context() -> Context:
    """Return the current context.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()
