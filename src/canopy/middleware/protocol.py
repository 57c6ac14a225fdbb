"""Middleware protocol.

A middleware (and a route handler: there is no difference) is any
callable matching::

    async def handler(context: Context, next: Next) -> Any: ...

No base class required. The return value may be ``None`` (keep whatever
the chain has accumulated), a ``Response``, an ``HTTPError``, a
``(body, status)`` or ``(body, status, headers)`` tuple, or a bare body.
"""

from typing import TYPE_CHECKING, Any, Protocol

from canopy.middleware.chain import Next

if TYPE_CHECKING:
    from canopy.context import Context

__all__ = ["Middleware", "Next"]


class Middleware(Protocol):
    """Protocol for canopy handlers and middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(context: Context, next: Next) -> None:
            start = time.monotonic()
            await next()
            elapsed = time.monotonic() - start
            context.response.headers.set("X-Time", f"{elapsed:.3f}")

        # Class middleware
        class RequireToken:
            async def __call__(self, context: Context, next: Next) -> Any:
                if "authorization" not in context.request.headers:
                    return Forbidden()
                return await next()
    """

    def __call__(self, context: "Context", next: Next) -> Any: ...
