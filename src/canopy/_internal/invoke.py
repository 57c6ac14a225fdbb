"""Invoke helpers: call sync or async handlers uniformly.

Route handlers and error handlers can be ``def`` or ``async def``. Any
code that calls a user-provided callable goes through this helper so the
sync/async check lives in exactly one place.

Usage::

    from canopy._internal.invoke import invoke

    result = await invoke(entry.handler, context, next)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable.

    Works with both sync and async callables::

        # sync: the return value is used directly
        def hello(context, next):
            return "hello"

        # async: the coroutine is awaited
        async def timing(context, next):
            started = time.monotonic()
            await next()
            context.response.headers.set("X-Time", f"{time.monotonic() - started:.3f}")
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
