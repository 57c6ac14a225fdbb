"""Canopy: a minimalist asynchronous HTTP toolkit.

Handlers are plain ``def`` / ``async def`` callables taking
``(context, next)``. Matched routes run as one middleware chain whose
partial results merge into a single response.

Basic usage::

    from canopy import App

    app = App()

    @app.route("/")
    def index(context, next):
        return "hello"

    @app.route("/user/:id")
    def user(context, next):
        return {"id": context.params["id"]}

Serve ``app`` with any ASGI 3.0 server.
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "BadRequest",
    "CanopyError",
    "ChainError",
    "ConfigurationError",
    "Context",
    "Forbidden",
    "HTTPError",
    "InternalServerError",
    "MethodNotAllowed",
    "Middleware",
    "Next",
    "NotFound",
    "Request",
    "Response",
    "ResponseDefaults",
    "Router",
    "WireResponse",
    "get_context",
    "redirect",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import canopy`` fast while providing a clean top-level API.
    """
    if name == "App":
        from canopy.app import App

        return App

    if name == "AppConfig":
        from canopy.config import AppConfig

        return AppConfig

    if name == "Request":
        from canopy.http.request import Request

        return Request

    if name in ("Response", "WireResponse", "redirect"):
        from canopy.http import response as _resp

        return getattr(_resp, name)

    if name == "Router":
        from canopy.routing.router import Router

        return Router

    if name == "ResponseDefaults":
        from canopy.routing.route import ResponseDefaults

        return ResponseDefaults

    if name in ("Middleware", "Next"):
        from canopy.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in ("Context", "get_context"):
        from canopy import context as _ctx

        return getattr(_ctx, name)

    if name in (
        "BadRequest",
        "CanopyError",
        "ChainError",
        "ConfigurationError",
        "Forbidden",
        "HTTPError",
        "InternalServerError",
        "MethodNotAllowed",
        "NotFound",
    ):
        from canopy import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
