"""Canopy application class.

Mutable during setup (route registration, middleware, error handler).
Frozen at runtime when ``handle()`` or ``__call__()`` is first invoked.
"""

import inspect
import threading
from collections.abc import Callable, Iterable
from os import PathLike
from typing import Any

from canopy._internal.asgi import Receive, Scope, Send
from canopy._internal.types import ErrorHandler, Handler
from canopy.config import AppConfig
from canopy.http.request import Request
from canopy.http.response import WireResponse
from canopy.routing.path import RoutePath
from canopy.routing.route import ResponseDefaults, RouteEntry
from canopy.routing.router import Router
from canopy.server.errors import default_error_handler
from canopy.server.handler import dispatch
from canopy.server.sender import send_response


class App:
    """The canopy application.

    Mutable during setup (routes, middleware, error handler).
    Frozen at runtime when ``handle()`` or ``__call__()`` is first invoked.

    Usage::

        app = App()

        @app.route("/")
        def index(context, next):
            return "hello"

        app.use(CORSMiddleware(CORSConfig(allow_origins=("*",))))
        app.mount("/api", api_router)

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check to ensure exactly
        one thread snapshots the route table, even when several workers
        call ``__call__()`` concurrently on first request.
    """

    __slots__ = (
        "_entries",
        "_error_handler",
        "_freeze_lock",
        "_frozen",
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        defaults: ResponseDefaults | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._router = Router(defaults)
        self._error_handler: ErrorHandler = default_error_handler
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._entries: tuple[RouteEntry, ...] = ()

    # -- Route registration --

    def route(
        self,
        path: RoutePath,
        *,
        methods: Iterable[str] | None = ("GET",),
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            path: URL path pattern, e.g. ``/users/:id`` or a compiled regex.
            methods: HTTP methods. Defaults to ``("GET",)``; ``None``
                accepts every method.
        """

        def decorator(func: Handler) -> Handler:
            self._check_not_frozen()
            self._router.register(methods, path, (func,))
            return func

        return decorator

    def use(self, *args: Any) -> None:
        """Add middleware for every request, optionally under a path root.

        Usage::

            app.use(timing)
            app.use("/admin", require_login)
        """
        self._check_not_frozen()
        self._router.use(*args)

    def mount(self, prefix_or_router: str | Router, router: Router | None = None) -> None:
        """Add a router's entries, optionally re-rooted under a prefix."""
        self._check_not_frozen()
        self._router.mount(prefix_or_router, router)

    def static(self, path: str, directory: str | PathLike[str]) -> None:
        """Serve the files under *directory* at *path*."""
        self._check_not_frozen()
        self._router.static(path, directory, chunk_size=self.config.static_chunk_size)

    @property
    def router(self) -> Router:
        """The application's own router (verb helpers, decorators)."""
        return self._router

    @property
    def entries(self) -> tuple[RouteEntry, ...]:
        """Registered entries in registration order."""
        if self._frozen:
            return self._entries
        return self._router.entries

    # -- Error handler --

    def error_handler(self, func: ErrorHandler) -> ErrorHandler:
        """Replace the error handler via decorator.

        The handler receives ``(context, error)`` for every ``HTTPError``
        and for unexpected failures (as ``InternalServerError``).

        Usage::

            @app.error_handler
            def render_error(context, error):
                return {"error": error.detail}, error.status
        """
        self._check_not_frozen()
        self._error_handler = func
        return func

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator.

        Hooks run in registration order during ASGI lifespan shutdown,
        after the server stops accepting new requests.
        """
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Dispatch --

    async def handle(self, request: Request, remote: str | None = None) -> WireResponse:
        """Dispatch one request and return the final wire response.

        Never raises: unexpected errors become 500 responses.
        """
        self._ensure_frozen()
        return await dispatch(
            request,
            self._entries,
            error_handler=self._error_handler,
            config=self.config,
            remote=remote,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly and dispatches HTTP scopes.
        Other scope types are ignored.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        if scope["type"] != "http":
            return

        request = Request.from_asgi(scope, receive)
        response = await self.handle(request)
        await send_response(response, send)

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before first HTTP request), then
        runs registered startup/shutdown hooks and signals completion
        back to the server.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Snapshot the route table into its immutable runtime form.

        MUST only be called while holding _freeze_lock.
        """
        self._entries = self._router.entries
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and the error handler before the first request."
            )
            raise RuntimeError(msg)
