"""Route registry.

A ``Router`` is an ordered list of ``RouteEntry`` objects. Registration
order matters: entries are matched front to back and the first matching
entry runs outermost in the middleware chain.
"""

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import replace
from os import PathLike
from typing import Any

from canopy._internal.types import Handler
from canopy.errors import ConfigurationError, HTTPError, InternalServerError
from canopy.middleware.static import DEFAULT_CHUNK_SIZE, serve_static
from canopy.routing.path import WILDCARD, RoutePath, compile_path, normalize_path
from canopy.routing.route import ResponseDefaults, RouteEntry
from canopy.server.errors import error_response

logger = logging.getLogger("canopy.server")


def _methods(methods: str | Iterable[str] | None) -> frozenset[str]:
    if methods is None:
        return frozenset()
    if isinstance(methods, str):
        return frozenset({methods.upper()})
    return frozenset(method.upper() for method in methods)


class Router:
    """Ordered registry of route entries.

    Verb helpers register handlers directly and return the router, or act
    as decorators when no handler is given::

        router = Router()
        router.get("/", index).post("/users", auth, create_user)

        @router.get("/users/:id")
        def show_user(context, next):
            return {"id": context.params["id"]}
    """

    __slots__ = ("_defaults", "_entries")

    def __init__(self, defaults: ResponseDefaults | None = None) -> None:
        self._defaults = defaults or ResponseDefaults()
        self._entries: list[RouteEntry] = []

    @property
    def defaults(self) -> ResponseDefaults:
        return self._defaults

    @property
    def entries(self) -> tuple[RouteEntry, ...]:
        """Snapshot of the registered entries, in registration order."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(tuple(self._entries))

    # -- Registration --

    def register(
        self,
        methods: str | Iterable[str] | None,
        path: RoutePath,
        handlers: Iterable[Handler],
        *,
        static: bool = False,
    ) -> None:
        """Append one entry per handler, in order.

        Raises:
            ConfigurationError: If a handler is not callable or the path
                pattern is invalid.
        """
        path = normalize_path(path)
        if not static:
            compile_path(path)
        method_set = _methods(methods)
        for handler in handlers:
            if not callable(handler):
                msg = f"Route handlers must be callable, got {handler!r}"
                raise ConfigurationError(msg)
            self._entries.append(
                RouteEntry(
                    methods=method_set,
                    path=path,
                    handler=handler,
                    static=static,
                    defaults=self._defaults,
                )
            )

    def add(
        self, methods: str | Iterable[str] | None, path: RoutePath, *handlers: Handler
    ) -> Any:
        """Register *handlers*, or return a decorator when none are given."""
        if handlers:
            self.register(methods, path, handlers)
            return self

        def decorator(func: Handler) -> Handler:
            self.register(methods, path, (func,))
            return func

        return decorator

    def get(self, path: RoutePath, *handlers: Handler) -> Any:
        return self.add("GET", path, *handlers)

    def post(self, path: RoutePath, *handlers: Handler) -> Any:
        return self.add("POST", path, *handlers)

    def put(self, path: RoutePath, *handlers: Handler) -> Any:
        return self.add("PUT", path, *handlers)

    def patch(self, path: RoutePath, *handlers: Handler) -> Any:
        return self.add("PATCH", path, *handlers)

    def delete(self, path: RoutePath, *handlers: Handler) -> Any:
        return self.add("DELETE", path, *handlers)

    def head(self, path: RoutePath, *handlers: Handler) -> Any:
        return self.add("HEAD", path, *handlers)

    def options(self, path: RoutePath, *handlers: Handler) -> Any:
        return self.add("OPTIONS", path, *handlers)

    def connect(self, path: RoutePath, *handlers: Handler) -> Any:
        return self.add("CONNECT", path, *handlers)

    def all(self, path: RoutePath, *handlers: Handler) -> Any:
        """Register for every HTTP method."""
        return self.add(None, path, *handlers)

    def use(self, *args: Any) -> "Router":
        """Register middleware for every method and path.

        An optional leading path string scopes the middleware to requests
        under that root::

            router.use(timing)
            router.use("/admin", require_login, audit)
        """
        root = "/"
        middlewares = args
        if args and isinstance(args[0], str):
            root = normalize_path(args[0])
            middlewares = args[1:]
        for middleware in middlewares:
            if not callable(middleware):
                msg = f"Only callables may be registered as middleware, got {middleware!r}"
                raise ConfigurationError(msg)
            self._entries.append(
                RouteEntry(
                    methods=frozenset(),
                    path=WILDCARD,
                    handler=middleware,
                    root=root,
                )
            )
        return self

    def static(
        self,
        path: str,
        directory: str | PathLike[str],
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> "Router":
        """Serve the files under *directory* at *path* (GET only).

        Missing files and forbidden paths render as HTML error pages.
        Filesystem failures become a 500 page.
        """
        mount = normalize_path(path)

        async def serve(context: Any, next: Callable[[], Any]) -> Any:
            try:
                return await serve_static(
                    context.request.path, mount, directory, chunk_size=chunk_size
                )
            except HTTPError as exc:
                return error_response(exc)
            except OSError:
                logger.exception("Static file error for %s", context.request.path)
                return error_response(InternalServerError())

        self.register("GET", mount, (serve,), static=True)
        return self

    def mount(self, prefix_or_router: "str | Router", router: "Router | None" = None) -> "Router":
        """Copy another router's entries into this one.

        With a prefix, every copied entry is re-rooted at that prefix;
        without one, each entry keeps its own root (nested mounting).

        Raises:
            ConfigurationError: On any other combination of arguments.
        """
        if isinstance(prefix_or_router, Router) and router is None:
            self._entries.extend(prefix_or_router.entries)
        elif isinstance(prefix_or_router, str) and isinstance(router, Router):
            root = normalize_path(prefix_or_router)
            self._entries.extend(entry_with_root(entry, root) for entry in router.entries)
        else:
            msg = (
                "mount() expects a Router, or a path prefix and a Router; "
                f"got {type(prefix_or_router).__name__} and {type(router).__name__}"
            )
            raise ConfigurationError(msg)
        return self

    # -- Lookup --

    def match(self, path: str, method: str) -> list[RouteEntry]:
        """Entries applying to *path* and *method*, in registration order."""
        method = method.upper()
        return [entry for entry in self._entries if entry.matches(path, method)]


def entry_with_root(entry: RouteEntry, root: str) -> RouteEntry:
    """Copy of *entry* mounted under *root*."""
    return replace(entry, root=root)
