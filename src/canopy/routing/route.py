"""RouteEntry and ResponseDefaults frozen dataclasses."""

import re
from dataclasses import dataclass
from typing import Any

from canopy._internal.types import Handler, Params
from canopy.routing.path import WILDCARD, RoutePath, compile_path, normalize_path


@dataclass(frozen=True, slots=True)
class ResponseDefaults:
    """Status, content type and headers a router stamps on its entries.

    Applied by the middleware chain whenever a handler's response leaves
    the corresponding field unset.
    """

    status: int | None = 200
    content_type: str | None = "text/plain; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, slots=True)
class RouteEntry:
    """One registered binding of methods, path pattern and handler.

    Created during setup. Mounting under a prefix produces a copy with a
    different ``root``; entries are never modified in place.
    """

    methods: frozenset[str]
    path: RoutePath
    handler: Handler
    root: str = "/"
    static: bool = False
    defaults: ResponseDefaults | None = None

    @property
    def is_regex(self) -> bool:
        return isinstance(self.path, re.Pattern)

    def relative_path(self, path: str) -> str:
        """The request path with this entry's mount root stripped."""
        if self.root == "/":
            return path
        return normalize_path(path[len(self.root) :] or "/")

    def matches(self, path: str, method: str) -> bool:
        """Decide whether this entry applies to a request.

        The mount root is a plain string prefix, so a root of ``/api`` also
        applies to ``/apiary``.
        """
        if self.methods and method not in self.methods:
            return False
        if not path.startswith(self.root):
            return False

        relative = self.relative_path(path)

        if isinstance(self.path, re.Pattern):
            return self.path.search(relative) is not None
        if (
            self.path == WILDCARD
            or relative == self.path == "/"
            or (self.static and path.startswith(self.path))
        ):
            return True

        return compile_path(self.path)(relative) is not None

    def extract_params(self, path: str) -> Params:
        """Parameters this entry's own pattern extracts from *path*.

        Empty for wildcard, regex and static entries, and when the pattern
        does not match.
        """
        if self.static or self.path == WILDCARD or isinstance(self.path, re.Pattern):
            return {}
        if not path.startswith(self.root):
            return {}
        found = compile_path(self.path)(self.relative_path(path))
        return found.params if found else {}

    def describe(self) -> dict[str, Any]:
        """Summary used in request logs."""
        path = self.path.pattern if isinstance(self.path, re.Pattern) else self.path
        return {
            "path": path,
            "methods": ", ".join(sorted(self.methods)) if self.methods else "ANY",
            "static": self.static,
        }
