"""Canopy exception hierarchy.

Shared across the router, the middleware chain, and the dispatcher so every
module raises and catches the same types.
"""

from dataclasses import dataclass


class CanopyError(Exception):
    """Base for all canopy-specific errors."""


class ConfigurationError(CanopyError):
    """Raised when the application is set up incorrectly.

    Invalid route patterns, non-callable handlers, wrong argument types
    for ``mount()``, or dispatching with no routes registered at all.
    """


class ChainError(CanopyError):
    """A middleware broke the continuation contract.

    Raised when ``next()`` is called more than once within a single
    handler invocation. Never routed to the error handler: it surfaces
    as an internal server error.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(CanopyError):
    """An error that maps directly to an HTTP status code.

    Handlers may raise it or return it. The middleware chain hands it to
    the application's error handler, which renders the response.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818
    """400: the request could not be understood."""

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(status=400, detail=detail)


class Forbidden(HTTPError):  # noqa: N818
    """403: the resource exists but may not be served."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class NotFound(HTTPError):  # noqa: N818
    """404: nothing handled the request path."""

    def __init__(self, detail: str = "The page was not found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: the resource does not accept this HTTP method.

    When *allowed* is given, an ``Allow`` header lists the valid methods.
    """

    def __init__(self, detail: str = "Method not allowed", allowed: frozenset[str] = frozenset()) -> None:
        headers = (("Allow", ", ".join(sorted(allowed))),) if allowed else ()
        super().__init__(status=405, detail=detail, headers=headers)


class InternalServerError(HTTPError):  # noqa: N818
    """500: an unexpected failure, converted at the dispatcher boundary."""

    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(status=500, detail=detail)
