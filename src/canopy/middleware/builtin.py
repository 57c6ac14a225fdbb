"""Built-in middleware: CORS.

Provides a standards-compliant CORS middleware that answers preflight
requests and adds the appropriate headers to every other response.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from canopy.http.response import Response
from canopy.middleware.chain import Next

if TYPE_CHECKING:
    from canopy.context import Context


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """CORS middleware configuration.

    All fields have secure defaults (nothing is allowed).
    Override what you need::

        CORSConfig(
            allow_origins=("https://example.com",),
            allow_methods=("GET", "POST"),
        )
    """

    allow_origins: tuple[str, ...] = ()
    allow_methods: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")
    allow_headers: tuple[str, ...] = ()
    expose_headers: tuple[str, ...] = ()
    allow_credentials: bool = False
    max_age: int = 600  # 10 minutes


class CORSMiddleware:
    """Standards-compliant CORS middleware.

    Handles:
    - Preflight ``OPTIONS`` requests (answered directly with a 204)
    - Simple and actual requests (CORS headers added to the accumulated response)
    - Credential support (``Access-Control-Allow-Credentials``)
    - Wildcard origins (``"*"``) when credentials are disabled

    Register it ahead of the routes it should cover::

        app.use(CORSMiddleware(CORSConfig(
            allow_origins=("https://example.com",),
            allow_methods=("GET", "POST", "PUT"),
            allow_headers=("Content-Type", "Authorization"),
        )))
    """

    __slots__ = ("config",)

    def __init__(self, config: CORSConfig | None = None) -> None:
        self.config = config or CORSConfig()

    def _is_allowed_origin(self, origin: str) -> bool:
        """Check if the origin is in the allow list."""
        if "*" in self.config.allow_origins:
            return True
        return origin in self.config.allow_origins

    def _add_cors_headers(self, response: Response, origin: str) -> None:
        """Set CORS headers on a response in place."""
        cfg = self.config
        headers = response.headers

        if "*" in cfg.allow_origins and not cfg.allow_credentials:
            headers.set("Access-Control-Allow-Origin", "*")
        else:
            headers.set("Access-Control-Allow-Origin", origin)
            headers.set("Vary", "Origin")

        if cfg.allow_credentials:
            headers.set("Access-Control-Allow-Credentials", "true")

        if cfg.expose_headers:
            headers.set("Access-Control-Expose-Headers", ", ".join(cfg.expose_headers))

    def _preflight_response(self, origin: str, request_method: str | None) -> Response:
        """Build a preflight response with all CORS headers."""
        cfg = self.config
        response = Response(None, status=204)
        self._add_cors_headers(response, origin)

        if request_method:
            response.headers.set("Access-Control-Allow-Methods", ", ".join(cfg.allow_methods))

        if cfg.allow_headers:
            response.headers.set("Access-Control-Allow-Headers", ", ".join(cfg.allow_headers))

        response.headers.set("Access-Control-Max-Age", str(cfg.max_age))
        return response

    async def __call__(self, context: "Context", next: Next) -> Any:
        """Process the request with CORS handling."""
        request = context.request
        origin = request.headers.get("origin")

        # No Origin header: not a CORS request
        if origin is None or not self._is_allowed_origin(origin):
            await next()
            return None

        if request.method == "OPTIONS":
            return self._preflight_response(origin, request.headers.get("access-control-request-method"))

        response = await next()
        # Nothing matched below: leave the response empty so it becomes a 404
        if not response.empty():
            self._add_cors_headers(response, origin)
        return None
