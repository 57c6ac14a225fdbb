"""Tests for CORS middleware."""

from canopy.app import App
from canopy.middleware.builtin import CORSConfig, CORSMiddleware
from canopy.testing import TestClient


def _make_cors_app(config: CORSConfig | None = None) -> App:
    """Helper: create an app with CORS middleware and a simple route."""
    app = App()
    app.use(CORSMiddleware(config))

    @app.route("/api/data")
    def data(context, next):
        return {"message": "hello"}

    @app.route("/api/data", methods=["POST"])
    def create_data(context, next):
        return ("created", 201)

    return app


def _header_names(response) -> set[str]:
    return {name for name, _ in response.headers}


class TestCORSNonCorsRequests:
    """Requests without an Origin header should pass through unaffected."""

    async def test_no_origin_header(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("*",)))
        async with TestClient(app) as client:
            response = await client.get("/api/data")
            assert response.status == 200
            assert response.json() == {"message": "hello"}
            assert "access-control-allow-origin" not in _header_names(response)


class TestCORSSimpleRequests:
    """Simple requests (GET, HEAD, POST with simple headers)."""

    async def test_allowed_origin_gets_cors_headers(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("https://example.com",)))
        async with TestClient(app) as client:
            response = await client.get(
                "/api/data",
                headers={"Origin": "https://example.com"},
            )
            assert response.status == 200
            assert ("access-control-allow-origin", "https://example.com") in response.headers
            assert ("vary", "Origin") in response.headers

    async def test_post_keeps_handler_status(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("https://example.com",)))
        async with TestClient(app) as client:
            response = await client.post(
                "/api/data",
                headers={"Origin": "https://example.com"},
            )
            assert response.status == 201
            assert response.text == "created"
            assert ("access-control-allow-origin", "https://example.com") in response.headers

    async def test_disallowed_origin_no_cors_headers(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("https://example.com",)))
        async with TestClient(app) as client:
            response = await client.get(
                "/api/data",
                headers={"Origin": "https://evil.com"},
            )
            assert response.status == 200
            assert "access-control-allow-origin" not in _header_names(response)

    async def test_wildcard_origin(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("*",)))
        async with TestClient(app) as client:
            response = await client.get(
                "/api/data",
                headers={"Origin": "https://anything.com"},
            )
            assert ("access-control-allow-origin", "*") in response.headers
            # Wildcard should NOT include Vary header
            assert ("vary", "Origin") not in response.headers

    async def test_unmatched_path_stays_not_found(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("*",)))
        async with TestClient(app) as client:
            response = await client.get(
                "/nowhere",
                headers={"Origin": "https://example.com"},
            )
            assert response.status == 404
            assert "access-control-allow-origin" not in _header_names(response)


class TestCORSPreflightRequests:
    """Preflight OPTIONS requests."""

    async def test_preflight_returns_204(self) -> None:
        app = _make_cors_app(
            CORSConfig(
                allow_origins=("https://example.com",),
                allow_methods=("GET", "POST", "PUT"),
                allow_headers=("Content-Type", "Authorization"),
            )
        )
        async with TestClient(app) as client:
            response = await client.options(
                "/api/data",
                headers={
                    "Origin": "https://example.com",
                    "Access-Control-Request-Method": "POST",
                },
            )
            assert response.status == 204
            assert response.body == b""
            assert ("access-control-allow-origin", "https://example.com") in response.headers
            assert ("access-control-allow-methods", "GET, POST, PUT") in response.headers
            assert (
                "access-control-allow-headers",
                "Content-Type, Authorization",
            ) in response.headers

    async def test_preflight_max_age(self) -> None:
        app = _make_cors_app(
            CORSConfig(
                allow_origins=("*",),
                max_age=3600,
            )
        )
        async with TestClient(app) as client:
            response = await client.options(
                "/api/data",
                headers={
                    "Origin": "https://example.com",
                    "Access-Control-Request-Method": "GET",
                },
            )
            assert ("access-control-max-age", "3600") in response.headers

    async def test_preflight_without_request_method(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("*",)))
        async with TestClient(app) as client:
            response = await client.options(
                "/api/data",
                headers={"Origin": "https://example.com"},
            )
            assert response.status == 204
            assert "access-control-allow-methods" not in _header_names(response)


class TestCORSCredentials:
    """Credential support."""

    async def test_credentials_header(self) -> None:
        app = _make_cors_app(
            CORSConfig(
                allow_origins=("https://example.com",),
                allow_credentials=True,
            )
        )
        async with TestClient(app) as client:
            response = await client.get(
                "/api/data",
                headers={"Origin": "https://example.com"},
            )
            assert ("access-control-allow-credentials", "true") in response.headers

    async def test_credentials_with_wildcard_echo_origin(self) -> None:
        """With credentials=True, the origin must be echoed (not *)."""
        app = _make_cors_app(
            CORSConfig(
                allow_origins=("*",),
                allow_credentials=True,
            )
        )
        async with TestClient(app) as client:
            response = await client.get(
                "/api/data",
                headers={"Origin": "https://example.com"},
            )
            assert ("access-control-allow-origin", "https://example.com") in response.headers
            assert ("vary", "Origin") in response.headers


class TestCORSExposeHeaders:
    """Expose-Headers support."""

    async def test_expose_headers(self) -> None:
        app = _make_cors_app(
            CORSConfig(
                allow_origins=("*",),
                expose_headers=("X-Request-Id", "X-Rate-Limit"),
            )
        )
        async with TestClient(app) as client:
            response = await client.get(
                "/api/data",
                headers={"Origin": "https://example.com"},
            )
            exposed = response.header("access-control-expose-headers", "")
            assert "X-Request-Id" in exposed
            assert "X-Rate-Limit" in exposed


class TestCORSDefaults:
    """Default configuration (restrictive)."""

    async def test_default_config_blocks_all_origins(self) -> None:
        """Default CORSConfig has empty allow_origins, so nothing is allowed."""
        app = _make_cors_app()
        async with TestClient(app) as client:
            response = await client.get(
                "/api/data",
                headers={"Origin": "https://example.com"},
            )
            assert response.status == 200
            assert "access-control-allow-origin" not in _header_names(response)
