"""Tests for canopy.errors and the error pipeline in canopy.server.errors."""

import logging

import pytest

from canopy.context import Context
from canopy.errors import (
    BadRequest,
    CanopyError,
    ChainError,
    ConfigurationError,
    Forbidden,
    HTTPError,
    InternalServerError,
    MethodNotAllowed,
    NotFound,
)
from canopy.http.request import Request
from canopy.server.errors import (
    HTML_TYPE,
    default_error_handler,
    error_response,
    handle_http_error,
    handle_internal_error,
    render_error_page,
)


def _context() -> Context:
    return Context(Request.build("GET", "/broken"))


class TestHierarchy:
    def test_everything_is_a_canopy_error(self) -> None:
        for error in (ConfigurationError("x"), ChainError("x"), NotFound()):
            assert isinstance(error, CanopyError)

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (BadRequest(), 400),
            (Forbidden(), 403),
            (NotFound(), 404),
            (MethodNotAllowed(), 405),
            (InternalServerError(), 500),
        ],
    )
    def test_statuses(self, error: HTTPError, status: int) -> None:
        assert error.status == status
        assert isinstance(error, HTTPError)

    def test_not_found_default_detail(self) -> None:
        assert NotFound().detail == "The page was not found"

    def test_method_not_allowed_allow_header(self) -> None:
        error = MethodNotAllowed(allowed=frozenset({"POST", "GET"}))
        assert error.headers == (("Allow", "GET, POST"),)

    def test_str(self) -> None:
        assert str(NotFound("gone")) == "404: gone"
        assert str(HTTPError(418)) == "418"

    def test_raisable(self) -> None:
        with pytest.raises(HTTPError) as exc_info:
            raise Forbidden("no")
        assert exc_info.value.status == 403


class TestErrorPage:
    def test_page_contents(self) -> None:
        page = render_error_page(404, "The page was not found")
        assert "<h3>Error 404: The page was not found</h3>" in page
        assert "Powered by Canopy" in page

    def test_detail_is_escaped(self) -> None:
        page = render_error_page(400, "<script>")
        assert "<script>" not in page
        assert "&lt;script&gt;" in page

    def test_error_response(self) -> None:
        response = error_response(MethodNotAllowed(allowed=frozenset({"GET"})))
        assert response.status == 405
        assert response.content_type == HTML_TYPE
        assert response.headers["allow"] == "GET"


class TestHandleHTTPError:
    async def test_default_handler(self) -> None:
        response = await handle_http_error(_context(), NotFound(), default_error_handler)
        assert response.status == 404
        assert "The page was not found" in response.body

    async def test_handler_returning_none_falls_back(self) -> None:
        response = await handle_http_error(_context(), Forbidden(), lambda context, error: None)
        assert response.status == 403
        assert response.content_type == HTML_TYPE

    async def test_handler_status_kept(self) -> None:
        def handler(context, error):
            return "teapot", 418

        response = await handle_http_error(_context(), NotFound(), handler)
        assert response.status == 418
        assert response.body == "teapot"

    async def test_missing_status_takes_error_status(self) -> None:
        async def handler(context, error):
            return {"detail": error.detail}

        response = await handle_http_error(_context(), BadRequest("bad"), handler)
        assert response.status == 400
        assert response.body == {"detail": "bad"}


class TestHandleInternalError:
    async def test_logs_and_hides_detail(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR, logger="canopy.server"):
            try:
                raise ValueError("secret")
            except ValueError as exc:
                response = await handle_internal_error(
                    _context(),
                    exc,
                    default_error_handler,
                    detail="Internal server error",
                    debug=False,
                )
        assert response.status == 500
        assert "secret" not in response.body
        assert any(
            record.exc_info and record.exc_info[0] is ValueError for record in caplog.records
        )

    async def test_debug_shows_exception(self) -> None:
        try:
            raise ValueError("secret")
        except ValueError as exc:
            response = await handle_internal_error(
                _context(),
                exc,
                default_error_handler,
                detail="Internal server error",
                debug=True,
            )
        assert "ValueError: secret" in response.body

    async def test_failing_error_handler_falls_back(self) -> None:
        def broken(context, error):
            raise RuntimeError("handler broke")

        try:
            raise ValueError("original")
        except ValueError as exc:
            response = await handle_internal_error(
                _context(),
                exc,
                broken,
                detail="Internal server error",
                debug=False,
            )
        assert response.status == 500
        assert response.content_type == HTML_TYPE
