"""Error handling pipeline for canopy requests.

Maps HTTPError exceptions and unexpected failures to Response objects,
using the application's error handler or the built-in HTML page.
"""

from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING

from canopy._internal.invoke import invoke
from canopy._internal.types import ErrorHandler
from canopy.errors import HTTPError, InternalServerError
from canopy.http.response import Response

if TYPE_CHECKING:
    from canopy.context import Context

logger = logging.getLogger("canopy.server")

HTML_TYPE = "text/html; charset=utf-8"


def render_error_page(status: int, detail: str) -> str:
    """Minimal standalone HTML page for an error status."""
    title = html.escape(f"Error {status}: {detail}")
    return f"""<!DOCTYPE html>
<html lang="en">
    <head>
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <meta http-equiv="Content-Type" content="text/html;charset=UTF-8">
        <title>{title}</title>
    </head>
    <body>
        <div style="text-align: center;">
            <h3>{title}</h3><hr />
            <p>Powered by Canopy</p>
        </div>
    </body>
</html>"""


def error_response(error: HTTPError) -> Response:
    """The built-in HTML response for *error*, including its headers."""
    return Response(
        render_error_page(error.status, error.detail),
        status=error.status,
        content_type=HTML_TYPE,
        headers=list(error.headers),
    )


def default_error_handler(context: Context, error: HTTPError) -> Response:
    """Render any HTTPError as the built-in HTML error page."""
    logger.debug(
        "%d %s %s: %s",
        error.status,
        context.request.method,
        context.request.path,
        error.detail,
    )
    return error_response(error)


async def handle_http_error(
    context: Context,
    error: HTTPError,
    error_handler: ErrorHandler,
) -> Response:
    """Run *error_handler* and normalize its result into a Response.

    A handler that returns nothing falls back to the built-in page; a
    result without a status keeps the error's status.
    """
    result = Response.from_value(await invoke(error_handler, context, error))
    if result is None:
        return error_response(error)
    if result.status is None:
        result.status = error.status
    return result


async def handle_internal_error(
    context: Context,
    exc: Exception,
    error_handler: ErrorHandler,
    *,
    detail: str,
    debug: bool,
) -> Response:
    """Handle an unexpected exception as a 500.

    The exception is logged with its traceback and never shown to the
    client unless *debug* is on. If the error handler fails as well, the
    built-in 500 page is returned.
    """
    logger.exception("500 %s %s", context.request.method, context.request.path)

    if debug:
        detail = f"{detail} ({type(exc).__name__}: {exc})"
    error = InternalServerError(detail)

    try:
        return await handle_http_error(context, error, error_handler)
    except Exception:
        logger.exception("Error handler failed while rendering a 500")
        return error_response(error)
