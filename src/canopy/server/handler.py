"""Request dispatch.

Takes a Request and the frozen route table, runs the matched entries as
a middleware chain, and always produces a WireResponse: unexpected
exceptions stop at this boundary and become 500 responses.
"""

import logging
from collections.abc import Sequence

from canopy._internal.types import ErrorHandler
from canopy.config import AppConfig
from canopy.context import Context, context_var
from canopy.errors import ConfigurationError, NotFound
from canopy.http.request import Request
from canopy.http.response import WireResponse
from canopy.middleware.chain import combine
from canopy.routing.route import RouteEntry
from canopy.server.errors import handle_http_error, handle_internal_error

logger = logging.getLogger("canopy.server")


def status_line(status: int) -> str:
    outcome = "ERROR" if status >= 400 else "OK"
    return f"Response: {status} {outcome}"


async def dispatch(
    request: Request,
    entries: Sequence[RouteEntry],
    *,
    error_handler: ErrorHandler,
    config: AppConfig,
    remote: str | None = None,
) -> WireResponse:
    """Process a single request through matching, the chain and the error pipeline."""
    level = logging.INFO if config.log_requests else logging.DEBUG
    logger.log(
        level,
        "Request [%s]: %s %s",
        remote or request.remote or "-",
        request.method,
        request.url,
    )

    context = Context(request)
    token = context_var.set(context)
    try:
        wire = await _dispatch(context, entries, error_handler, config, level)
    except Exception as exc:
        response = await handle_internal_error(
            context,
            exc,
            error_handler,
            detail=config.internal_error_detail,
            debug=config.debug,
        )
        wire = response.transform()
    finally:
        context_var.reset(token)

    logger.log(level, status_line(wire.status))
    return wire


async def _dispatch(
    context: Context,
    entries: Sequence[RouteEntry],
    error_handler: ErrorHandler,
    config: AppConfig,
    level: int,
) -> WireResponse:
    if not entries:
        msg = "No routes are registered for the application"
        raise ConfigurationError(msg)

    request = context.request
    matched = [entry for entry in entries if entry.matches(request.path, request.method)]

    if matched:
        if logger.isEnabledFor(level):
            logger.log(level, "Matched entries: %s", [entry.describe() for entry in matched])
        run_chain = combine(request.path, matched, error_handler)
        response = await run_chain(context)
        response.apply_cookies(context.cookies)
        if not response.empty():
            return response.transform()

    not_found = await handle_http_error(context, NotFound(config.not_found_detail), error_handler)
    return not_found.transform()
