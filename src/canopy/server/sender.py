"""ASGI response sending: translates a WireResponse into ASGI messages.

Buffered bodies go out in a single message with a ``content-length``.
Streamed bodies are sent chunk by chunk; without a declared length the
response uses chunked transfer encoding.
"""

import logging
from collections.abc import AsyncIterator

from canopy._internal.asgi import Send
from canopy.http.response import WireResponse

logger = logging.getLogger("canopy.server")


def _raw_headers(headers: tuple[tuple[str, str], ...]) -> list[tuple[bytes, bytes]]:
    return [(name.encode("latin-1"), value.encode("latin-1")) for name, value in headers]


async def send_response(response: WireResponse, send: Send) -> None:
    """Translate a WireResponse into ASGI send() calls."""
    raw_headers = _raw_headers(response.headers)

    if isinstance(response.body, bytes):
        body = response.body
        if response.header("content-length") is None:
            raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))
        await send({"type": "http.response.start", "status": response.status, "headers": raw_headers})
        await send({"type": "http.response.body", "body": body})
        return

    if response.header("content-length") is None:
        raw_headers.append((b"transfer-encoding", b"chunked"))
    await send({"type": "http.response.start", "status": response.status, "headers": raw_headers})

    try:
        if isinstance(response.body, AsyncIterator):
            async for chunk in response.body:
                if chunk:
                    await send({"type": "http.response.body", "body": chunk, "more_body": True})
        else:
            for chunk in response.body:
                if chunk:
                    await send({"type": "http.response.body", "body": chunk, "more_body": True})
    except Exception:
        # Headers already sent; end the body
        logger.exception("Error while streaming response body")

    await send({"type": "http.response.body", "body": b"", "more_body": False})
