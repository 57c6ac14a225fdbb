"""Static file serving.

``serve_file`` streams one file from disk; ``serve_static`` maps a request
path under a mount point onto a directory tree, with automatic index file
resolution. Both raise typed HTTP errors (403, 404) and leave rendering to
the caller: ``Router.static`` turns them into HTML error pages.

File I/O goes through ``anyio`` so a large file never blocks the event
loop and the body is streamed chunk by chunk.
"""

import mimetypes
import stat
from collections.abc import AsyncIterator
from os import PathLike

import anyio

from canopy.errors import Forbidden, NotFound
from canopy.http.response import Response
from canopy.routing.path import normalize_path

INDEX_FILENAME = "index.html"

DEFAULT_CHUNK_SIZE = 64 * 1024

DEFAULT_CACHE_CONTROL = "public, max-age=3600"


def guess_content_type(filename: str) -> str:
    """Content type for *filename*; text types are marked UTF-8."""
    content_type, _ = mimetypes.guess_type(filename)
    if content_type is None:
        return "application/octet-stream"
    if content_type.startswith("text/"):
        return f"{content_type}; charset=utf-8"
    return content_type


async def _read_chunks(path: anyio.Path, chunk_size: int) -> AsyncIterator[bytes]:
    async with await anyio.open_file(path, "rb") as file:
        while chunk := await file.read(chunk_size):
            yield chunk


async def serve_file(
    path: str | PathLike[str],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    cache_control: str = DEFAULT_CACHE_CONTROL,
) -> Response:
    """Build a streaming response for a single file.

    Raises:
        Forbidden: If *path* is a directory.
        NotFound: If *path* does not exist.
    """
    file_path = anyio.Path(path)
    try:
        info = await file_path.stat()
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise NotFound("The file is not found") from exc

    if stat.S_ISDIR(info.st_mode):
        raise Forbidden("The requested file is a directory")

    return Response(
        _read_chunks(file_path, chunk_size),
        status=200,
        content_type=guess_content_type(file_path.name),
        headers=[
            ("Content-Length", str(info.st_size)),
            ("Cache-Control", cache_control),
        ],
    )


async def serve_static(
    request_path: str,
    mount: str,
    directory: str | PathLike[str],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Response:
    """Serve *request_path* from *directory*, which is mounted at *mount*.

    A directory is served through its ``index.html``.

    Raises:
        Forbidden: If the resolved path escapes *directory*.
        NotFound: If neither the file nor a directory index exists.
    """
    root = await anyio.Path(directory).resolve()
    prefix = normalize_path(mount)

    relative = request_path
    if prefix != "/" and request_path.startswith(prefix):
        relative = request_path[len(prefix) :]
    relative = relative.lstrip("/")

    target = await (root / relative).resolve() if relative else root
    if not target.is_relative_to(root):
        raise Forbidden()

    if await target.is_file():
        return await serve_file(target, chunk_size=chunk_size)

    index = target / INDEX_FILENAME
    if await index.is_file():
        return await serve_file(index, chunk_size=chunk_size)

    raise NotFound("The page was not found")
