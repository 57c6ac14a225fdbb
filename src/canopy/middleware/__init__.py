"""Middleware: Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(context: Context, next: Next) -> Any

Route handlers share the same shape; the chain does not distinguish them.

Built-in middleware:
    CORSMiddleware -- Cross-Origin Resource Sharing
    serve_static / serve_file -- Stream files from a directory
"""

from canopy.middleware.builtin import CORSConfig, CORSMiddleware
from canopy.middleware.chain import Next, combine
from canopy.middleware.protocol import Middleware
from canopy.middleware.static import serve_file, serve_static

__all__ = [
    "CORSConfig",
    "CORSMiddleware",
    "Middleware",
    "Next",
    "combine",
    "serve_file",
    "serve_static",
]
