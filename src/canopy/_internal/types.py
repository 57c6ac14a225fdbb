"""Shared type aliases used across canopy modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: ``(context, next)`` returning a response value or None
Handler: TypeAlias = Callable[..., Any]

# Error handler: ``(context, error)`` returning a response value
ErrorHandler: TypeAlias = Callable[..., Any]

# Path parameters; repeated segments (``:part+``) capture a list
Params: TypeAlias = dict[str, str | list[str]]
