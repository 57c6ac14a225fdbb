"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, log_requests=True)
    """

    # Include the exception type and message on 500 pages
    debug: bool = False

    # Log each request at INFO instead of DEBUG
    log_requests: bool = False

    # Error page text
    not_found_detail: str = "The page was not found"
    internal_error_detail: str = "Internal server error"

    # Static files
    static_chunk_size: int = 64 * 1024
