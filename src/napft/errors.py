"""Marketplace error taxonomy.

Every error carries the HTTP status it maps to; the global handlers in
``napft.middleware.error_handler`` render them in the response envelope.
"""

from __future__ import annotations

from typing import Any


class MarketplaceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    error_code: str = "InternalError"

    def __init__(self, message: str, details: Any = None) -> None:  # noqa: ANN401
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(MarketplaceError):
    """Malformed or missing input. Raised before any mutation."""

    status_code = 400
    error_code = "ValidationError"


class NotFound(MarketplaceError):
    status_code = 404
    error_code = "NotFound"


class Unauthorized(MarketplaceError):
    """Caller is not the party the operation requires."""

    status_code = 403
    error_code = "Unauthorized"


class InvalidState(MarketplaceError):
    """A precondition on the current state is violated (e.g. buying an unlisted NFT)."""

    status_code = 400
    error_code = "InvalidState"


class InternalError(MarketplaceError):
    status_code = 500
    error_code = "InternalError"
