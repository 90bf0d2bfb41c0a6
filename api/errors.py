"""
Error types for the Bookshelf API.

Every error a route can report derives from APIError and carries its HTTP
status; the application maps them to ``{"message": ...}`` responses.
"""

from fastapi import status


NOT_AUTHORIZED_MESSAGE = "You are not authorized"


class APIError(Exception):
    """Base exception for errors reported to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class NotAuthorized(APIError):
    """Missing, invalid or expired bearer token on a gated route."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self):
        super().__init__(NOT_AUTHORIZED_MESSAGE)


class NotFound(APIError):
    """Lookup, update or delete target does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class InvalidInput(APIError):
    """Request data failed an existence or identifier-format check."""

    status_code = status.HTTP_400_BAD_REQUEST


class StoreFailure(APIError):
    """Unexpected error raised by the document store."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class TokenError(Exception):
    """Base class for token verification failures."""

    reason = "invalid"


class InvalidToken(TokenError):
    """Signature mismatch, malformed token or expired token."""

    def __init__(self, message: str = "Invalid token", expired: bool = False):
        self.expired = expired
        self.reason = "expired" if expired else "invalid"
        super().__init__(message)


class MissingClaim(TokenError):
    """Token verified but does not carry the expected claim."""

    reason = "missing_claim"

    def __init__(self, claim: str):
        self.claim = claim
        super().__init__(f"Token is missing the '{claim}' claim")


class ConfigurationError(Exception):
    """Required configuration is absent."""
