"""
Exception hierarchy for GrantBridge.

Every error carries the HTTP status and the short message the API returns
as ``{"error": message}``.
"""

from typing import Optional


class GrantBridgeError(Exception):
    """Base class for all GrantBridge errors."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(GrantBridgeError):
    """Required configuration (API key, DSN) is missing or invalid."""


class UpstreamError(GrantBridgeError):
    """The completions API returned a non-OK status or could not be reached."""


class ResponseParseError(GrantBridgeError):
    """The completions API reply was empty, not JSON or not the expected shape."""


class InvalidRequestError(GrantBridgeError):
    """A client payload failed validation."""

    status_code = 400


class ProfileValidationError(InvalidRequestError):
    """The live search profile failed its type checks."""

    def __init__(self, message: str = "Invalid user profile data received."):
        super().__init__(message)


class CacheReadError(GrantBridgeError):
    """Reading the grants cache failed."""


class CacheWriteError(GrantBridgeError):
    """Deleting from or inserting into the grants cache failed."""


class UnauthorizedError(GrantBridgeError):
    """Admin credentials missing or wrong."""

    status_code = 401


class RateLimitedError(GrantBridgeError):
    """Operation triggered again inside its cooldown window."""

    status_code = 429


class DeliveryError(GrantBridgeError):
    """An outgoing email could not be sent."""
