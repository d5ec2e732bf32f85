"""
SimpleQL Exceptions

Standardized exception hierarchy for the authentication core:
- Boot-time configuration failures
- Rejected credentials and malformed registration payloads
- Bearer token verification errors
- Internal invariant violations

Each error carries the HTTP status it maps to when it terminates a request.
"""

from typing import Any, Dict, Optional


class SimpleQLError(Exception):
    """Base exception for all SimpleQL errors"""

    status = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


class ConfigValidationError(SimpleQLError):
    """Configuration rejected at boot. The server must not start."""

    def __init__(self, message: str, error: Optional[Any] = None):
        super().__init__(message, "configInvalid")
        # Structured ValidationError when the failure comes from the validator
        self.error = error


class PrerequisiteError(ConfigValidationError):
    """A plugin refused to activate against the declared tables."""


class BadRequest(SimpleQLError):
    """Missing or mistyped login or password"""

    status = 400

    def __init__(self, message: str):
        super().__init__(message, "badRequest")


class NotFound(SimpleQLError):
    """No record matches the provided login"""

    status = 404

    def __init__(self, message: str):
        super().__init__(message, "notFound")


class WrongPassword(SimpleQLError):
    """Credential mismatch"""

    status = 401

    def __init__(self, message: str):
        super().__init__(message, "wrongPassword")


class TokenError(SimpleQLError):
    """Bearer token verification failed"""

    status = 401

    def __init__(self, message: str):
        super().__init__(message, "unauthorized")


class TokenExpired(TokenError):
    """The token expiry date is in the past"""


class TokenInvalid(TokenError):
    """Bad signature, wrong key or malformed token"""


class TokenNotYetValid(TokenError):
    """The token is not active yet"""


class InternalError(SimpleQLError):
    """Invariant violation or unexpected failure"""

    def __init__(self, message: str):
        super().__init__(message, "internalError")
