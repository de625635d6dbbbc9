# doughmain/core/errors.py
"""
Error taxonomy shared by the HTTP-style and callable-style endpoints.

HTTP-style endpoints turn anything into `{"error": message}` with a status
code. Callable endpoints only ever surface CallableError, whose reason code
decides the status and the `error.status` field of the response body.
"""

from typing import Any, Dict


class DoughMainError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(DoughMainError):
    """A required setting (credentials, secrets) is missing or invalid."""


class NotFoundError(DoughMainError):
    """A document or user record does not exist."""


# Reason code -> HTTP status, following the callable protocol
CALLABLE_STATUS_CODES: Dict[str, int] = {
    "invalid-argument": 400,
    "unauthenticated": 401,
    "permission-denied": 403,
    "not-found": 404,
    "internal": 500,
}


class CallableError(DoughMainError):
    def __init__(self, code: str, message: str):
        if code not in CALLABLE_STATUS_CODES:
            raise ValueError(f"Unknown callable error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def http_status(self) -> int:
        return CALLABLE_STATUS_CODES[self.code]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "status": self.code.replace("-", "_").upper(),
                "message": self.message,
            }
        }


class AlreadyExistsError(DoughMainError):
    """A user with the same unique field already exists."""


class AuthenticationError(DoughMainError):
    """Credentials or an id token could not be verified."""


class UserDisabledError(AuthenticationError):
    """The user record exists but has been disabled by an admin."""
