"""
Domain error taxonomy.

Services raise these locally; the API layer translates them into the
``{"success": false, "error": ...}`` envelope with the carried status code.
"""


class BookNookError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(BookNookError):
    """Malformed, missing or duplicate input."""

    status_code = 400


class AuthError(BookNookError):
    """Missing or invalid credentials or token."""

    status_code = 401


class AuthorizationError(BookNookError):
    """Authenticated, but not allowed to act on the resource."""

    status_code = 403


class NotFoundError(BookNookError):
    """Referenced entity does not exist."""

    status_code = 404


class InternalError(BookNookError):
    """Unexpected persistence or runtime fault."""

    status_code = 500
