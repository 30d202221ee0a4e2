"""
Error taxonomy shared by the ledger, the gateway bridge and the API layer.

Every error carries the HTTP status it maps to; the handlers registered in
``charity.main`` render them as ``{"error": code, "detail": message}``.
"""


class CharityError(Exception):
    """Base class for errors reported back to the caller"""

    status_code = 500
    code = "error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__


class ValidationError(CharityError):
    """Malformed or missing input"""

    status_code = 400
    code = "validation_error"


class AuthError(CharityError):
    """Missing or invalid credential"""

    status_code = 401
    code = "auth_error"


class AuthorizationError(CharityError):
    """Authenticated but not allowed"""

    status_code = 403
    code = "forbidden"


class NotFoundError(CharityError):
    """Resource not found"""

    status_code = 404
    code = "not_found"


class StorageError(CharityError):
    """Backing store unavailable or write failed"""

    status_code = 500
    code = "storage_error"
