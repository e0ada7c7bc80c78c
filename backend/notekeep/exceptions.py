"""
Notekeep Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions, each tagged with an `ErrorKind`.
Why:   The HTTP status of a failure is decided by its kind, checked
       structurally by the global handler in main.py. Message text is for
       humans only and is never compared.
How:   Every exception carries a user-safe message and an optional context
       dict. Context is logged server-side but only returned to the client
       for validation errors.
Who:   Raised by services and dependencies; caught by the global handler.

Exception Hierarchy:
    NotekeepError (base)
    ├── ValidationError              VALIDATION      → 400
    ├── AuthenticationError          AUTHENTICATION  → 401
    │   ├── InvalidCredentialsError
    │   ├── UnauthorizedError
    │   └── InvalidTokenError
    ├── NotFoundError                NOT_FOUND       → 404
    ├── ConflictError                CONFLICT        → 409
    │   └── DuplicateEmailError
    └── InternalError                INTERNAL        → 500
        ├── HashingError
        ├── SigningError
        ├── TokenIssuanceError
        ├── PersistenceError
        └── FileStorageError
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Error categories. The value doubles as the generic error code."""

    VALIDATION = "validation_error"
    AUTHENTICATION = "authentication_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal_error"


# What: Kind → HTTP status, consulted by the global exception handler
STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


class NotekeepError(Exception):
    """
    Base exception for all Notekeep application errors.

    Attributes:
        kind:     Error category (decides the HTTP status)
        code:     Machine-readable code returned as `error` in the response body
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, NOT returned for non-validation errors)
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    code: str = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


# ── 400 ───────────────────────────────────────────────────────────────────


class ValidationError(NotekeepError):
    """
    Raised when client input fails a business rule.

    When:  Unsupported attachment type, empty or oversized file, blank title.
    FastAPI's own request validation failures are mapped to the same 400
    response shape by main.py.
    """

    kind = ErrorKind.VALIDATION
    code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


# ── 401 ───────────────────────────────────────────────────────────────────


class AuthenticationError(NotekeepError):
    """Caller identity could not be established."""

    kind = ErrorKind.AUTHENTICATION
    code = "authentication_error"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidCredentialsError(AuthenticationError):
    """
    Login failed.

    Raised identically for an unknown email and for a wrong password so the
    response never reveals whether an account exists.
    """

    code = "invalid_credentials"

    def __init__(self):
        super().__init__(message="Invalid credentials")


class UnauthorizedError(AuthenticationError):
    """Missing, malformed or invalid Authorization header on a protected route."""

    code = "unauthorized"

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidTokenError(AuthenticationError):
    """Token signature, structure or expiry check failed."""

    code = "invalid_token"

    def __init__(
        self,
        message: str = "Invalid or expired token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


# ── 404 ───────────────────────────────────────────────────────────────────


class NotFoundError(NotekeepError):
    """
    Raised when a requested resource does not exist.

    Notes owned by another user raise this too, with the same message, so a
    caller cannot probe for other users' note ids.
    """

    kind = ErrorKind.NOT_FOUND
    code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


# ── 409 ───────────────────────────────────────────────────────────────────


class ConflictError(NotekeepError):
    kind = ErrorKind.CONFLICT
    code = "conflict"

    def __init__(
        self,
        message: str = "The request conflicts with existing data",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DuplicateEmailError(ConflictError):
    """Registration hit the unique constraint on users.email."""

    code = "email_exists"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Email already exists", context=context)


# ── 500 ───────────────────────────────────────────────────────────────────


class InternalError(NotekeepError):
    """
    Server-side fault.

    Security Note:
        The message returned to the client is always generic. Detailed error
        info (SQL, constraint names, library errors) goes into `context`,
        which is logged server-side only.
    """

    kind = ErrorKind.INTERNAL
    code = "internal_error"

    def __init__(
        self,
        message: str = "An internal error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class HashingError(InternalError):
    code = "hashing_error"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Error hashing password", context=context)


class SigningError(InternalError):
    """The token signing primitive failed (should not occur in normal operation)."""

    code = "signing_error"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Error signing token", context=context)


class TokenIssuanceError(InternalError):
    """Auth flow could not issue a token for an otherwise valid login/registration."""

    code = "token_error"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Error generating token", context=context)


class PersistenceError(InternalError):
    code = "persistence_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(InternalError):
    """
    Raised when file system operations fail.

    When:  Disk full, permission denied, directory not writable, I/O error.
    """

    code = "file_storage_error"

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
