"""Domain error taxonomy.

Every failure the services report to callers is a DomainError carrying an
ErrorKind and a human-readable message. Callers branch on ``kind`` (or the
subclass), never on message text. Storage errors that cannot be classified
are not wrapped and propagate as-is.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """High-level error categories for routing and handling."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"


class DomainError(Exception):
    """Base exception for all Clinic Registry domain errors."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class ValidationError(DomainError):
    """Malformed or missing input, or a business rule violated by the request."""

    kind = ErrorKind.VALIDATION


class NotFoundError(DomainError):
    """Referenced entity is absent or already removed."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(DomainError):
    """The request would violate a uniqueness or liveness invariant."""

    kind = ErrorKind.CONFLICT


class UnauthorizedError(DomainError):
    """Credentials or token were rejected."""

    kind = ErrorKind.UNAUTHORIZED
