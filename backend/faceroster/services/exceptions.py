"""Service-layer exceptions for the identity engine.

These exceptions are used within services and DO NOT extend HTTPException.
Routes catch them and convert to structured HTTP responses.

Taxonomy:
- ValidationError: rejected before any write (self-merge, cross-owner merge,
  malformed candidate pair, invalid connection).
- AdvisoryFailure: merge-suggestion capability failed; swallowed by the
  suggester and degraded to an empty list.
- PersistenceFailure: a read or the batched write failed; propagated unchanged.
- GraphConsistencyError: a computed write still references a removed person.
"""

from typing import Any


class ServiceError(Exception):
    """Base class for all service-layer exceptions.

    Attributes:
        code: Machine-readable error code (e.g., "PERSON_NOT_FOUND").
        message: Human-readable error message.
        details: Optional additional context.
        status_code: Suggested HTTP status code for API responses.
        is_retryable: Whether the operation can be retried.
    """

    code: str = "SERVICE_ERROR"
    status_code: int = 500
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        *,
        code: str | None = None,
        is_retryable: bool | None = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        if code is not None:
            self.code = code
        if is_retryable is not None:
            self.is_retryable = is_retryable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "is_retryable": self.is_retryable,
        }


class NotFoundError(ServiceError):
    """Resource not found."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str,
        resource_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details)
        self.resource = resource
        self.resource_id = resource_id


class PersonNotFoundError(NotFoundError):
    """Person not found (or not owned by the requesting user)."""

    code = "PERSON_NOT_FOUND"

    def __init__(self, person_id: str) -> None:
        super().__init__("Person", person_id)


class ValidationError(ServiceError):
    """Validation failed; nothing was written."""

    code = "VALIDATION_ERROR"
    status_code = 400


class AdvisoryFailure(ServiceError):
    """The merge-suggestion capability was unreachable or returned unusable data."""

    code = "SUGGESTIONS_UNAVAILABLE"
    status_code = 502
    is_retryable = True


class PersistenceFailure(ServiceError):
    """A read or the atomic batch write failed."""

    code = "PERSISTENCE_FAILURE"
    status_code = 503
    is_retryable = True

    def __init__(
        self,
        message: str = "Persistence operation failed",
        details: dict[str, Any] | None = None,
        *,
        code: str | None = None,
    ) -> None:
        super().__init__(message, details, code=code)


class GraphConsistencyError(ServiceError):
    """A reconciled write set still references a removed person id."""

    code = "GRAPH_INCONSISTENT"
    status_code = 500
