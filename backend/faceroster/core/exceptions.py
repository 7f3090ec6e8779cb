"""HTTP-layer exception classes for the application."""

from typing import Any

from fastapi import HTTPException

from faceroster.services.exceptions import ServiceError


class AppException(HTTPException):
    """Base application exception with structured error response."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.error_details = details or {}
        super().__init__(
            status_code=status_code,
            detail={
                "error": {
                    "code": code,
                    "message": message,
                    "details": self.error_details,
                }
            },
        )

    @classmethod
    def from_service_error(cls, error: ServiceError) -> "AppException":
        """Convert a service-layer exception into an HTTP error response."""
        return cls(
            code=error.code,
            message=error.message,
            status_code=error.status_code,
            details=error.details,
        )
