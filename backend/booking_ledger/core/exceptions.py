"""
Domain-specific exceptions for the booking ledger.

Services raise these; the API layer turns them into structured JSON
responses via the handler registered in main.py.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_response_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationException(DomainException):
    """Raised when input is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedException(DomainException):
    """Raised when no valid session is attached to the request."""

    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredentialsException(UnauthorizedException):
    """Raised when a username/password pair does not match any user."""


class ForbiddenException(DomainException):
    """Raised when the caller is authenticated but does not own the resource."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundException(DomainException):
    """Raised when a requested resource does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when a write would violate a uniqueness constraint."""

    status_code = status.HTTP_409_CONFLICT


class BookingConflictException(ConflictException):
    """Raised when a booking collides with an existing one."""

    def __init__(
        self,
        message: str,
        existing_booking_id: Optional[UUID],
        rule: Optional[str] = None,
    ) -> None:
        super().__init__(message, details={"rule": rule} if rule else None)
        self.existing_booking_id = existing_booking_id
        self.rule = rule

    def to_response_body(self) -> Dict[str, Any]:
        body = super().to_response_body()
        body["existingBookingId"] = (
            str(self.existing_booking_id) if self.existing_booking_id else None
        )
        return body


class ServiceException(DomainException):
    """Raised when an operation fails for reasons the caller cannot fix."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
