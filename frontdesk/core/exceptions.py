"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InvalidBookingTransition(AppException):
    """Booking status change not allowed by the booking state machine."""

    def __init__(self, detail: str = "This operation is not allowed for the current booking status") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class MalformedRecord(ValidationError):
    """A room or booking record that cannot take part in status computation."""

    def __init__(
        self,
        collection: str,
        record_id: str | None,
        errors: list[dict[str, Any]] | None = None,
        reason: str | None = None,
    ) -> None:
        self.collection = collection
        self.record_id = record_id
        detail = f"Malformed {collection} record '{record_id or '?'}'"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail=detail, errors=errors)


class SnapshotUnavailable(AppException):
    """Rooms or bookings have not been delivered by their repository yet."""

    def __init__(self, missing: list[str] | None = None) -> None:
        self.missing = missing or []
        detail = "Room availability snapshot not loaded yet"
        if self.missing:
            detail = f"{detail} (waiting for {', '.join(self.missing)})"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class WriteFailure(AppException):
    """A repository write was rejected by the store."""

    def __init__(self, collection: str, record_id: str, detail: str | None = None) -> None:
        self.collection = collection
        self.record_id = record_id
        message = f"Failed to write {collection} '{record_id}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)
