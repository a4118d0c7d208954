from fastapi import HTTPException


class BookingError(HTTPException):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)

    @property
    def message(self) -> str:
        return self.detail


class NotFoundError(BookingError):
    """No token table, token, booking or OTP for the given keys."""
    status_code = 404


class ConflictError(BookingError):
    """Token already blocked or booked; re-fetch state before retrying."""
    status_code = 409


class BookingValidationError(BookingError):
    status_code = 422


class PersistenceError(BookingError):
    """The store or lock service was unavailable. Only reads are safe to retry."""
    status_code = 503
