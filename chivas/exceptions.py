from fastapi import status


class ChivasError(Exception):
    """Base error for the booking core. Carries the HTTP status it maps to."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(ChivasError):
    """Referenced trip, reservation, user or destination is absent."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class DuplicateReservation(ChivasError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "User already has a reservation for this trip"


class CapacityExceeded(ChivasError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Not enough seats available on this trip"


class AlreadyCancelled(ChivasError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Already cancelled"


class AlreadyPaid(ChivasError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Reservation is already paid"


class NotActive(ChivasError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Reservation or trip is not active"


class NotPaid(ChivasError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Reservation has not been paid"


class AlreadyRefunded(ChivasError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Reservation has already been refunded"


class ValidationFailed(ChivasError):
    """A field failed shape validation (guest data, registration data)."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Validation failed"


class ConstraintViolation(ChivasError):
    """A unique key already exists."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Record already exists"


class AuthenticationFailed(ChivasError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Incorrect email or password"


class Forbidden(ChivasError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not enough permissions"


class ConcurrentModification(ChivasError):
    """Another transaction changed the row between read and write."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Reservation was modified concurrently, retry"
