"""Domain Errors"""
from typing import List, Optional
from uuid import UUID


class BookingError(Exception):
    """Base class for booking failures surfaced to the caller"""


class ValidationError(BookingError, ValueError):
    """User input malformed or out of range"""


class InvalidArrival(ValidationError):
    pass


class InvalidDuration(ValidationError):
    pass


class NonPositiveInterval(ValidationError):
    pass


class OccupancyExceeded(ValidationError):
    pass


class HourlyBookingNotAllowed(ValidationError):
    pass


class RoomNotReservable(ValidationError):
    pass


class InvalidStatusTransition(ValidationError):
    pass


class UnresolvablePrice(BookingError):
    """No pricing rule applies to the requested stay"""


class ConflictError(BookingError):
    """Requested interval overlaps an active reservation of the room"""


class StoreError(BookingError):
    """External store or authority failure"""


class AvailabilityCheckFailed(StoreError):
    pass


class PartialCommitError(StoreError):
    """Reservation row committed but one or more side effects failed"""

    def __init__(self, message: str, reservation_id: UUID, failed_steps: Optional[List[str]] = None):
        super().__init__(message)
        self.reservation_id = reservation_id
        self.failed_steps = failed_steps or []
