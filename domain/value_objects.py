"""Domain Value Objects"""
from pydantic import BaseModel, Field, validator
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union
from uuid import UUID

from domain.enums import DurationKind, ReservationSource

NIGHT_EQUIVALENT_MIN_MINUTES = 22 * 60
NIGHT_EQUIVALENT_MAX_MINUTES = 26 * 60


def as_utc(value: datetime) -> datetime:
    """Stored instants are always UTC; naive values have no defined instant"""
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError('Datetime must include a timezone')
    return value.astimezone(timezone.utc)


class BookingContext(BaseModel):
    """Who is acting and on which hotel"""
    user_id: UUID
    hotel_id: str

    class Config:
        frozen = True


class Money(BaseModel):
    """Value Object for monetary amounts"""
    amount: Decimal = Field(gt=0)
    currency: str = "COP"

    class Config:
        frozen = True


class StayDuration(BaseModel):
    """Predefined stay-time catalog entry, e.g. "3 hours" or "Night package" """
    stay_duration_id: str
    hotel_id: str
    name: str
    minutes: int = Field(gt=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    active: bool = True

    def is_night_equivalent(self) -> bool:
        """Entries between 22 and 26 hours count as a night"""
        return NIGHT_EQUIVALENT_MIN_MINUTES <= self.minutes <= NIGHT_EQUIVALENT_MAX_MINUTES

    @property
    def approx_hours(self) -> Decimal:
        return (Decimal(self.minutes) / 60).quantize(Decimal("0.1"))

    class Config:
        frozen = True


class ManualNights(BaseModel):
    kind: Literal["manual_nights"] = "manual_nights"
    count: int = Field(ge=1)

    class Config:
        frozen = True


class PredefinedStay(BaseModel):
    kind: Literal["predefined_stay"] = "predefined_stay"
    stay_duration_id: str = Field(min_length=1)

    class Config:
        frozen = True


DurationSpec = Annotated[Union[ManualNights, PredefinedStay], Field(discriminator="kind")]


class RoomPricing(BaseModel):
    """Pricing snapshot of a room taken at booking time"""
    base_price: Decimal = Field(ge=0)
    base_occupancy: int = Field(ge=1)
    max_occupancy: int = Field(ge=1)
    extra_guest_price: Decimal = Field(ge=0, default=Decimal("0"))
    allows_hourly_booking: bool = False
    hourly_base_price: Decimal = Field(ge=0, default=Decimal("0"))

    @validator('max_occupancy')
    def max_not_below_base(cls, v, values):
        if 'base_occupancy' in values and v < values['base_occupancy']:
            raise ValueError('Max occupancy cannot be lower than base occupancy')
        return v

    class Config:
        frozen = True


class ResolvedStay(BaseModel):
    """Concrete [start, end) interval of a stay"""
    start: datetime
    end: datetime
    duration_kind: DurationKind
    duration_magnitude: int = Field(ge=1)  # nights or minutes

    @validator('start', 'end')
    def instant_in_utc(cls, v):
        return as_utc(v)

    @validator('end')
    def end_after_start(cls, v, values):
        if 'start' in values and v <= values['start']:
            raise ValueError('Departure must be after arrival')
        return v

    class Config:
        frozen = True


class BookingQuote(BaseModel):
    base_amount: Decimal = Field(ge=0)
    extra_guest_amount: Decimal = Field(ge=0)

    @property
    def total(self) -> Decimal:
        return self.base_amount + self.extra_guest_amount

    class Config:
        frozen = True


class ReservationDraft(BaseModel):
    """Computed booking payload, ready to be persisted or applied to an edit.

    Status, hotel and owner identifiers are not part of a draft; they are
    fixed at creation and never travel with an edit.
    """
    room_id: str
    guest_name: str
    phone: Optional[str] = None
    guest_count: int = Field(ge=1)
    stay: ResolvedStay
    stay_duration_id: Optional[str] = None
    quote: BookingQuote
    notes: Optional[str] = None
    source: ReservationSource = ReservationSource.DIRECT

    class Config:
        frozen = True
