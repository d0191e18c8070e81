"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field, validator
from uuid import UUID, uuid4
from datetime import datetime
from typing import Optional
from decimal import Decimal

from domain.enums import ReservationStatus, RoomState, DurationKind, ReservationSource, ACTIVE_STATUSES
from domain.errors import InvalidStatusTransition
from domain.value_objects import ReservationDraft, RoomPricing, Money, BookingContext, as_utc


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)

    # Ownership, immutable after creation
    hotel_id: str
    created_by: UUID

    # References to other contexts
    room_id: str

    # Guest
    guest_name: str
    phone: Optional[str] = None
    guest_count: int = Field(ge=1)

    # Stay interval
    start: datetime
    end: datetime
    duration_kind: DurationKind
    duration_magnitude: int
    stay_duration_id: Optional[str] = None

    # Amounts
    base_amount: Decimal = Field(ge=0)
    extra_guest_amount: Decimal = Field(ge=0)
    total_amount: Decimal = Field(ge=0)

    # Enums/Status
    status: ReservationStatus = ReservationStatus.REQUESTED
    source: ReservationSource = ReservationSource.DIRECT

    notes: Optional[str] = None

    # Metadata
    created_at: datetime = Field(default_factory=datetime.utcnow)
    modified_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 1

    class Config:
        from_attributes = True

    @validator('start', 'end')
    def instant_in_utc(cls, v):
        return as_utc(v)

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(draft: ReservationDraft, context: BookingContext) -> "Reservation":
        """Create a new reservation in the requested state"""
        return Reservation(
            hotel_id=context.hotel_id,
            created_by=context.user_id,
            status=ReservationStatus.REQUESTED,
            **Reservation._fields_from_draft(draft)
        )

    # ==================== MODIFICATION METHODS ====================
    def apply_edit(self, draft: ReservationDraft) -> None:
        """Replace guest, stay and amounts; status and ownership stay as they are"""
        if not self.is_editable():
            raise InvalidStatusTransition(
                f"Cannot edit reservation with status {self.status.value}"
            )

        for name, value in Reservation._fields_from_draft(draft).items():
            setattr(self, name, value)

        self._touch()

    # ==================== STATE TRANSITION METHODS ====================
    def confirm(self) -> None:
        """Confirm a requested reservation"""
        if self.status != ReservationStatus.REQUESTED:
            raise InvalidStatusTransition(
                f"Cannot confirm reservation with status {self.status.value}"
            )

        self.status = ReservationStatus.CONFIRMED
        self._touch()

    def cancel(self) -> None:
        """Cancel reservation"""
        if not self.is_cancellable():
            raise InvalidStatusTransition(
                f"Cannot cancel reservation with status {self.status.value}"
            )

        self.status = ReservationStatus.CANCELLED
        self._touch()

    def mark_no_show(self) -> None:
        """Mark guest as no-show"""
        if self.status != ReservationStatus.CONFIRMED:
            raise InvalidStatusTransition(
                f"Cannot mark as no-show with status {self.status.value}"
            )

        self.status = ReservationStatus.NO_SHOW
        self._touch()

    # ==================== QUERY METHODS ====================
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def is_editable(self) -> bool:
        return self.status in [ReservationStatus.REQUESTED, ReservationStatus.CONFIRMED]

    def is_cancellable(self) -> bool:
        return self.status in [ReservationStatus.REQUESTED, ReservationStatus.CONFIRMED]

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open interval overlap"""
        return self.start < end and start < self.end

    # ==================== PRIVATE METHODS ====================
    @staticmethod
    def _fields_from_draft(draft: ReservationDraft) -> dict:
        return {
            "room_id": draft.room_id,
            "guest_name": draft.guest_name,
            "phone": draft.phone,
            "guest_count": draft.guest_count,
            "start": draft.stay.start,
            "end": draft.stay.end,
            "duration_kind": draft.stay.duration_kind,
            "duration_magnitude": draft.stay.duration_magnitude,
            "stay_duration_id": draft.stay_duration_id,
            "base_amount": draft.quote.base_amount,
            "extra_guest_amount": draft.quote.extra_guest_amount,
            "total_amount": draft.quote.total,
            "notes": draft.notes,
            "source": draft.source,
        }

    def _touch(self) -> None:
        self.modified_at = datetime.utcnow()
        self.version += 1


class Room(BaseModel):
    """Room as seen by the booking core; owned by the property context"""
    room_id: str
    hotel_id: str
    name: str
    room_type: Optional[str] = None
    state: RoomState = RoomState.FREE

    base_price: Decimal = Field(ge=0)
    base_occupancy: int = Field(ge=1)
    max_occupancy: int = Field(ge=1)
    extra_guest_price: Decimal = Field(ge=0, default=Decimal("0"))
    allows_hourly_booking: bool = False
    hourly_base_price: Decimal = Field(ge=0, default=Decimal("0"))

    class Config:
        from_attributes = True

    def pricing(self) -> RoomPricing:
        return RoomPricing(
            base_price=self.base_price,
            base_occupancy=self.base_occupancy,
            max_occupancy=self.max_occupancy,
            extra_guest_price=self.extra_guest_price,
            allows_hourly_booking=self.allows_hourly_booking,
            hourly_base_price=self.hourly_base_price
        )

    def is_reservable(self) -> bool:
        return self.state not in [RoomState.MAINTENANCE, RoomState.OUT_OF_SERVICE]


class Hotel(BaseModel):
    hotel_id: str
    name: str
    checkout_hour: Optional[str] = None

    @validator('checkout_hour')
    def checkout_hour_format(cls, v):
        if v is None:
            return v
        parts = v.split(':')
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError('Checkout hour must look like HH:MM')
        hours, minutes = int(parts[0]), int(parts[1])
        if not (0 <= hours <= 23 and 0 <= minutes <= 59):
            raise ValueError('Checkout hour out of range')
        return v

    class Config:
        from_attributes = True


class PaymentRecord(BaseModel):
    """Deposit registered together with a new reservation"""
    payment_id: UUID = Field(default_factory=uuid4)
    reservation_id: UUID
    hotel_id: str
    user_id: UUID
    amount: Money
    payment_method_id: str
    paid_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True
