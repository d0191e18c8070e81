"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from typing import Dict, List, Optional

from domain.enums import ReservationSource
from domain.value_objects import DurationSpec


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class BookingRequest(BaseModel):
    """Fields shared by quote, create and edit"""
    guest_name: str = Field(max_length=120)
    phone: Optional[str] = Field(None, max_length=30)
    room_id: str
    arrival: datetime
    duration: DurationSpec
    guest_count: int = Field(ge=1)
    notes: Optional[str] = Field(None, max_length=500)
    source: ReservationSource = ReservationSource.DIRECT


class CreateReservationRequest(BookingRequest):
    """Create reservation request DTO"""
    deposit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method_id: Optional[str] = None


class UpdateReservationRequest(BookingRequest):
    """Edit request DTO; unknown fields such as status or hotel_id are ignored"""
    pass


class QuoteResponse(BaseModel):
    room_id: str
    start: datetime
    end: datetime
    duration_kind: str
    duration_magnitude: int
    stay_duration_id: Optional[str] = None
    base_amount: Decimal
    extra_guest_amount: Decimal
    total_amount: Decimal
    currency: str


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    hotel_id: str
    created_by: UUID
    room_id: str
    guest_name: str
    phone: Optional[str] = None
    guest_count: int
    start: datetime
    end: datetime
    status: str
    duration_kind: str
    duration_magnitude: int
    stay_duration_id: Optional[str] = None
    base_amount: Decimal
    extra_guest_amount: Decimal
    total_amount: Decimal
    currency: str
    notes: Optional[str] = None
    source: str
    created_at: datetime
    modified_at: datetime
    version: int


class GroupedReservationsResponse(BaseModel):
    groups: Dict[str, List[ReservationResponse]]
    total: int


class CancellationResponse(BaseModel):
    reservation: ReservationResponse
    room_freed: bool
    message: str


class PaymentResponse(BaseModel):
    payment_id: UUID
    reservation_id: UUID
    amount: Decimal
    currency: str
    payment_method_id: str
    paid_at: datetime


# ============================================================================
# CATALOG SCHEMAS
# ============================================================================

class RoomResponse(BaseModel):
    room_id: str
    name: str
    room_type: Optional[str] = None
    state: str
    reservable: bool
    base_price: Decimal
    base_occupancy: int
    max_occupancy: int
    extra_guest_price: Decimal
    allows_hourly_booking: bool
    hourly_base_price: Decimal


class StayDurationResponse(BaseModel):
    stay_duration_id: str
    name: str
    minutes: int
    approx_hours: Decimal
    price: Optional[Decimal] = None
    night_equivalent: bool


class ReconcileResponse(BaseModel):
    rooms_reserved: List[str]


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str

class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None

class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    hotel_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool
