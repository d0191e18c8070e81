import logging
from contextlib import asynccontextmanager
from uuid import UUID
from datetime import timedelta
from typing import List
from fastapi import FastAPI, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Reservation
    CreateReservationRequest, UpdateReservationRequest, QuoteResponse,
    ReservationResponse, GroupedReservationsResponse, CancellationResponse, PaymentResponse,
    # Catalog
    RoomResponse, StayDurationResponse, ReconcileResponse,
    # Auth
    Token, UserResponse
)

from api.dependencies import get_current_active_user, get_booking_context, fake_users_db, get_user
from infrastructure.config import get_settings
from infrastructure.logging_config import configure_logging
from infrastructure.security import verify_password, create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES
from infrastructure.seed import seed_demo_data
from domain.auth import User

from application.availability import AvailabilityGate
from application.events import EventPublisher, ReservationsChanged
from application.services import BookingService
from infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryRoomRepository, InMemoryHotelRepository,
    InMemoryStayDurationRepository, InMemoryPaymentRecordRepository, InMemoryAvailabilityAuthority
)
from domain.enums import ReservationStatus, RoomState, DurationKind
from domain.errors import BookingError, ConflictError, StoreError, UnresolvablePrice, PartialCommitError
from domain.value_objects import BookingContext

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Initialize repositories
reservation_repo = InMemoryReservationRepository()
room_repo = InMemoryRoomRepository()
hotel_repo = InMemoryHotelRepository()
stay_duration_repo = InMemoryStayDurationRepository()
payment_repo = InMemoryPaymentRecordRepository()
availability_authority = InMemoryAvailabilityAuthority(reservation_repo)

publisher = EventPublisher()


def _log_change(event: ReservationsChanged) -> None:
    logger.debug("Reservations changed in %s: %s %s", event.hotel_id, event.action, event.reservation_id)


publisher.subscribe(_log_change)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.seed_demo_data:
        await seed_demo_data(hotel_repo, room_repo, stay_duration_repo)
    yield


app = FastAPI(
    title="Hotel Booking API",
    description="Booking computation core: stay duration, pricing, availability and reservation lifecycle",
    version="1.0.0",
    lifespan=lifespan
)

# Dependency injection
def get_booking_service() -> BookingService:
    return BookingService(
        reservation_repo, room_repo, hotel_repo, stay_duration_repo, payment_repo,
        AvailabilityGate(availability_authority),
        publisher=publisher,
        settings=settings
    )

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {"values": [item.value for item in ReservationStatus]}

@app.get("/api/enums/room-state", tags=["Enum Reference"])
async def get_room_states():
    """Get all RoomState enum values"""
    return {"values": [item.value for item in RoomState]}

@app.get("/api/enums/duration-kind", tags=["Enum Reference"])
async def get_duration_kinds():
    """Get all DurationKind enum values"""
    return {"values": [item.value for item in DurationKind]}

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.username}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# CATALOG ENDPOINTS
# ============================================================================

@app.get("/api/rooms", response_model=List[RoomResponse], tags=["Catalog"])
async def list_rooms(
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Rooms of the user's hotel; maintenance and out-of-service rooms are not reservable"""
    try:
        rooms = await service.list_rooms(context)
    except BookingError as e:
        raise _http_error(e)
    return [_room_to_response(r) for r in rooms]

@app.get("/api/stay-durations", response_model=List[StayDurationResponse], tags=["Catalog"])
async def list_stay_durations(
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Active predefined stay times, shortest first"""
    try:
        entries = await service.list_stay_durations(context)
    except BookingError as e:
        raise _http_error(e)
    return [
        StayDurationResponse(
            stay_duration_id=s.stay_duration_id,
            name=s.name,
            minutes=s.minutes,
            approx_hours=s.approx_hours,
            price=s.price,
            night_equivalent=s.is_night_equivalent()
        )
        for s in entries
    ]

@app.post("/api/rooms/reconcile", response_model=ReconcileResponse, tags=["Catalog"])
async def reconcile_rooms(
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Re-claim free rooms that still have pending reservations"""
    try:
        fixed = await service.reconcile_room_states(context)
    except BookingError as e:
        raise _http_error(e)
    return ReconcileResponse(rooms_reserved=fixed)

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations/quote", response_model=QuoteResponse, tags=["Reservations"])
async def quote_reservation(
    request: CreateReservationRequest,
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Compute stay interval and price for a new booking without saving it"""
    try:
        draft = await service.prepare_booking(
            context,
            room_id=request.room_id,
            guest_name=request.guest_name,
            arrival=request.arrival,
            duration=request.duration,
            guest_count=request.guest_count,
            phone=request.phone,
            notes=request.notes,
            source=request.source
        )
    except (BookingError, ValueError) as e:
        raise _http_error(e)
    return QuoteResponse(
        room_id=draft.room_id,
        start=draft.stay.start,
        end=draft.stay.end,
        duration_kind=draft.stay.duration_kind.value,
        duration_magnitude=draft.stay.duration_magnitude,
        stay_duration_id=draft.stay_duration_id,
        base_amount=draft.quote.base_amount,
        extra_guest_amount=draft.quote.extra_guest_amount,
        total_amount=draft.quote.total,
        currency=settings.currency
    )

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Create new reservation"""
    try:
        reservation = await service.create_reservation(
            context,
            room_id=request.room_id,
            guest_name=request.guest_name,
            arrival=request.arrival,
            duration=request.duration,
            guest_count=request.guest_count,
            phone=request.phone,
            notes=request.notes,
            deposit_amount=request.deposit_amount,
            payment_method_id=request.payment_method_id,
            source=request.source
        )
    except (BookingError, ValueError) as e:
        raise _http_error(e)
    return _reservation_to_response(reservation)

@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def list_active_reservations(
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Active reservations, earliest arrival first"""
    try:
        reservations = await service.list_active_reservations(context)
    except BookingError as e:
        raise _http_error(e)
    return [_reservation_to_response(r) for r in reservations]

@app.get("/api/reservations/grouped", response_model=GroupedReservationsResponse, tags=["Reservations"])
async def list_grouped_reservations(
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Active reservations grouped by status"""
    try:
        reservations = await service.list_active_reservations(context)
    except BookingError as e:
        raise _http_error(e)
    groups = service.group_by_status(reservations)
    return GroupedReservationsResponse(
        groups={status.value: [_reservation_to_response(r) for r in members] for status, members in groups.items()},
        total=len(reservations)
    )

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Get reservation by ID"""
    try:
        reservation = await service.get_reservation(context, reservation_id)
    except BookingError as e:
        raise _http_error(e)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return _reservation_to_response(reservation)

@app.get("/api/reservations/{reservation_id}/payments", response_model=List[PaymentResponse], tags=["Reservations"])
async def get_reservation_payments(
    reservation_id: UUID,
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Deposits registered for a reservation"""
    try:
        payments = await service.get_payments(context, reservation_id)
    except BookingError as e:
        raise _http_error(e)
    return [
        PaymentResponse(
            payment_id=p.payment_id,
            reservation_id=p.reservation_id,
            amount=p.amount.amount,
            currency=p.amount.currency,
            payment_method_id=p.payment_method_id,
            paid_at=p.paid_at
        )
        for p in payments
    ]

@app.put("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def update_reservation(
    reservation_id: UUID,
    request: UpdateReservationRequest,
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Edit reservation details; status changes go through the action endpoints"""
    try:
        reservation = await service.update_reservation(
            context,
            reservation_id,
            room_id=request.room_id,
            guest_name=request.guest_name,
            arrival=request.arrival,
            duration=request.duration,
            guest_count=request.guest_count,
            phone=request.phone,
            notes=request.notes,
            source=request.source
        )
    except (BookingError, ValueError) as e:
        raise _http_error(e)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return _reservation_to_response(reservation)

@app.post("/api/reservations/{reservation_id}/confirm", response_model=ReservationResponse, tags=["Reservations"])
async def confirm_reservation(
    reservation_id: UUID,
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Confirm a requested reservation"""
    try:
        reservation = await service.confirm_reservation(context, reservation_id)
    except (BookingError, ValueError) as e:
        raise _http_error(e)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return _reservation_to_response(reservation)

@app.post("/api/reservations/{reservation_id}/cancel", response_model=CancellationResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: UUID,
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Cancel reservation and free the room when nothing else claims it"""
    try:
        result = await service.cancel_reservation(context, reservation_id)
    except (BookingError, ValueError) as e:
        raise _http_error(e)
    if not result:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return CancellationResponse(
        reservation=_reservation_to_response(result.reservation),
        room_freed=result.room_freed,
        message=result.message
    )

@app.post("/api/reservations/{reservation_id}/no-show", response_model=ReservationResponse, tags=["Reservations"])
async def mark_no_show(
    reservation_id: UUID,
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Mark guest as no-show"""
    try:
        reservation = await service.mark_no_show(context, reservation_id)
    except (BookingError, ValueError) as e:
        raise _http_error(e)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return _reservation_to_response(reservation)

@app.delete("/api/reservations/{reservation_id}", tags=["Reservations"])
async def delete_reservation(
    reservation_id: UUID,
    service: BookingService = Depends(get_booking_service),
    context: BookingContext = Depends(get_booking_context)
):
    """Permanently delete a reservation"""
    try:
        deleted = await service.delete_reservation(context, reservation_id)
    except BookingError as e:
        raise _http_error(e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return {"deleted": True, "reservation_id": str(reservation_id)}

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _http_error(e: Exception) -> HTTPException:
    """Map booking failures to HTTP status codes"""
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, PartialCommitError):
        return HTTPException(
            status_code=503,
            detail={"message": str(e), "reservation_id": str(e.reservation_id), "failed_steps": e.failed_steps}
        )
    if isinstance(e, StoreError):
        return HTTPException(status_code=503, detail=str(e))
    if isinstance(e, UnresolvablePrice):
        return HTTPException(status_code=422, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))

def _reservation_to_response(reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        hotel_id=reservation.hotel_id,
        created_by=reservation.created_by,
        room_id=reservation.room_id,
        guest_name=reservation.guest_name,
        phone=reservation.phone,
        guest_count=reservation.guest_count,
        start=reservation.start,
        end=reservation.end,
        status=reservation.status.value,
        duration_kind=reservation.duration_kind.value,
        duration_magnitude=reservation.duration_magnitude,
        stay_duration_id=reservation.stay_duration_id,
        base_amount=reservation.base_amount,
        extra_guest_amount=reservation.extra_guest_amount,
        total_amount=reservation.total_amount,
        currency=settings.currency,
        notes=reservation.notes,
        source=reservation.source.value,
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        version=reservation.version
    )

def _room_to_response(room) -> RoomResponse:
    """Convert Room entity to RoomResponse"""
    return RoomResponse(
        room_id=room.room_id,
        name=room.name,
        room_type=room.room_type,
        state=room.state.value,
        reservable=room.is_reservable(),
        base_price=room.base_price,
        base_occupancy=room.base_occupancy,
        max_occupancy=room.max_occupancy,
        extra_guest_price=room.extra_guest_price,
        allows_hourly_booking=room.allows_hourly_booking,
        hourly_base_price=room.hourly_base_price
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
