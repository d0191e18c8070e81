"""Application Services - Booking use cases"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone, tzinfo
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union
from uuid import UUID
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from application.availability import AvailabilityGate
from application.events import EventPublisher, ReservationsChanged
from domain.duration import DurationResolver, parse_arrival
from domain.entities import Reservation, Room, PaymentRecord
from domain.enums import ReservationStatus, RoomState, ReservationSource, ACTIVE_STATUSES
from domain.errors import (
    BookingError, ValidationError, InvalidArrival, InvalidDuration, HourlyBookingNotAllowed,
    RoomNotReservable, InvalidStatusTransition, StoreError, PartialCommitError
)
from domain.pricing import PricingEngine
from domain.repositories import (
    ReservationRepository, RoomRepository, HotelRepository,
    StayDurationRepository, PaymentRecordRepository
)
from domain.value_objects import (
    BookingContext, ManualNights, PredefinedStay, ReservationDraft, StayDuration, Money
)
from infrastructure.config import Settings, get_settings

logger = logging.getLogger(__name__)

Clock = Callable[[Optional[tzinfo]], datetime]
Duration = Union[ManualNights, PredefinedStay]


class CancellationResult(BaseModel):
    reservation: Reservation
    room_freed: bool
    message: str


class BookingService:
    """Reservation lifecycle: create, edit, confirm, cancel, no-show, delete.

    Every operation receives the acting BookingContext explicitly. Input
    validation runs before the first store call; store and authority
    failures abort the operation without retries.
    """

    def __init__(self,
                 reservation_repo: ReservationRepository,
                 room_repo: RoomRepository,
                 hotel_repo: HotelRepository,
                 stay_duration_repo: StayDurationRepository,
                 payment_repo: PaymentRecordRepository,
                 availability_gate: AvailabilityGate,
                 publisher: Optional[EventPublisher] = None,
                 settings: Optional[Settings] = None,
                 clock: Optional[Clock] = None,
                 resolver: Optional[DurationResolver] = None,
                 pricing: Optional[PricingEngine] = None):
        self.reservation_repo = reservation_repo
        self.room_repo = room_repo
        self.hotel_repo = hotel_repo
        self.stay_duration_repo = stay_duration_repo
        self.payment_repo = payment_repo
        self.availability_gate = availability_gate
        self.publisher = publisher or EventPublisher()
        self.settings = settings or get_settings()
        self.clock = clock or datetime.now
        self.resolver = resolver or DurationResolver()
        self.pricing = pricing or PricingEngine()
        self.local_tz = ZoneInfo(self.settings.hotel_timezone)

    # ==================== BOOKING COMPUTATION ====================
    async def prepare_booking(
        self,
        context: BookingContext,
        room_id: str,
        guest_name: str,
        arrival: Union[datetime, str],
        duration: Duration,
        guest_count: int,
        phone: Optional[str] = None,
        notes: Optional[str] = None,
        source: ReservationSource = ReservationSource.DIRECT,
        editing: Optional[Reservation] = None
    ) -> ReservationDraft:
        """Validate, resolve, price and availability-check a booking without persisting it"""
        start = self._validate_initial_inputs(
            room_id, guest_name, arrival, duration, guest_count, is_edit=editing is not None
        )
        return await self._compute_draft(
            context, room_id, guest_name, start, duration, guest_count, phone, notes, source, editing
        )

    async def _compute_draft(
        self,
        context: BookingContext,
        room_id: str,
        guest_name: str,
        start: datetime,
        duration: Duration,
        guest_count: int,
        phone: Optional[str],
        notes: Optional[str],
        source: ReservationSource,
        editing: Optional[Reservation]
    ) -> ReservationDraft:
        room, hotel, entries = await asyncio.gather(
            self._store_call("Loading room details", self.room_repo.find_by_id(room_id)),
            self._store_call("Loading hotel configuration", self.hotel_repo.find_by_id(context.hotel_id)),
            self._store_call("Loading stay durations", self.stay_duration_repo.find_by_hotel(context.hotel_id))
        )
        if room is None or room.hotel_id != context.hotel_id:
            raise ValidationError(f"Room {room_id} does not exist")
        if hotel is None:
            raise StoreError("Could not load the hotel configuration")

        room_changed = editing is None or editing.room_id != room.room_id
        if room_changed and not room.is_reservable():
            raise RoomNotReservable(f"Room {room.name} is {room.state.value} and cannot be booked")

        catalog: Dict[str, StayDuration] = {e.stay_duration_id: e for e in entries}
        checkout_hour = hotel.checkout_hour or self.settings.default_checkout_hour
        stay = self.resolver.resolve(start, duration, checkout_hour, catalog, self.local_tz)

        stay_entry = None
        if isinstance(duration, PredefinedStay):
            stay_entry = catalog.get(duration.stay_duration_id)
            if not room.allows_hourly_booking and not self.resolver.is_overnight_stay(
                duration.stay_duration_id, catalog
            ):
                raise HourlyBookingNotAllowed("The selected room does not allow hourly bookings")

        quote = self.pricing.quote(room.pricing(), guest_count, stay, stay_entry)

        await self.availability_gate.ensure_available(
            room.room_id, stay.start, stay.end,
            editing.reservation_id if editing else None
        )

        return ReservationDraft(
            room_id=room.room_id,
            guest_name=guest_name.strip(),
            phone=(phone or "").strip() or None,
            guest_count=guest_count,
            stay=stay,
            stay_duration_id=stay_entry.stay_duration_id if stay_entry else None,
            quote=quote,
            notes=(notes or "").strip() or None,
            source=source
        )

    # ==================== LIFECYCLE ====================
    async def create_reservation(
        self,
        context: BookingContext,
        room_id: str,
        guest_name: str,
        arrival: Union[datetime, str],
        duration: Duration,
        guest_count: int,
        phone: Optional[str] = None,
        notes: Optional[str] = None,
        deposit_amount: Decimal = Decimal("0"),
        payment_method_id: Optional[str] = None,
        source: ReservationSource = ReservationSource.DIRECT
    ) -> Reservation:
        """Create a reservation in the requested state and claim the room"""
        start = self._validate_initial_inputs(room_id, guest_name, arrival, duration, guest_count, is_edit=False)
        self._validate_deposit(deposit_amount, payment_method_id)

        draft = await self._compute_draft(
            context, room_id, guest_name, start, duration, guest_count, phone, notes, source, None
        )
        reservation = Reservation.create(draft, context)
        reservation = await self._store_call("Saving reservation", self.reservation_repo.save(reservation))
        logger.info(
            "Reservation %s created for room %s (%s - %s), total %s",
            reservation.reservation_id, reservation.room_id,
            reservation.start.isoformat(), reservation.end.isoformat(), reservation.total_amount
        )

        try:
            failed_steps = await self._apply_creation_side_effects(
                context, reservation, deposit_amount, payment_method_id
            )
        finally:
            await self._notify(context, "created", reservation.reservation_id)

        if failed_steps:
            raise PartialCommitError(
                f"Reservation {reservation.reservation_id} was saved but "
                f"{', '.join(failed_steps)} failed",
                reservation_id=reservation.reservation_id,
                failed_steps=failed_steps
            )
        return reservation

    async def update_reservation(
        self,
        context: BookingContext,
        reservation_id: UUID,
        room_id: str,
        guest_name: str,
        arrival: Union[datetime, str],
        duration: Duration,
        guest_count: int,
        phone: Optional[str] = None,
        notes: Optional[str] = None,
        source: ReservationSource = ReservationSource.DIRECT
    ) -> Optional[Reservation]:
        """Edit guest, stay and amounts; never status, hotel or owner"""
        start = self._validate_initial_inputs(room_id, guest_name, arrival, duration, guest_count, is_edit=True)

        reservation = await self._load(context, reservation_id)
        if not reservation:
            return None
        if not reservation.is_editable():
            raise InvalidStatusTransition(
                f"Cannot edit reservation with status {reservation.status.value}"
            )

        draft = await self._compute_draft(
            context, room_id, guest_name, start, duration, guest_count, phone, notes, source, reservation
        )
        reservation.apply_edit(draft)
        updated = await self._store_call("Updating reservation", self.reservation_repo.update(reservation))
        logger.info("Reservation %s updated (version %s)", updated.reservation_id, updated.version)
        await self._notify(context, "updated", updated.reservation_id)
        return updated

    async def confirm_reservation(self, context: BookingContext, reservation_id: UUID) -> Optional[Reservation]:
        """Requested -> confirmed; the room was already claimed at creation"""
        reservation = await self._load(context, reservation_id)
        if not reservation:
            return None

        reservation.confirm()
        updated = await self._store_call("Confirming reservation", self.reservation_repo.update(reservation))
        logger.info("Reservation %s confirmed", updated.reservation_id)
        await self._notify(context, "confirmed", updated.reservation_id)
        return updated

    async def cancel_reservation(self, context: BookingContext, reservation_id: UUID) -> Optional[CancellationResult]:
        """Cancel, then free the room unless another active booking still claims the slot"""
        reservation = await self._load(context, reservation_id)
        if not reservation:
            return None

        reservation.cancel()
        cancelled = await self._store_call("Cancelling reservation", self.reservation_repo.update(reservation))
        logger.info("Reservation %s cancelled", cancelled.reservation_id)

        try:
            room_freed, message = await self._release_room(cancelled)
        finally:
            await self._notify(context, "cancelled", cancelled.reservation_id)

        return CancellationResult(reservation=cancelled, room_freed=room_freed, message=message)

    async def mark_no_show(self, context: BookingContext, reservation_id: UUID) -> Optional[Reservation]:
        """Mark confirmed reservation as no-show"""
        reservation = await self._load(context, reservation_id)
        if not reservation:
            return None

        reservation.mark_no_show()
        updated = await self._store_call("Marking no-show", self.reservation_repo.update(reservation))
        logger.info("Reservation %s marked as no-show", updated.reservation_id)
        await self._notify(context, "no_show", updated.reservation_id)
        return updated

    async def delete_reservation(self, context: BookingContext, reservation_id: UUID) -> bool:
        """Permanently delete a reservation record"""
        reservation = await self._load(context, reservation_id)
        if not reservation:
            return False

        deleted = await self._store_call("Deleting reservation", self.reservation_repo.delete(reservation_id))
        if deleted:
            logger.info("Reservation %s deleted", reservation_id)
            await self._notify(context, "deleted", reservation_id)
        return deleted

    # ==================== QUERIES ====================
    async def get_reservation(self, context: BookingContext, reservation_id: UUID) -> Optional[Reservation]:
        """Get reservation by ID"""
        return await self._load(context, reservation_id)

    async def list_active_reservations(self, context: BookingContext) -> List[Reservation]:
        """Active reservations of the hotel, earliest arrival first"""
        return await self._store_call(
            "Listing reservations",
            self.reservation_repo.find_by_hotel_and_statuses(
                context.hotel_id, ACTIVE_STATUSES, self.settings.active_listing_limit
            )
        )

    @staticmethod
    def group_by_status(reservations: List[Reservation]) -> Dict[ReservationStatus, List[Reservation]]:
        """Group in display order (requested, confirmed, checked in); empty groups omitted"""
        groups: Dict[ReservationStatus, List[Reservation]] = {}
        for status in ACTIVE_STATUSES:
            members = [r for r in reservations if r.status == status]
            if members:
                groups[status] = members
        return groups

    async def list_rooms(self, context: BookingContext) -> List[Room]:
        return await self._store_call("Listing rooms", self.room_repo.find_by_hotel(context.hotel_id))

    async def list_stay_durations(self, context: BookingContext) -> List[StayDuration]:
        return await self._store_call(
            "Loading stay durations", self.stay_duration_repo.find_by_hotel(context.hotel_id)
        )

    async def get_payments(self, context: BookingContext, reservation_id: UUID) -> List[PaymentRecord]:
        reservation = await self._load(context, reservation_id)
        if not reservation:
            return []
        return await self._store_call("Loading payments", self.payment_repo.find_by_reservation(reservation_id))

    async def reconcile_room_states(self, context: BookingContext) -> List[str]:
        """Mark free rooms as reserved when a pending booking still claims them.

        Repairs rooms left free by a create whose room-state update failed.
        Returns the ids of the rooms that were changed.
        """
        fixed = []
        for room in await self.list_rooms(context):
            if room.state != RoomState.FREE:
                continue
            reservations = await self._store_call(
                "Loading room reservations", self.reservation_repo.find_by_room(room.room_id)
            )
            claimed = any(
                r.status in (ReservationStatus.REQUESTED, ReservationStatus.CONFIRMED)
                and r.end > self.clock(timezone.utc)
                for r in reservations
            )
            if claimed and await self._store_call(
                "Reserving room", self.room_repo.update_state_if(room.room_id, RoomState.RESERVED, RoomState.FREE)
            ):
                logger.warning("Room %s was free despite pending reservations; marked reserved", room.room_id)
                fixed.append(room.room_id)
        return fixed

    # ==================== PRIVATE ====================
    def _validate_initial_inputs(
        self,
        room_id: str,
        guest_name: str,
        arrival: Union[datetime, str],
        duration: Duration,
        guest_count: int,
        is_edit: bool
    ) -> datetime:
        """Checks that need no store round-trip. Returns the arrival in UTC."""
        if not guest_name or not guest_name.strip():
            raise ValidationError("Guest name is required")
        if not room_id:
            raise ValidationError("A room must be selected")

        start = parse_arrival(arrival, self.local_tz)
        if not is_edit:
            grace = timedelta(minutes=self.settings.arrival_grace_minutes)
            if start < self.clock(timezone.utc) - grace:
                raise InvalidArrival("Arrival cannot be in the past for new reservations")

        if not isinstance(duration, (ManualNights, PredefinedStay)):
            raise InvalidDuration("A duration (nights or predefined stay time) is required")
        if guest_count is None or guest_count < 1:
            raise ValidationError("Guest count must be at least 1")
        return start

    @staticmethod
    def _validate_deposit(deposit_amount: Decimal, payment_method_id: Optional[str]) -> None:
        if deposit_amount is None:
            return
        if deposit_amount < 0:
            raise ValidationError("Deposit cannot be negative")
        if deposit_amount > 0 and not payment_method_id:
            raise ValidationError("A payment method is required when registering a deposit")

    async def _apply_creation_side_effects(
        self,
        context: BookingContext,
        reservation: Reservation,
        deposit_amount: Optional[Decimal],
        payment_method_id: Optional[str]
    ) -> List[str]:
        """Deposit insert and room claim run together; neither is rolled back.

        Returns the names of the steps that failed.
        """
        steps: Dict[str, Awaitable] = {}
        if deposit_amount and deposit_amount > 0 and payment_method_id:
            payment = PaymentRecord(
                reservation_id=reservation.reservation_id,
                hotel_id=context.hotel_id,
                user_id=context.user_id,
                amount=Money(amount=deposit_amount, currency=self.settings.currency),
                payment_method_id=payment_method_id
            )
            steps["deposit"] = self.payment_repo.save(payment)
        # Only a free room is claimed; occupied or maintenance rooms keep their state
        steps["room state"] = self.room_repo.update_state_if(
            reservation.room_id, RoomState.RESERVED, RoomState.FREE
        )

        results = await asyncio.gather(*steps.values(), return_exceptions=True)

        failed = []
        for name, result in zip(steps, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Reservation %s: %s failed: %s", reservation.reservation_id, name, result
                )
                failed.append(name)
            elif name == "room state" and not result:
                logger.info("Room %s not marked reserved, it is not free", reservation.room_id)
        return failed

    async def _release_room(self, reservation: Reservation) -> Tuple[bool, str]:
        """Cancel-and-free protocol against the cancelled reservation's own interval"""
        if await self.availability_gate.has_conflict(
            reservation.room_id, reservation.start, reservation.end, reservation.reservation_id
        ):
            logger.warning(
                "Room %s not freed after cancelling %s: other reservations overlap",
                reservation.room_id, reservation.reservation_id
            )
            return False, "Reservation cancelled. The room was not marked free because other reservations overlap."

        freed = await self._store_call(
            "Releasing room",
            self.room_repo.update_state_if(reservation.room_id, RoomState.FREE, RoomState.RESERVED)
        )
        if not freed:
            return False, "Reservation cancelled. The room state was left unchanged."
        return True, "Reservation cancelled. The room is free."

    async def _load(self, context: BookingContext, reservation_id: UUID) -> Optional[Reservation]:
        reservation = await self._store_call("Loading reservation", self.reservation_repo.find_by_id(reservation_id))
        if reservation is None or reservation.hotel_id != context.hotel_id:
            return None
        return reservation

    async def _notify(self, context: BookingContext, action: str, reservation_id: Optional[UUID] = None) -> None:
        await self.publisher.publish(
            ReservationsChanged(hotel_id=context.hotel_id, action=action, reservation_id=reservation_id)
        )

    @staticmethod
    async def _store_call(description: str, awaitable: Awaitable):
        try:
            return await awaitable
        except BookingError:
            raise
        except Exception as e:
            logger.error("%s failed: %s", description, e)
            raise StoreError(f"{description} failed: {e}") from e
