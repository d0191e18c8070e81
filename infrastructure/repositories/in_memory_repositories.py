"""In-Memory Repository Implementations"""
from typing import Optional, List, Dict, Sequence
from uuid import UUID
from datetime import datetime

from domain.repositories import (
    ReservationRepository, RoomRepository, HotelRepository,
    StayDurationRepository, PaymentRecordRepository, AvailabilityAuthority
)
from domain.entities import Reservation, Room, Hotel, PaymentRecord
from domain.enums import ReservationStatus, RoomState
from domain.value_objects import StayDuration


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Reservation] = {}

    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        self._storage[reservation.reservation_id] = reservation.model_copy(deep=True)
        return reservation

    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        stored = self._storage.get(reservation_id)
        return stored.model_copy(deep=True) if stored else None

    async def find_by_hotel_and_statuses(
        self,
        hotel_id: str,
        statuses: Sequence[ReservationStatus],
        limit: int = 100
    ) -> List[Reservation]:
        """Find reservations of a hotel in the given statuses, earliest first"""
        matches = [
            r for r in self._storage.values()
            if r.hotel_id == hotel_id and r.status in statuses
        ]
        matches.sort(key=lambda r: r.start)
        return [r.model_copy(deep=True) for r in matches[:limit]]

    async def find_by_room(self, room_id: str) -> List[Reservation]:
        """Find reservations of a room"""
        return [r.model_copy(deep=True) for r in self._storage.values() if r.room_id == room_id]

    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        if reservation.reservation_id in self._storage:
            self._storage[reservation.reservation_id] = reservation.model_copy(deep=True)
            return reservation.model_copy(deep=True)
        raise ValueError("Reservation not found")

    async def delete(self, reservation_id: UUID) -> bool:
        """Delete reservation"""
        if reservation_id in self._storage:
            del self._storage[reservation_id]
            return True
        return False


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository"""

    def __init__(self):
        self._storage: Dict[str, Room] = {}

    async def save(self, room: Room) -> Room:
        self._storage[room.room_id] = room.model_copy()
        return room

    async def find_by_id(self, room_id: str) -> Optional[Room]:
        stored = self._storage.get(room_id)
        return stored.model_copy() if stored else None

    async def find_by_hotel(self, hotel_id: str) -> List[Room]:
        rooms = [r.model_copy() for r in self._storage.values() if r.hotel_id == hotel_id]
        return sorted(rooms, key=lambda r: r.name)

    async def update_state_if(self, room_id: str, new_state: RoomState, expected_state: RoomState) -> bool:
        """Compare-and-set on the room state tag"""
        room = self._storage.get(room_id)
        if room is None or room.state != expected_state:
            return False
        self._storage[room_id] = room.model_copy(update={"state": new_state})
        return True


class InMemoryHotelRepository(HotelRepository):

    def __init__(self):
        self._storage: Dict[str, Hotel] = {}

    async def save(self, hotel: Hotel) -> Hotel:
        self._storage[hotel.hotel_id] = hotel
        return hotel

    async def find_by_id(self, hotel_id: str) -> Optional[Hotel]:
        return self._storage.get(hotel_id)


class InMemoryStayDurationRepository(StayDurationRepository):

    def __init__(self):
        self._storage: Dict[str, StayDuration] = {}

    async def save(self, stay_duration: StayDuration) -> StayDuration:
        # Edits overwrite by id
        self._storage[stay_duration.stay_duration_id] = stay_duration
        return stay_duration

    async def find_by_hotel(self, hotel_id: str) -> List[StayDuration]:
        entries = [
            s for s in self._storage.values()
            if s.hotel_id == hotel_id and s.active
        ]
        return sorted(entries, key=lambda s: s.minutes)


class InMemoryPaymentRecordRepository(PaymentRecordRepository):

    def __init__(self):
        self._storage: List[PaymentRecord] = []

    async def save(self, payment: PaymentRecord) -> PaymentRecord:
        self._storage.append(payment)
        return payment

    async def find_by_reservation(self, reservation_id: UUID) -> List[PaymentRecord]:
        return [p for p in self._storage if p.reservation_id == reservation_id]


class InMemoryAvailabilityAuthority(AvailabilityAuthority):
    """Overlap predicate evaluated against the in-memory reservation store"""

    def __init__(self, reservation_repository: ReservationRepository):
        self.reservation_repository = reservation_repository

    async def has_conflict(
        self,
        room_id: str,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[UUID] = None
    ) -> bool:
        for reservation in await self.reservation_repository.find_by_room(room_id):
            if reservation.reservation_id == exclude_reservation_id:
                continue
            if reservation.is_active() and reservation.overlaps(start, end):
                return True
        return False
