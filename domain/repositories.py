"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List, Sequence
from uuid import UUID
from datetime import datetime

from domain.entities import Reservation, Room, Hotel, PaymentRecord
from domain.enums import ReservationStatus, RoomState
from domain.value_objects import StayDuration


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_by_hotel_and_statuses(
        self,
        hotel_id: str,
        statuses: Sequence[ReservationStatus],
        limit: int = 100
    ) -> List[Reservation]:
        """Find reservations of a hotel in any of the statuses, ordered by start ascending"""
        pass

    @abstractmethod
    async def find_by_room(self, room_id: str) -> List[Reservation]:
        """Find all reservations of a room"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        pass

    @abstractmethod
    async def delete(self, reservation_id: UUID) -> bool:
        """Delete reservation"""
        pass


class RoomRepository(ABC):
    """Repository interface for rooms (read side plus state tag)"""

    @abstractmethod
    async def save(self, room: Room) -> Room:
        pass

    @abstractmethod
    async def find_by_id(self, room_id: str) -> Optional[Room]:
        pass

    @abstractmethod
    async def find_by_hotel(self, hotel_id: str) -> List[Room]:
        pass

    @abstractmethod
    async def update_state_if(self, room_id: str, new_state: RoomState, expected_state: RoomState) -> bool:
        """Set state=new_state where id=room_id and state=expected_state.

        Returns whether a row was changed.
        """
        pass


class HotelRepository(ABC):

    @abstractmethod
    async def save(self, hotel: Hotel) -> Hotel:
        pass

    @abstractmethod
    async def find_by_id(self, hotel_id: str) -> Optional[Hotel]:
        pass


class StayDurationRepository(ABC):

    @abstractmethod
    async def save(self, stay_duration: StayDuration) -> StayDuration:
        pass

    @abstractmethod
    async def find_by_hotel(self, hotel_id: str) -> List[StayDuration]:
        """Active entries of a hotel, ascending by minutes"""
        pass


class PaymentRecordRepository(ABC):
    """Append-only store of deposit records"""

    @abstractmethod
    async def save(self, payment: PaymentRecord) -> PaymentRecord:
        pass

    @abstractmethod
    async def find_by_reservation(self, reservation_id: UUID) -> List[PaymentRecord]:
        pass


class AvailabilityAuthority(ABC):
    """Answers whether an interval overlaps an active reservation of a room"""

    @abstractmethod
    async def has_conflict(
        self,
        room_id: str,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[UUID] = None
    ) -> bool:
        pass
