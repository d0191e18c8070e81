"""Domain Enums"""
from enum import Enum


class ReservationStatus(str, Enum):
    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that still claim the room for their interval
ACTIVE_STATUSES = (
    ReservationStatus.REQUESTED,
    ReservationStatus.CONFIRMED,
    ReservationStatus.CHECKED_IN,
)


class RoomState(str, Enum):
    FREE = "free"
    RESERVED = "reserved"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"


class DurationKind(str, Enum):
    MANUAL_NIGHTS = "manual_nights"
    PREDEFINED_STAY = "predefined_stay"


class ReservationSource(str, Enum):
    DIRECT = "DIRECT"
    PHONE = "PHONE"
    WEBSITE = "WEBSITE"
    OTA = "OTA"
