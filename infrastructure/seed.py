"""Demo hotel used when the in-memory stores start empty"""
import logging
from decimal import Decimal

from domain.entities import Hotel, Room
from domain.enums import RoomState
from domain.repositories import HotelRepository, RoomRepository, StayDurationRepository
from domain.value_objects import StayDuration

logger = logging.getLogger(__name__)

DEMO_HOTEL_ID = "hotel-001"


async def seed_demo_data(
    hotel_repo: HotelRepository,
    room_repo: RoomRepository,
    stay_duration_repo: StayDurationRepository
) -> None:
    if await hotel_repo.find_by_id(DEMO_HOTEL_ID):
        return

    await hotel_repo.save(Hotel(hotel_id=DEMO_HOTEL_ID, name="Hotel Demo", checkout_hour="12:00"))

    rooms = [
        Room(room_id="room-101", hotel_id=DEMO_HOTEL_ID, name="101", room_type="Double",
             base_price=Decimal("50000"), base_occupancy=2, max_occupancy=4,
             extra_guest_price=Decimal("10000"), allows_hourly_booking=True,
             hourly_base_price=Decimal("15000")),
        Room(room_id="room-102", hotel_id=DEMO_HOTEL_ID, name="102", room_type="Single",
             base_price=Decimal("35000"), base_occupancy=1, max_occupancy=2,
             extra_guest_price=Decimal("8000")),
        Room(room_id="room-201", hotel_id=DEMO_HOTEL_ID, name="201", room_type="Suite",
             state=RoomState.MAINTENANCE, base_price=Decimal("90000"), base_occupancy=2,
             max_occupancy=6, extra_guest_price=Decimal("15000")),
    ]
    for room in rooms:
        await room_repo.save(room)

    stay_durations = [
        StayDuration(stay_duration_id="stay-3h", hotel_id=DEMO_HOTEL_ID, name="3 hours",
                     minutes=180, price=Decimal("25000")),
        StayDuration(stay_duration_id="stay-6h", hotel_id=DEMO_HOTEL_ID, name="6 hours",
                     minutes=360),
        StayDuration(stay_duration_id="stay-night", hotel_id=DEMO_HOTEL_ID, name="Night package",
                     minutes=1440, price=Decimal("45000")),
    ]
    for stay_duration in stay_durations:
        await stay_duration_repo.save(stay_duration)

    logger.info("Seeded demo hotel %s with %d rooms", DEMO_HOTEL_ID, len(rooms))
