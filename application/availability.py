"""Availability Gate - overlap protocol in front of the availability authority"""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from domain.errors import AvailabilityCheckFailed, ConflictError
from domain.repositories import AvailabilityAuthority

logger = logging.getLogger(__name__)


class AvailabilityGate:
    """Callers pass exclude_reservation_id=None on create and the edited or
    cancelled reservation's own id otherwise. Authority failures are never
    read as "available".
    """

    def __init__(self, authority: AvailabilityAuthority):
        self.authority = authority

    async def has_conflict(
        self,
        room_id: str,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[UUID] = None
    ) -> bool:
        try:
            return bool(await self.authority.has_conflict(room_id, start, end, exclude_reservation_id))
        except Exception as e:
            logger.error("Availability check failed for room %s: %s", room_id, e)
            raise AvailabilityCheckFailed(f"Error validating availability: {e}") from e

    async def ensure_available(
        self,
        room_id: str,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[UUID] = None
    ) -> None:
        if await self.has_conflict(room_id, start, end, exclude_reservation_id):
            raise ConflictError("Conflict: the room is not available for the selected period")
