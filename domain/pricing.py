"""Pricing Engine - base amount plus additional-guest surcharge"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from domain.enums import DurationKind
from domain.errors import OccupancyExceeded, UnresolvablePrice, ValidationError
from domain.value_objects import BookingQuote, ResolvedStay, RoomPricing, StayDuration

MINUTES_PER_DAY = 24 * 60
CENTS = Decimal("0.01")


class PricingEngine:
    """Pure computation of a BookingQuote; never touches a store."""

    def quote(
        self,
        room: RoomPricing,
        guest_count: int,
        resolved: ResolvedStay,
        stay_entry: Optional[StayDuration] = None
    ) -> BookingQuote:
        if guest_count < 1:
            raise ValidationError("Guest count must be at least 1")
        if guest_count > room.max_occupancy:
            raise OccupancyExceeded(
                f"Guests ({guest_count}) exceed maximum capacity ({room.max_occupancy})"
            )

        base_amount = self._base_amount(room, resolved, stay_entry)
        extra_guest_amount = Decimal("0")

        if guest_count > room.base_occupancy:
            extra = guest_count - room.base_occupancy
            multiplier = self._surcharge_multiplier(resolved, stay_entry)
            extra_guest_amount = extra * room.extra_guest_price * multiplier

        return BookingQuote(base_amount=base_amount, extra_guest_amount=extra_guest_amount)

    def _base_amount(
        self,
        room: RoomPricing,
        resolved: ResolvedStay,
        stay_entry: Optional[StayDuration]
    ) -> Decimal:
        if resolved.duration_kind == DurationKind.MANUAL_NIGHTS:
            return room.base_price * resolved.duration_magnitude

        # Flat package price wins, hourly rate is the fallback
        if stay_entry is not None and stay_entry.price is not None and stay_entry.price >= 0:
            return stay_entry.price

        minutes = resolved.duration_magnitude
        if room.hourly_base_price > 0 and minutes > 0:
            hourly = room.hourly_base_price * Decimal(minutes) / Decimal(60)
            return hourly.quantize(CENTS, rounding=ROUND_HALF_UP)

        raise UnresolvablePrice("Could not determine the price for the stay time")

    @staticmethod
    def _surcharge_multiplier(resolved: ResolvedStay, stay_entry: Optional[StayDuration]) -> int:
        if resolved.duration_kind == DurationKind.MANUAL_NIGHTS:
            return resolved.duration_magnitude
        if stay_entry is not None and stay_entry.is_night_equivalent():
            days = (Decimal(resolved.duration_magnitude) / MINUTES_PER_DAY).quantize(
                Decimal("1"), rounding=ROUND_HALF_UP
            )
            return max(1, int(days))
        return 1
