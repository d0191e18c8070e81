"""Duration Resolver - turns a duration choice into a concrete stay interval"""
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Mapping, Optional, Tuple, Union

from pydantic import TypeAdapter

from domain.enums import DurationKind
from domain.errors import InvalidArrival, InvalidDuration, NonPositiveInterval
from domain.value_objects import ManualNights, PredefinedStay, ResolvedStay, StayDuration

Catalog = Mapping[str, StayDuration]

_datetime_adapter = TypeAdapter(datetime)


def parse_arrival(arrival: Union[datetime, str], local_tz: tzinfo = timezone.utc) -> datetime:
    """Accept a datetime or an ISO-8601 string and return it in UTC.

    Values without an offset are read as wall-clock time in ``local_tz``.
    """
    if isinstance(arrival, datetime):
        parsed = arrival
    elif isinstance(arrival, str) and arrival.strip():
        try:
            parsed = _datetime_adapter.validate_python(arrival.strip())
        except ValueError:
            raise InvalidArrival("The arrival date provided is not valid")
    else:
        raise InvalidArrival("Arrival date and time are required")

    if parsed.tzinfo is None or parsed.utcoffset() is None:
        parsed = parsed.replace(tzinfo=local_tz)
    return parsed.astimezone(timezone.utc)


def parse_checkout_hour(checkout_hour: str) -> Tuple[int, int]:
    try:
        hours_text, minutes_text = checkout_hour.split(":")
        hours, minutes = int(hours_text), int(minutes_text)
    except (AttributeError, ValueError):
        raise InvalidDuration(f"Invalid checkout hour: {checkout_hour!r}")
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise InvalidDuration(f"Invalid checkout hour: {checkout_hour!r}")
    return hours, minutes


class DurationResolver:
    """Resolves arrival + duration choice into a ResolvedStay in UTC.

    Manual nights end at the hotel's checkout wall-clock time on the last
    day, counted in the hotel's timezone, so the elapsed length depends on
    the arrival time of day. An arrival at 20:00 with a 12:00 checkout gives
    a 16 hour "1 night" stay. Predefined stays are elapsed time: arrival
    plus the entry's minutes.
    """

    def resolve(
        self,
        arrival: Union[datetime, str],
        spec: Union[ManualNights, PredefinedStay],
        checkout_hour: str,
        catalog: Catalog,
        local_tz: tzinfo = timezone.utc
    ) -> ResolvedStay:
        start = parse_arrival(arrival, local_tz)

        if isinstance(spec, ManualNights):
            hours, minutes = parse_checkout_hour(checkout_hour)
            local_start = start.astimezone(local_tz)
            local_end = (local_start + timedelta(days=spec.count)).replace(
                hour=hours, minute=minutes, second=0, microsecond=0
            )
            end = local_end.astimezone(timezone.utc)
            kind = DurationKind.MANUAL_NIGHTS
            magnitude = spec.count
        elif isinstance(spec, PredefinedStay):
            entry = catalog.get(spec.stay_duration_id)
            if entry is None or not isinstance(entry.minutes, int) or entry.minutes <= 0:
                raise InvalidDuration("Predefined stay time is not valid")
            end = start + timedelta(minutes=entry.minutes)
            kind = DurationKind.PREDEFINED_STAY
            magnitude = entry.minutes
        else:
            raise InvalidDuration(f"Unsupported duration: {spec!r}")

        if end <= start:
            raise NonPositiveInterval("Departure must be after arrival")

        return ResolvedStay(
            start=start,
            end=end,
            duration_kind=kind,
            duration_magnitude=magnitude
        )

    @staticmethod
    def is_overnight_stay(stay_duration_id: Optional[str], catalog: Catalog) -> bool:
        """Whether a catalog entry is night-equivalent (22 to 26 hours)"""
        if not stay_duration_id:
            return False
        entry = catalog.get(stay_duration_id)
        return entry is not None and entry.is_night_equivalent()
