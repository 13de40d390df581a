from __future__ import annotations

import math
from datetime import date, datetime, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from cyclestats.schemas.core import Ride


MS_PER_MINUTE = 60_000
MS_PER_DAY = 86_400_000
# Timestamps outside this window (1970 up to 2100, UTC) are treated as missing.
MIN_EPOCH_MS = 0
MAX_EPOCH_MS = 4_102_444_800_000

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

TimezoneLike = Union[str, tzinfo, None]


def resolve_tz(tz: TimezoneLike) -> tzinfo:
    if tz is None:
        return timezone.utc
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def valid_epoch_ms(ms: Optional[int]) -> Optional[int]:
    if ms is None or not MIN_EPOCH_MS <= ms < MAX_EPOCH_MS:
        return None
    return int(ms)


def to_local(ms: int, tz: TimezoneLike = None) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).astimezone(resolve_tz(tz))


def round_half_up(value: float) -> int:
    # Halves round towards +inf, so -2.5 -> -2 and 2.5 -> 3.
    return int(math.floor(value + 0.5))


def duration_ms(ride: Ride) -> Optional[int]:
    """
    Ride duration in milliseconds, or None when it cannot be trusted.

    Both timestamps must be present and in range; an end before the start counts as unknown.
    """

    start = valid_epoch_ms(ride.start_time_ms)
    end = valid_epoch_ms(ride.end_time_ms)
    if start is None or end is None:
        return None
    delta = end - start
    if delta < 0:
        return None
    return delta


def duration_minutes(ride: Ride) -> Optional[int]:
    ms = duration_ms(ride)
    if ms is None:
        return None
    return round_half_up(ms / MS_PER_MINUTE)


def format_day(d: date) -> str:
    return f"{d.day} {MONTH_ABBR[d.month - 1]} {d.year}"


def format_day_month(d: date) -> str:
    return f"{d.day} {MONTH_ABBR[d.month - 1]}"


def format_month(d: date) -> str:
    return f"{MONTH_ABBR[d.month - 1]} {d.year}"
