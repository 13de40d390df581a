from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Generic, Iterable, Optional, Sequence, TypeVar

from cyclestats.schemas.core import Histogram, Ride
from cyclestats.utils.dates import (
    MS_PER_DAY,
    TimezoneLike,
    duration_ms,
    format_day,
    format_day_month,
    format_month,
    to_local,
    valid_epoch_ms,
)


V = TypeVar("V")
K = TypeVar("K")

DURATION_WIDTH_SECONDS = {"15s": 15, "30s": 30, "1m": 60, "2m": 120, "5m": 300}
TIME_OF_DAY_WIDTH_MINUTES = {"15m": 15, "30m": 30, "1h": 60, "2h": 120}
CALENDAR_WIDTHS = ("1d", "3d", "1w", "1m", "3m", "6m", "1y")

MINUTES_PER_DAY = 24 * 60
EPOCH_DAY = date(1970, 1, 1)
QUARTER_NAMES = ("Jan-Mar", "Apr-Jun", "Jul-Sep", "Oct-Dec")
HALF_NAMES = ("Jan-Jun", "Jul-Dec")


@dataclass(frozen=True)
class BinPolicy(Generic[V, K]):
    """
    Axis-specific rules for `bucketize`.

    - `bin_key` maps a value to the start of its bin.
    - `bin_label` renders a bin start for display.
    - `next_bin_start` steps from one bin start to the next.
    - `align_first_bin` maps the smallest value to the first bin start.
    - `domain`, when set, fixes the first and last bin starts regardless of the data.
    """

    bin_key: Callable[[V], K]
    bin_label: Callable[[K], str]
    next_bin_start: Callable[[K], K]
    align_first_bin: Callable[[V], K]
    domain: Optional[tuple[K, K]] = None


def bucketize(
    values: Iterable[V],
    policy: BinPolicy[V, K],
    *,
    axis: str,
    bucket_width: str,
) -> Optional[Histogram]:
    """
    Count values into contiguous bins, empty bins included.

    Returns None when there are no values (nothing to plot).
    """

    items = list(values)
    if not items:
        return None

    counts: dict[K, int] = {}
    for v in items:
        k = policy.bin_key(v)
        counts[k] = counts.get(k, 0) + 1

    if policy.domain is not None:
        first, last = policy.domain
    else:
        first = policy.align_first_bin(min(items))  # type: ignore[type-var]
        last = policy.bin_key(max(items))  # type: ignore[type-var]

    labels: list[str] = []
    out: list[int] = []
    start = first
    while start <= last:  # type: ignore[operator]
        labels.append(policy.bin_label(start))
        out.append(counts.get(start, 0))
        start = policy.next_bin_start(start)

    return Histogram(axis=axis, bucket_width=bucket_width, labels=tuple(labels), counts=tuple(out))


# Duration axis


def _duration_label(start_s: int, width: str) -> str:
    size = DURATION_WIDTH_SECONDS[width]
    end_s = start_s + size
    if width in ("15s", "30s"):
        return f"{start_s}s-{end_s}s"
    start_min = start_s // 60
    end_min = end_s // 60
    if width == "1m" or start_min == end_min:
        return f"{start_min} min"
    return f"{start_min}-{end_min} min"


def duration_policy(min_seconds: int, width: str) -> BinPolicy[int, int]:
    if width not in DURATION_WIDTH_SECONDS:
        raise ValueError(f"Unsupported duration bucket width: {width}")
    size = DURATION_WIDTH_SECONDS[width]

    def key(v: int) -> int:
        return min_seconds + ((v - min_seconds) // size) * size

    return BinPolicy(
        bin_key=key,
        bin_label=lambda s: _duration_label(s, width),
        next_bin_start=lambda s: s + size,
        align_first_bin=key,
    )


def ride_durations_seconds(rides: Iterable[Ride]) -> list[int]:
    out = []
    for ride in rides:
        ms = duration_ms(ride)
        if ms is not None:
            out.append(ms // 1000)
    return out


def duration_histogram(rides: Iterable[Ride], width: str = "1m") -> Optional[Histogram]:
    if width not in DURATION_WIDTH_SECONDS:
        raise ValueError(f"Unsupported duration bucket width: {width}")
    seconds = ride_durations_seconds(rides)
    if not seconds:
        return None
    return bucketize(seconds, duration_policy(min(seconds), width), axis="duration", bucket_width=width)


# Time-of-day axis


def _clock(minutes: int) -> str:
    hour, minute = divmod(minutes, 60)
    period = "PM" if hour >= 12 else "AM"
    display = 12 if hour == 0 else hour - 12 if hour > 12 else hour
    if minute == 0:
        return f"{display} {period}"
    return f"{display}:{minute:02d} {period}"


def _time_of_day_label(start: int, size: int) -> str:
    end = min(start + size, MINUTES_PER_DAY)
    if end == MINUTES_PER_DAY:
        return f"{_clock(start)} - 12 AM"
    return f"{_clock(start)} - {_clock(end)}"


def time_of_day_policy(width: str) -> BinPolicy[int, int]:
    if width not in TIME_OF_DAY_WIDTH_MINUTES:
        raise ValueError(f"Unsupported time-of-day bucket width: {width}")
    size = TIME_OF_DAY_WIDTH_MINUTES[width]
    n_bins = math.ceil(MINUTES_PER_DAY / size)
    last = (n_bins - 1) * size

    def key(v: int) -> int:
        return min(v // size, n_bins - 1) * size

    return BinPolicy(
        bin_key=key,
        bin_label=lambda s: _time_of_day_label(s, size),
        next_bin_start=lambda s: s + size,
        align_first_bin=lambda _v: 0,
        domain=(0, last),
    )


def minutes_since_midnight(rides: Iterable[Ride], tz: TimezoneLike = None) -> list[int]:
    out = []
    for ride in rides:
        ms = valid_epoch_ms(ride.start_time_ms)
        if ms is None:
            continue
        dt = to_local(ms, tz)
        out.append(dt.hour * 60 + dt.minute)
    return out


def time_of_day_histogram(
    rides: Iterable[Ride], width: str = "1h", tz: TimezoneLike = None
) -> Optional[Histogram]:
    policy = time_of_day_policy(width)
    return bucketize(minutes_since_midnight(rides, tz), policy, axis="time_of_day", bucket_width=width)


# Calendar axis


def _add_months(d: date, months: int) -> date:
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def _calendar_bin_start(ms: int, width: str, tz: TimezoneLike) -> date:
    if width == "3d":
        # Fixed three-day windows counted from the Unix epoch, not from the month.
        epoch_days = ms // MS_PER_DAY
        return EPOCH_DAY + timedelta(days=(epoch_days // 3) * 3)

    d = to_local(ms, tz).date()
    if width == "1d":
        return d
    if width == "1w":
        return d - timedelta(days=d.weekday())
    if width == "1m":
        return d.replace(day=1)
    if width == "3m":
        return date(d.year, (d.month - 1) // 3 * 3 + 1, 1)
    if width == "6m":
        return date(d.year, (d.month - 1) // 6 * 6 + 1, 1)
    if width == "1y":
        return date(d.year, 1, 1)
    raise ValueError(f"Unsupported calendar bucket width: {width}")


def _calendar_next(d: date, width: str) -> date:
    if width == "1d":
        return d + timedelta(days=1)
    if width == "3d":
        return d + timedelta(days=3)
    if width == "1w":
        return d + timedelta(days=7)
    if width == "1m":
        return _add_months(d, 1)
    if width == "3m":
        return _add_months(d, 3)
    if width == "6m":
        return _add_months(d, 6)
    return date(d.year + 1, 1, 1)


def _calendar_label(d: date, width: str) -> str:
    if width == "1d":
        return format_day(d)
    if width in ("3d", "1w"):
        end = d + timedelta(days=3 if width == "3d" else 7)
        return f"{format_day_month(d)} - {format_day(end)}"
    if width == "1m":
        return format_month(d)
    if width == "3m":
        return f"{QUARTER_NAMES[(d.month - 1) // 3]} {d.year}"
    if width == "6m":
        return f"{HALF_NAMES[(d.month - 1) // 6]} {d.year}"
    return str(d.year)


def calendar_policy(width: str, tz: TimezoneLike = None) -> BinPolicy[int, date]:
    if width not in CALENDAR_WIDTHS:
        raise ValueError(f"Unsupported calendar bucket width: {width}")

    def key(ms: int) -> date:
        return _calendar_bin_start(ms, width, tz)

    return BinPolicy(
        bin_key=key,
        bin_label=lambda d: _calendar_label(d, width),
        next_bin_start=lambda d: _calendar_next(d, width),
        align_first_bin=key,
    )


def calendar_histogram(
    rides: Iterable[Ride], width: str = "1m", tz: TimezoneLike = None
) -> Optional[Histogram]:
    policy = calendar_policy(width, tz)
    starts = [ms for ms in (valid_epoch_ms(r.start_time_ms) for r in rides) if ms is not None]
    return bucketize(starts, policy, axis="calendar", bucket_width=width)


def histogram_total(hist: Optional[Histogram]) -> int:
    return 0 if hist is None else sum(hist.counts)


def histogram_rows(hist: Histogram) -> Sequence[dict[str, object]]:
    return [{"label": label, "count": count} for label, count in zip(hist.labels, hist.counts)]
