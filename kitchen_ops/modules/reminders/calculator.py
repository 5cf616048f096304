"""
Reminder time calculation.

Times are plain wall-clock strings ("HH:MM" or "HH:MM:SS") on an arbitrary
reference day; no timezone or DST handling happens here.
"""
from datetime import datetime, timedelta
from typing import List, Optional

FALLBACK_TIMES = ["08:00", "12:00", "17:00"]

# Reminder types sent for each slot returned by calculate_reminder_times
SLOT_REMINDER_TYPES = ["INICIO_JORNADA", "MEIO_JORNADA", "FIM_JORNADA"]

_REFERENCE_DAY = datetime(2000, 1, 1)


def parse_time(value: str) -> datetime:
    """Parse "HH:MM" or "HH:MM:SS" onto the reference day. Raises ValueError."""
    if not isinstance(value, str):
        raise ValueError(f"Invalid time: {value!r}")
    value = value.strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return _REFERENCE_DAY.replace(hour=parsed.hour, minute=parsed.minute, second=parsed.second)
    raise ValueError(f"Invalid time: {value!r}")


def format_time(value) -> str:
    """Render a time string or datetime as HH:MM. Unparseable strings are returned unchanged."""
    if isinstance(value, datetime):
        return value.strftime("%H:%M")
    try:
        return parse_time(value).strftime("%H:%M")
    except ValueError:
        return value


def calculate_reminder_times(inicio: Optional[str], fim: Optional[str], frequency: int) -> List[str]:
    """
    Evenly spaced reminder times inside a work window.

    frequency 1 -> [start], 2 -> [start, midpoint], 3 -> [start, midpoint, end].
    The midpoint is truncated to the minute. When either bound cannot be
    parsed the fallback list is sliced to `frequency`.
    """
    if frequency <= 0:
        return []
    try:
        start = parse_time(inicio)
        end = parse_time(fim)
    except ValueError:
        return FALLBACK_TIMES[:frequency]

    times = [format_time(start)]
    if frequency >= 2:
        total_seconds = (end - start).total_seconds()
        midpoint = start + timedelta(seconds=total_seconds / 2)
        times.append(format_time(midpoint))
    if frequency >= 3:
        times.append(format_time(end))
    return times


def work_hours(inicio: Optional[str], fim: Optional[str]) -> float:
    """Length of the work window in hours; 0 when a bound is missing or invalid."""
    if not inicio or not fim:
        return 0.0
    try:
        return (parse_time(fim) - parse_time(inicio)).total_seconds() / 3600
    except ValueError:
        return 0.0
