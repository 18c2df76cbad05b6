from datetime import datetime, time
from fastapi import HTTPException

MINUTES_PER_DAY = 24 * 60


def parse_time(time_str: str) -> time:
    """Parse a time-of-day string such as '10:00' or '10:00:00'."""
    try:
        return time.fromisoformat(time_str)
    except ValueError:
        try:
            return datetime.strptime(time_str, "%I:%M %p").time()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid time format")


def to_minutes(value: time) -> int:
    """Minutes elapsed since midnight."""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Inverse of to_minutes; the end of day (1440) maps to time.max."""
    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes is outside a single day")
    if minutes == MINUTES_PER_DAY:
        return time.max
    return time(minutes // 60, minutes % 60)


def add_minutes(start: time, minutes: int) -> time:
    return from_minutes(to_minutes(start) + minutes)


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
