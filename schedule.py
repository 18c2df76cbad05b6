from bisect import bisect_left
from datetime import time
from typing import Iterable, Iterator

from exceptions import IndexOutOfRange
from models import Event
from utils import to_minutes


class Schedule:
    """Events kept in non-decreasing start-time order.

    Every query returns a new Schedule holding the matching events in the same
    order; the receiver is never modified by a query.
    """

    def __init__(self, events: Iterable[Event] | None = None):
        self._events = list(events) if events is not None else []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def __getitem__(self, index: int) -> Event:
        return self.event_at(index)

    def __repr__(self) -> str:
        return f"Schedule({[event.title for event in self._events]!r})"

    def _check_index(self, index: int):
        if not 0 <= index < len(self._events):
            raise IndexOutOfRange(f"No event at index {index} (schedule has {len(self._events)})")

    def insert(self, event: Event) -> int:
        """Insert before the first event that does not start earlier; return the position."""
        position = bisect_left(self._events, event.start_minute, key=lambda e: e.start_minute)
        self._events.insert(position, event)
        return position

    def event_at(self, index: int) -> Event:
        self._check_index(index)
        return self._events[index]

    def remove_at(self, index: int) -> Event:
        self._check_index(index)
        return self._events.pop(index)

    def index_of(self, event_id: str) -> int:
        for index, event in enumerate(self._events):
            if event.id == event_id:
                return index
        raise IndexOutOfRange(f"Event {event_id} is not scheduled")

    def resort(self):
        """Restore start-time order after an in-place move (stable)."""
        self._events.sort(key=lambda e: e.start_minute)

    def by_time_interval(self, start: time, end: time) -> "Schedule":
        """Events partially overlapping [start, end].

        Matches an event that starts at or before ``start`` and ends inside the
        window, or one that starts inside ``[start, end)`` and ends after ``end``.
        An event spanning the whole window matches neither branch and is left out.
        """
        lo, hi = to_minutes(start), to_minutes(end)
        matched = []
        for event in self._events:
            s, e = event.start_minute, event.end_minute
            if s <= lo and lo <= e <= hi:
                matched.append(event)
            elif lo <= s < hi and e > hi:
                matched.append(event)
        return Schedule(matched)

    def by_host(self, host_id: str) -> "Schedule":
        return Schedule(event for event in self._events if host_id in event.hosts)

    def by_title(self, title: str) -> "Schedule":
        return Schedule(event for event in self._events if event.title == title)

    def by_attendee(self, attendee_id: str) -> "Schedule":
        return Schedule(event for event in self._events if event.has_attendee(attendee_id))

    def signup_eligible(self, attendee_id: str) -> "Schedule":
        return Schedule(
            event for event in self._events
            if not event.has_attendee(attendee_id) and not event.at_capacity()
        )
