import logging
import uuid
from datetime import time
from threading import RLock
from typing import Iterable

from intervaltree import IntervalTree

from exceptions import AlreadyRegistered, CapacityExceeded, NotRegistered, SchedulingConflict, UserNotFound
from models import Event, EventStatus, Role, User
from permissions import permissions_for
from schedule import Schedule
from utils import MINUTES_PER_DAY, format_minutes, to_minutes

logger = logging.getLogger(__name__)


class UserManager:
    def __init__(self):
        """Initialize an empty in-memory user registry."""
        self.users: dict[str, User] = {}
        self.lock = RLock()

    def add_user(self, role: Role, username: str, password_hash: str, name: str) -> User:
        """Create a user with the permission template of its role."""
        role = Role(role)
        with self.lock:
            if self.get_by_username(username) is not None:
                raise ValueError(f"Username {username} is already taken")
            user_id = uuid.uuid4().hex
            while user_id in self.users:
                user_id = uuid.uuid4().hex
            user = User(
                id=user_id,
                username=username,
                name=name,
                role=role,
                permissions=permissions_for(role),
                password_hash=password_hash,
            )
            self.users[user.id] = user
        return user

    def get(self, user_id: str) -> User:
        """Retrieve a user by ID."""
        try:
            return self.users[user_id]
        except KeyError:
            raise UserNotFound(f"No user with id {user_id}")

    def get_by_username(self, username: str) -> User | None:
        """Retrieve a user by username."""
        for user in self.users.values():
            if user.username == username:
                return user
        return None

    def name_of(self, user_id: str) -> str:
        user = self.users.get(user_id)
        return user.name if user else user_id

    def set_banned(self, user_id: str, banned: bool) -> User:
        user = self.get(user_id)
        user.is_banned = banned
        return user

    def snapshot(self) -> list[dict]:
        return [user.to_dict() for user in self.users.values()]


class Scheduler:
    """Conflict detection over the live events of a schedule."""

    def __init__(self, schedule: Schedule):
        self.schedule = schedule

    def find_conflicts(self, room: str, hosts: Iterable[str], start: int, end: int,
                       exclude: str | None = None) -> list[Event]:
        """Return every live event sharing the room or a host with an overlapping window.

        Windows are half-open minute ranges, so back-to-back events do not
        conflict. ``exclude`` names an event id to leave out (the one being moved).
        """
        hosts = set(hosts)
        intervals = IntervalTree()
        for event in self.schedule:
            if event.id != exclude:
                intervals[event.start_minute:event.end_minute] = event.id
        overlapping = {iv.data for iv in intervals.overlap(start, end)}
        return [
            event for event in self.schedule
            if event.id in overlapping and (event.room == room or hosts & event.hosts)
        ]


class EventManager:
    def __init__(self, user_manager: UserManager | None = None):
        """Initialize EventManager with an empty schedule."""
        self.user_manager = user_manager
        self.schedule = Schedule()
        self.scheduler = Scheduler(self.schedule)
        self.lock = RLock()

    @staticmethod
    def _validate_window(start_time: time, duration: int) -> tuple[int, int]:
        if start_time.second or start_time.microsecond or start_time.tzinfo is not None:
            raise ValueError("Start time must be a naive time on a whole minute")
        if duration <= 0:
            raise ValueError("Duration must be a positive number of minutes")
        start = to_minutes(start_time)
        end = start + duration
        if end > MINUTES_PER_DAY:
            raise ValueError("Event must end by midnight")
        return start, end

    def schedule_event(self, capacity: int, room: str, start_time: time, title: str,
                       hosts: Iterable[str], duration: int) -> Event:
        """Add a new event unless it collides with a live event in the same room or with a shared host."""
        if capacity < 0:
            raise ValueError("Capacity must not be negative")
        start, end = self._validate_window(start_time, duration)
        hosts = set(hosts)
        with self.lock:
            conflicts = self.scheduler.find_conflicts(room, hosts, start, end)
            if conflicts:
                logger.warning(f"Rejected '{title}' in room {room}: {len(conflicts)} conflict(s)")
                raise SchedulingConflict(conflicts)
            event_id = uuid.uuid4().hex
            while any(e.id == event_id for e in self.schedule):
                event_id = uuid.uuid4().hex
            event = Event(
                id=event_id,
                title=title,
                room=room,
                start_time=start_time,
                duration=duration,
                capacity=capacity,
                hosts=hosts,
            )
            self.schedule.insert(event)
        logger.info(f"Event {event.id} '{title}' scheduled in room {room} at {format_minutes(start)}")
        return event

    def reschedule_event(self, index: int, new_start_time: time, new_duration: int) -> Event:
        """Move the event at index to a new window if nothing else occupies it."""
        start, end = self._validate_window(new_start_time, new_duration)
        with self.lock:
            event = self.schedule.event_at(index)
            conflicts = self.scheduler.find_conflicts(event.room, event.hosts, start, end, exclude=event.id)
            if conflicts:
                logger.warning(f"Rejected move of event {event.id}: {len(conflicts)} conflict(s)")
                raise SchedulingConflict(conflicts)
            event.start_time = new_start_time
            event.duration = new_duration
            self.schedule.resort()
        logger.info(f"Event {event.id} rescheduled to {format_minutes(start)} for {new_duration} minutes")
        return event

    def cancel_event(self, index: int) -> Event:
        """Remove the event at index, attendees or not."""
        with self.lock:
            event = self.schedule.remove_at(index)
            event.status = EventStatus.CANCELLED
        logger.info(f"Event {event.id} '{event.title}' cancelled")
        return event

    def register_attendee(self, user_id: str, index: int) -> Event:
        """Add a user to the attendee list of the event at index."""
        with self.lock:
            event = self.schedule.event_at(index)
            if event.has_attendee(user_id):
                raise AlreadyRegistered(f"User {user_id} is already registered for {event.title}")
            if event.at_capacity():
                logger.warning(f"Event {event.id} is full ({event.capacity})")
                raise CapacityExceeded(f"{event.title} is at capacity ({event.capacity})")
            event.attendees.append(user_id)
        logger.info(f"Attendee {user_id} registered for event {event.id}")
        return event

    def remove_attendee(self, user_id: str, index: int) -> Event:
        """Take a user off the attendee list of the event at index."""
        with self.lock:
            event = self.schedule.event_at(index)
            if not event.has_attendee(user_id):
                raise NotRegistered(f"User {user_id} is not registered for {event.title}")
            event.attendees.remove(user_id)
        logger.info(f"Attendee {user_id} removed from event {event.id}")
        return event

    def index_of(self, event_id: str) -> int:
        """Return the current position of a live event."""
        with self.lock:
            return self.schedule.index_of(event_id)

    def project(self, event: Event) -> dict:
        """Convert an event into display-safe plain data with host names resolved."""
        name_of = self.user_manager.name_of if self.user_manager else str
        return {
            "id": event.id,
            "title": event.title,
            "room": event.room,
            "start_time": format_minutes(event.start_minute),
            "end_time": format_minutes(event.end_minute),
            "duration": event.duration,
            "hosts": sorted(name_of(host) for host in event.hosts),
            "attendee_count": len(event.attendees),
            "capacity": event.capacity,
            "occupancy": f"{len(event.attendees)}/{event.capacity}",
        }

    def _records(self, schedule: Schedule) -> list[dict]:
        return [self.project(event) for event in schedule]

    def retrieve_all_events(self) -> list[dict]:
        with self.lock:
            return self._records(self.schedule)

    def retrieve_events_by_time_interval(self, start: time, end: time) -> list[dict]:
        with self.lock:
            return self._records(self.schedule.by_time_interval(start, end))

    def retrieve_events_by_host(self, host_id: str) -> list[dict]:
        with self.lock:
            return self._records(self.schedule.by_host(host_id))

    def retrieve_events_by_title(self, title: str) -> list[dict]:
        with self.lock:
            return self._records(self.schedule.by_title(title))

    def retrieve_events_by_attendee(self, attendee_id: str) -> list[dict]:
        with self.lock:
            return self._records(self.schedule.by_attendee(attendee_id))

    def retrieve_signup_able_events(self, attendee_id: str) -> list[dict]:
        with self.lock:
            return self._records(self.schedule.signup_eligible(attendee_id))

    def snapshot(self) -> list[dict]:
        """Return the schedule as plain data for persistence."""
        with self.lock:
            return [event.to_dict() for event in self.schedule]
