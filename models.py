from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from utils import add_minutes, to_minutes


class Role(str, Enum):
    ATTENDEE = "attendee"
    SPEAKER = "speaker"
    ORGANIZER = "organizer"
    ADMIN = "admin"


class Capability(str, Enum):
    CAN_BE_MESSAGED = "can_be_messaged"
    CAN_MESSAGE_TALK = "can_message_talk"
    CAN_SCHEDULE = "can_schedule"
    CAN_SIGN_UP_EVENT = "can_sign_up_event"
    CAN_SIGN_UP_USER = "can_sign_up_user"
    CAN_SPEAK_AT_TALK = "can_speak_at_talk"
    CAN_VIEW_STATS = "can_view_stats"
    CAN_BAN_USERS = "can_ban_users"
    CAN_SEE_ALL_MESSAGES = "can_see_all_messages"


class EventStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"


@dataclass
class User:
    id: str
    username: str
    name: str
    role: Role
    permissions: Mapping[Capability, bool]
    password_hash: str = ""
    is_banned: bool = False

    def __post_init__(self):
        # Frozen once built from the role template
        self.permissions = MappingProxyType(dict(self.permissions))

    def to_dict(self) -> dict:
        """Return the user as plain data, without the password hash."""
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "role": self.role.value,
            "is_banned": self.is_banned,
        }


@dataclass
class Event:
    id: str
    title: str
    room: str
    start_time: time
    duration: int  # minutes
    capacity: int
    hosts: set[str] = field(default_factory=set)
    attendees: list[str] = field(default_factory=list)
    status: EventStatus = EventStatus.SCHEDULED

    @property
    def start_minute(self) -> int:
        return to_minutes(self.start_time)

    @property
    def end_minute(self) -> int:
        return self.start_minute + self.duration

    @property
    def end_time(self) -> time:
        return add_minutes(self.start_time, self.duration)

    def has_attendee(self, user_id: str) -> bool:
        return user_id in self.attendees

    def at_capacity(self) -> bool:
        return len(self.attendees) >= self.capacity

    def to_dict(self) -> dict:
        """Return the event as serializable value data."""
        return {
            "id": self.id,
            "title": self.title,
            "room": self.room,
            "start_time": self.start_time.strftime("%H:%M"),
            "duration": self.duration,
            "capacity": self.capacity,
            "hosts": sorted(self.hosts),
            "attendees": list(self.attendees),
            "status": self.status.value,
        }
