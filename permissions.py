from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from exceptions import PermissionDenied
from models import Capability, Role, User

# Capabilities granted per role; anything not listed is denied.
ROLE_CAPABILITIES = {
    Role.ATTENDEE: {
        Capability.CAN_BE_MESSAGED,
        Capability.CAN_SIGN_UP_EVENT,
    },
    Role.SPEAKER: {
        Capability.CAN_BE_MESSAGED,
        Capability.CAN_MESSAGE_TALK,
        Capability.CAN_SPEAK_AT_TALK,
    },
    Role.ORGANIZER: {
        Capability.CAN_BE_MESSAGED,
        Capability.CAN_SCHEDULE,
        Capability.CAN_SIGN_UP_EVENT,
        Capability.CAN_SIGN_UP_USER,
        Capability.CAN_VIEW_STATS,
    },
    Role.ADMIN: {
        Capability.CAN_SCHEDULE,
        Capability.CAN_SIGN_UP_USER,
        Capability.CAN_VIEW_STATS,
        Capability.CAN_BAN_USERS,
        Capability.CAN_SEE_ALL_MESSAGES,
    },
}


@lru_cache(maxsize=None)
def permissions_for(role: Role) -> Mapping[Capability, bool]:
    """Return the fixed capability mapping for a role."""
    granted = ROLE_CAPABILITIES[Role(role)]
    return MappingProxyType({capability: capability in granted for capability in Capability})


def has_capability(user: User, capability: Capability) -> bool:
    """Look up a capability; a missing key counts as False."""
    return bool(user.permissions.get(capability, False))


def authorize(user: User, capability: Capability) -> None:
    """Raise PermissionDenied unless the user may perform the action."""
    if user.is_banned or not has_capability(user, capability):
        raise PermissionDenied(user.id, capability)
