import pytest

from exceptions import PermissionDenied
from models import Capability, Role, User
from permissions import authorize, has_capability, permissions_for


def make_user(role, permissions=None):
    return User(id=f"{role.value}-1", username=role.value, name=role.value.title(), role=role,
                permissions=permissions_for(role) if permissions is None else permissions)


@pytest.mark.parametrize("role, allowed", [
    (Role.ATTENDEE, False),
    (Role.SPEAKER, False),
    (Role.ORGANIZER, True),
    (Role.ADMIN, True),
])
def test_schedule_capability_by_role(role, allowed):
    assert has_capability(make_user(role), Capability.CAN_SCHEDULE) is allowed


def test_templates_cover_every_capability():
    for role in Role:
        assert set(permissions_for(role)) == set(Capability)


def test_templates_are_computed_once_and_read_only():
    assert permissions_for(Role.SPEAKER) is permissions_for(Role.SPEAKER)
    with pytest.raises(TypeError):
        permissions_for(Role.SPEAKER)[Capability.CAN_SCHEDULE] = True


def test_user_permissions_are_immutable():
    user = make_user(Role.ATTENDEE)
    with pytest.raises(TypeError):
        user.permissions[Capability.CAN_SCHEDULE] = True


def test_missing_capability_defaults_to_false():
    user = make_user(Role.ORGANIZER, permissions={Capability.CAN_SCHEDULE: True})
    assert has_capability(user, Capability.CAN_BAN_USERS) is False
    with pytest.raises(PermissionDenied):
        authorize(user, Capability.CAN_BAN_USERS)


def test_authorize():
    speaker = make_user(Role.SPEAKER)
    authorize(speaker, Capability.CAN_SPEAK_AT_TALK)
    with pytest.raises(PermissionDenied) as excinfo:
        authorize(speaker, Capability.CAN_SCHEDULE)
    assert excinfo.value.capability is Capability.CAN_SCHEDULE


def test_banned_user_is_denied():
    organizer = make_user(Role.ORGANIZER)
    organizer.is_banned = True
    with pytest.raises(PermissionDenied):
        authorize(organizer, Capability.CAN_SCHEDULE)
