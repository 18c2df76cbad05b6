class SchedulingError(Exception):
    """Base class for recoverable outcomes reported by the scheduling engine."""

    pass


class PermissionDenied(SchedulingError):
    """Raised when the acting user lacks the capability an action requires."""

    def __init__(self, user_id: str, capability):
        self.user_id = user_id
        self.capability = capability
        super().__init__(f"User {user_id} lacks permission {getattr(capability, 'value', capability)}")


class SchedulingConflict(SchedulingError):
    """Raised when a candidate window collides with live events. Carries every conflicting event."""

    def __init__(self, conflicts):
        self.conflicts = list(conflicts)
        titles = ", ".join(event.title for event in self.conflicts)
        super().__init__(f"Conflicts with {len(self.conflicts)} event(s): {titles}")


class CapacityExceeded(SchedulingError):
    """Raised when registering into an event that is already full."""

    pass


class AlreadyRegistered(SchedulingError):
    """Raised when the user is already on the attendee list."""

    pass


class NotRegistered(SchedulingError):
    """Raised when removing a user who is not on the attendee list."""

    pass


class IndexOutOfRange(SchedulingError, IndexError):
    """Raised when an index does not address a live event."""

    pass


class UserNotFound(SchedulingError):
    """Raised when no user matches the given id or username."""

    pass


# Mapping of engine errors to HTTP status codes
CUSTOM_ERRORS = {
    PermissionDenied: 403,
    SchedulingConflict: 409,
    CapacityExceeded: 409,
    AlreadyRegistered: 409,
    NotRegistered: 404,
    IndexOutOfRange: 404,
    UserNotFound: 404,
}


def status_code_for(error: SchedulingError) -> int:
    for error_type, status_code in CUSTOM_ERRORS.items():
        if isinstance(error, error_type):
            return status_code
    return 400
