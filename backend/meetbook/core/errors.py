"""Error taxonomy for the scheduling core."""


class SchedulingError(Exception):
    """Base exception for scheduling errors."""


class NotFound(SchedulingError):
    """Raised when a host, window or meeting does not exist (or is not owned by the caller)."""


class NotBookable(SchedulingError):
    """Raised when a host does not have scheduling enabled."""


class HostNotBookable(NotBookable):
    """Raised by the booking path when the host is missing or unlicensed."""


class InvalidWindow(SchedulingError):
    """Raised when an availability window is malformed."""


class InvalidParticipant(SchedulingError):
    """Raised when the booker's name or email is missing or invalid."""


class InvalidMeeting(SchedulingError):
    """Raised when a directly scheduled meeting has an invalid time range."""


class InvalidTransition(SchedulingError):
    """Raised when a meeting status change is not allowed."""


class SlotUnavailable(SchedulingError):
    """Raised when the requested slot is not (or no longer) bookable."""


class PersistenceFailure(SchedulingError):
    """Raised when the storage layer fails. The cause is kept on ``__cause__``."""
