"""Domain Exceptions

Every engine operation either returns a value or raises one of these.
The collaborator layer translates them into user-facing messages.
"""


class RoomBookingError(Exception):
    """Base class for all engine errors"""

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class InvalidInterval(RoomBookingError):
    """Invalid time interval"""


class InvalidTimeFormat(RoomBookingError):
    """Invalid time format"""


class SlotNotFound(RoomBookingError):
    """Time slot not found"""


class SlotUnavailable(RoomBookingError):
    """Time slot already reserved"""


class RoomNotFound(RoomBookingError):
    """Room not found"""


class RoomAlreadyExists(RoomBookingError):
    """Room already exists"""


class InvalidRoomName(RoomBookingError):
    """Room name cannot be empty"""


class ReservationNotFound(RoomBookingError):
    """Reservation not found"""


class UserNotFound(RoomBookingError):
    """User not found"""


class InvalidUsername(RoomBookingError):
    """Username cannot be empty"""


class UserAlreadyExists(RoomBookingError):
    """Username already exists"""


class WeakPassword(RoomBookingError):
    """Password does not meet the minimum requirements"""


class AuthenticationFailed(RoomBookingError):
    """Incorrect username or password"""


class PermissionDenied(RoomBookingError):
    """You do not have permission to perform this action"""


class PersistenceFailure(RoomBookingError):
    """Could not write state to durable storage"""
