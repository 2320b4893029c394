"""Domain Enums"""
from enum import Enum
from typing import Dict, Union


class Purpose(str, Enum):
    """Booking purpose; each purpose carries a priority rank (lower = stronger)"""
    PRESENTATION = "Presentation"
    MEETING = "Meeting"
    STUDY_SESSION = "Study Session"
    OTHER = "Other"

    @property
    def priority(self) -> int:
        return _PURPOSE_PRIORITY[self]

    @classmethod
    def from_label(cls, label: Union[str, "Purpose", None]) -> "Purpose":
        """Resolve a display label or member name; unknown labels map to OTHER"""
        if isinstance(label, Purpose):
            return label
        if not label:
            return cls.OTHER
        normalized = str(label).strip().lower()
        for purpose in cls:
            if normalized in (purpose.value.lower(), purpose.name.lower()):
                return purpose
        return cls.OTHER


_PURPOSE_PRIORITY: Dict[Purpose, int] = {
    Purpose.PRESENTATION: 1,
    Purpose.MEETING: 2,
    Purpose.STUDY_SESSION: 3,
    Purpose.OTHER: 4,
}


class Role(str, Enum):
    ADMIN = "Admin"
    USER = "User"


class ConflictOutcome(str, Enum):
    ACCEPT = "ACCEPT"
    OVERRIDE = "OVERRIDE"
    REJECT = "REJECT"


class CommandKind(str, Enum):
    RESERVE = "RESERVE"
    CANCEL = "CANCEL"
