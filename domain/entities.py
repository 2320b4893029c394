"""Domain Entities - Aggregates"""
import threading
from datetime import date, datetime, time, timezone
from typing import List, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, PrivateAttr, field_validator, model_validator

from domain.enums import Purpose
from domain.exceptions import InvalidInterval, ReservationNotFound
from domain.time_slots import TimeRange, format_time_label


class Reservation(BaseModel):
    """Reservation Entity, owned by exactly one Room"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)
    room_name: str

    # When
    reservation_date: date
    start_time: time
    end_time: time

    # What / who
    purpose: Purpose = Purpose.OTHER
    priority: int
    leader: str = ""
    info: str = ""

    # Soft-delete flag
    active: bool = True

    # Metadata
    created_by: str = "SYSTEM"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        from_attributes = True

    @model_validator(mode="before")
    @classmethod
    def default_priority_from_purpose(cls, data):
        if isinstance(data, dict) and data.get("priority") is None:
            data = dict(data)
            data["priority"] = Purpose.from_label(data.get("purpose")).priority
        return data

    @field_validator("purpose", mode="before")
    @classmethod
    def normalize_purpose(cls, v):
        return Purpose.from_label(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_time <= self.start_time:
            raise InvalidInterval(
                f"End time {format_time_label(self.end_time)} must be after "
                f"start time {format_time_label(self.start_time)}"
            )
        return self

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        room_name: str,
        reservation_date: date,
        time_range: TimeRange,
        purpose: Union[Purpose, str],
        leader: str,
        info: str = "",
        priority: Optional[int] = None,
        created_by: str = "SYSTEM"
    ) -> "Reservation":
        """Create a new active reservation"""
        return Reservation(
            room_name=room_name,
            reservation_date=reservation_date,
            start_time=time_range.start,
            end_time=time_range.end,
            purpose=purpose,
            priority=priority,
            leader=leader.strip(),
            info=info,
            created_by=created_by
        )

    # ==================== QUERY METHODS ====================
    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)

    def overlaps(self, other: "Reservation") -> bool:
        """Same date and overlapping [start, end)"""
        return (
            self.reservation_date == other.reservation_date
            and self.time_range.overlaps(other.time_range)
        )

    def occupies(self, moment: time) -> bool:
        return self.time_range.contains(moment)

    def ends_at(self) -> datetime:
        """End of the reservation as a naive local datetime"""
        return datetime.combine(self.reservation_date, self.end_time)

    def is_expired(self, now: datetime) -> bool:
        return self.ends_at() <= now

    def describe(self) -> str:
        return (
            f"{self.room_name} on {self.reservation_date.isoformat()} "
            f"{self.time_range} ({self.purpose.value}, priority {self.priority})"
        )


class Room(BaseModel):
    """Room Aggregate Root Entity

    The reservation list is guarded by the room's own lock. Methods below
    that read or change the list expect the caller to hold ``room.lock``.
    """

    name: str
    reservations: List[Reservation] = Field(default_factory=list)

    _lock = PrivateAttr(default_factory=threading.Lock)
    _removed: bool = PrivateAttr(default=False)

    @model_validator(mode="before")
    @classmethod
    def normalize_reservations(cls, data):
        # Older snapshots may carry a null list or omit the room name per entry
        if isinstance(data, dict):
            data = dict(data)
            records = data.get("reservations") or []
            name = data.get("name")
            data["reservations"] = [
                {**r, "room_name": r.get("room_name") or name} if isinstance(r, dict) else r
                for r in records
            ]
        return data

    @property
    def lock(self) -> threading.Lock:
        return self._lock

    @property
    def removed(self) -> bool:
        """Set once the room has been deleted from its registry"""
        return self._removed

    def mark_removed(self) -> None:
        self._removed = True

    def active_on(self, reservation_date: date) -> List[Reservation]:
        return [
            r for r in self.reservations
            if r.active and r.reservation_date == reservation_date
        ]

    def find_index(self, index_or_id: Union[int, UUID, str]) -> int:
        """Locate a stored reservation by list position or reservation id"""
        if isinstance(index_or_id, int) and not isinstance(index_or_id, bool):
            if 0 <= index_or_id < len(self.reservations):
                return index_or_id
            raise ReservationNotFound(
                f"No reservation at position {index_or_id} in room '{self.name}'"
            )
        try:
            wanted = index_or_id if isinstance(index_or_id, UUID) else UUID(str(index_or_id))
        except ValueError:
            raise ReservationNotFound(f"Reservation '{index_or_id}' not found")
        for i, reservation in enumerate(self.reservations):
            if reservation.reservation_id == wanted:
                return i
        raise ReservationNotFound(
            f"Reservation '{index_or_id}' not found in room '{self.name}'"
        )

    def snapshot(self) -> "Room":
        """Detached copy for persistence (new lock, copied reservations)"""
        return Room(
            name=self.name,
            reservations=[r.model_copy() for r in self.reservations]
        )
