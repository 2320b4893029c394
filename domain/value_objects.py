"""Domain Value Objects"""
from datetime import date, datetime, time, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from domain.entities import Reservation
from domain.enums import Purpose
from domain.time_slots import format_time_label


class DisplacementNotice(BaseModel):
    """Raised when an override removes an existing reservation"""
    room_name: str
    reservation_id: UUID
    purpose: Purpose
    reservation_date: date
    start_time: time
    end_time: time
    leader: str
    displaced_by: UUID
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        frozen = True

    @staticmethod
    def for_reservation(displaced: Reservation, displaced_by: Reservation) -> "DisplacementNotice":
        return DisplacementNotice(
            room_name=displaced.room_name,
            reservation_id=displaced.reservation_id,
            purpose=displaced.purpose,
            reservation_date=displaced.reservation_date,
            start_time=displaced.start_time,
            end_time=displaced.end_time,
            leader=displaced.leader,
            displaced_by=displaced_by.reservation_id
        )

    def message(self) -> str:
        return (
            f"Your {self.purpose.value} reservation for {self.room_name} on "
            f"{self.reservation_date.isoformat()} from {format_time_label(self.start_time)} "
            f"to {format_time_label(self.end_time)} was overridden by a higher-priority booking."
        )


class SlotStatus(BaseModel):
    """One row of a room's day view"""
    label: str
    occupied: bool
    reservation: Optional[Reservation] = None

    class Config:
        frozen = True
