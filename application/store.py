"""Reservation Store

Authoritative per-room reservation lists. Each mutation holds the room's
lock from reading the existing reservations through writing the new state
and persisting it, so no other change to the same room can interleave.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple, Union
from uuid import UUID

from pydantic import BaseModel

from application.notifications import NotificationOutbox
from application.registry import RoomRegistry, persist_room
from domain.conflicts import find_conflicts, resolve
from domain.entities import Reservation, Room
from domain.enums import ConflictOutcome
from domain.exceptions import RoomNotFound, SlotUnavailable
from domain.time_slots import DateLike, parse_date
from domain.value_objects import DisplacementNotice

logger = logging.getLogger(__name__)

IndexOrId = Union[int, UUID, str]


def _ensure_present(room: Room) -> None:
    """Raise if the room was removed while the caller waited for its lock"""
    if room.removed:
        raise RoomNotFound(f"Room '{room.name}' not found")


class ReservationOutcome(BaseModel):
    """Result of an accepted reservation"""
    reservation: Reservation
    index: int
    outcome: ConflictOutcome
    displaced: List[DisplacementNotice] = []

    @property
    def displaced_ids(self) -> List[UUID]:
        return [notice.reservation_id for notice in self.displaced]


class ReservationStore:
    """Thread-safe reserve / delete / list on top of the room registry"""

    def __init__(self, registry: RoomRegistry, outbox: Optional[NotificationOutbox] = None):
        self.registry = registry
        self.outbox = outbox or NotificationOutbox()

    # ==================== MUTATIONS ====================
    def reserve(self, room_name: str, reservation: Reservation) -> ReservationOutcome:
        """Admit a reservation, overriding weaker overlaps, or raise SlotUnavailable

        A reservation whose id is already stored in the room is re-activated
        in place instead of appended (redo of an undone booking).
        """
        room = self.registry.get(room_name)
        candidate = reservation.model_copy(update={"room_name": room.name, "active": True})

        with room.lock:
            _ensure_present(room)
            resolution = resolve(candidate, room.active_on(candidate.reservation_date))
            if resolution.outcome == ConflictOutcome.REJECT:
                blocking = resolution.blocking[0]
                logger.warning(
                    "Rejected %s: conflicts with %s", candidate.describe(), blocking.describe()
                )
                raise SlotUnavailable(
                    f"Time slot already reserved: {room.name} on "
                    f"{candidate.reservation_date.isoformat()} {blocking.time_range} "
                    f"({blocking.purpose.value})"
                )

            displaced_ids = {r.reservation_id for r in resolution.displaced}
            notices = []
            for existing in room.reservations:
                if existing.active and existing.reservation_id in displaced_ids:
                    existing.active = False
                    notices.append(DisplacementNotice.for_reservation(existing, candidate))

            stored_ids = [r.reservation_id for r in room.reservations]
            if candidate.reservation_id in stored_ids:
                index = stored_ids.index(candidate.reservation_id)
                room.reservations[index].active = True
                stored = room.reservations[index]
            else:
                room.reservations.append(candidate)
                index = len(room.reservations) - 1
                stored = candidate

            persist_room(self.registry.repository, room)
            result = ReservationOutcome(
                reservation=stored.model_copy(),
                index=index,
                outcome=resolution.outcome,
                displaced=notices
            )

        if resolution.outcome == ConflictOutcome.OVERRIDE:
            logger.info(
                "Reserved %s, overriding %d reservation(s)", stored.describe(), len(notices)
            )
        else:
            logger.info("Reserved %s", stored.describe())

        for notice in notices:
            self.outbox.publish(notice)
        return result

    def delete_reservation(self, room_name: str, index_or_id: IndexOrId, hard: bool = False) -> Reservation:
        """Soft delete (deactivate) or hard remove one reservation"""
        room = self.registry.get(room_name)
        with room.lock:
            _ensure_present(room)
            index = room.find_index(index_or_id)
            if hard:
                removed = room.reservations.pop(index)
            else:
                removed = room.reservations[index]
                removed.active = False
            persist_room(self.registry.repository, room)
            result = removed.model_copy()

        logger.info("%s deleted reservation %s", "Hard" if hard else "Soft", result.describe())
        return result

    def reactivate(self, room_name: str, reservation_id: IndexOrId) -> Reservation:
        """Bring a soft-deleted reservation back; it must not overlap anything active"""
        room = self.registry.get(room_name)
        with room.lock:
            _ensure_present(room)
            index = room.find_index(reservation_id)
            target = room.reservations[index]
            if not target.active:
                conflicts = find_conflicts(target, room.active_on(target.reservation_date))
                if conflicts:
                    raise SlotUnavailable(
                        f"Cannot restore {target.describe()}: slot now held by "
                        f"{conflicts[0].describe()}"
                    )
                target.active = True
                persist_room(self.registry.repository, room)
            result = target.model_copy()

        logger.info("Restored reservation %s", result.describe())
        return result

    def purge(self, room_name: str, predicate: Callable[[Reservation], bool]) -> int:
        """Hard remove every stored reservation matching predicate"""
        room = self.registry.get(room_name)
        with room.lock:
            _ensure_present(room)
            kept = [r for r in room.reservations if not predicate(r)]
            removed = len(room.reservations) - len(kept)
            if removed:
                room.reservations[:] = kept
                persist_room(self.registry.repository, room)
        return removed

    def sweep_expired(self, room_name: str, now: datetime) -> int:
        """Soft delete active reservations that ended before now"""
        room = self.registry.get(room_name)
        with room.lock:
            _ensure_present(room)
            expired = [r for r in room.reservations if r.active and r.is_expired(now)]
            for reservation in expired:
                reservation.active = False
            if expired:
                persist_room(self.registry.repository, room)
        return len(expired)

    # ==================== QUERIES ====================
    def list_reservations(self, room_name: str, reservation_date: DateLike) -> List[Reservation]:
        """Snapshot of the active reservations for one date, in insertion order"""
        day = parse_date(reservation_date)
        room = self.registry.get(room_name)
        with room.lock:
            _ensure_present(room)
            return [r.model_copy() for r in room.active_on(day)]

    def all_reservations(self, room_name: str) -> List[Reservation]:
        """Snapshot of every stored reservation, including soft-deleted ones"""
        room = self.registry.get(room_name)
        with room.lock:
            _ensure_present(room)
            return [r.model_copy() for r in room.reservations]

    def locate(self, room_name: str, index_or_id: IndexOrId) -> Tuple[int, Reservation]:
        """Position and copy of one stored reservation"""
        room = self.registry.get(room_name)
        with room.lock:
            _ensure_present(room)
            index = room.find_index(index_or_id)
            return index, room.reservations[index].model_copy()

    def get_reservation(self, room_name: str, index_or_id: IndexOrId) -> Reservation:
        return self.locate(room_name, index_or_id)[1]
