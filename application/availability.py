"""Availability Query - read-only views over the room registry"""
from typing import List

from application.registry import RoomRegistry
from domain.entities import Room
from domain.time_slots import DateLike, SlotCatalog, TimeLike, TimeRange, parse_date, parse_time_label
from domain.value_objects import SlotStatus


class AvailabilityService:
    """Answers "which rooms are free" and "what does a room's day look like"

    Each room is scanned under its own lock, one room at a time.
    """

    def __init__(self, registry: RoomRegistry, catalog: SlotCatalog):
        self.registry = registry
        self.catalog = catalog

    def rooms_available(self, reservation_date: DateLike, start: TimeLike, end: TimeLike) -> List[Room]:
        """Rooms with no active reservation overlapping [start, end) on that date"""
        day = parse_date(reservation_date)
        window = TimeRange.create(start, end)

        available = []
        for room in self.registry.list_rooms():
            with room.lock:
                if room.removed:
                    continue
                busy = any(r.time_range.overlaps(window) for r in room.active_on(day))
            if not busy:
                available.append(room)
        return available

    def slot_occupied(self, room_name: str, reservation_date: DateLike, slot_label: TimeLike) -> bool:
        """True iff the slot time falls within [start, end) of an active reservation"""
        day = parse_date(reservation_date)
        moment = parse_time_label(slot_label)
        room = self.registry.get(room_name)
        with room.lock:
            return any(r.occupies(moment) for r in room.active_on(day))

    def day_view(self, room_name: str, reservation_date: DateLike) -> List[SlotStatus]:
        """Occupancy of every catalog slot for one room and date"""
        day = parse_date(reservation_date)
        room = self.registry.get(room_name)
        with room.lock:
            active = [r.model_copy() for r in room.active_on(day)]

        view = []
        for label, moment in zip(self.catalog.labels, self.catalog.slot_times()):
            holder = next((r for r in active if r.occupies(moment)), None)
            view.append(SlotStatus(label=label, occupied=holder is not None, reservation=holder))
        return view

    def free_slots(self, room_name: str, reservation_date: DateLike) -> List[str]:
        return [status.label for status in self.day_view(room_name, reservation_date) if not status.occupied]
