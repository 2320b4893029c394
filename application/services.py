"""Application Services - Business use cases"""
from typing import Iterable, Optional, Union

from application.availability import AvailabilityService
from application.commands import Authorizer, Command, CommandLog
from application.maintenance import MaintenanceService
from application.notifications import NotificationOutbox
from application.registry import RoomRegistry
from application.store import IndexOrId, ReservationOutcome, ReservationStore
from application.users import UserService
from domain.entities import Reservation
from domain.enums import Purpose
from domain.exceptions import InvalidInterval
from domain.repositories import RoomRepository, UserRepository
from domain.time_slots import DateLike, SlotCatalog, TimeLike, TimeRange, parse_date


class BookingEngine:
    """Wires the registries, store, queries and undo log into one unit

    Collaborators (UI, HTTP adapter, tests) hold one engine; nothing in it is
    module-global, so every engine is isolated from every other.
    """

    def __init__(
        self,
        room_repository: RoomRepository,
        user_repository: UserRepository,
        catalog: Optional[SlotCatalog] = None,
        default_rooms: Optional[Iterable[str]] = None,
        max_undo_history: Optional[int] = None,
        notification_outbox_size: int = 500,
        min_password_length: int = 8
    ):
        self.catalog = catalog or SlotCatalog.create()
        self.rooms = RoomRegistry(room_repository, default_rooms)
        self.users = UserService(user_repository, min_password_length)
        self.notifications = NotificationOutbox(notification_outbox_size)
        self.store = ReservationStore(self.rooms, self.notifications)
        self.availability = AvailabilityService(self.rooms, self.catalog)
        self.commands = CommandLog(self.store, max_undo_history)
        self.maintenance = MaintenanceService(self.rooms, self.store, self.commands)

    def load(self) -> "BookingEngine":
        """Initialize rooms and users from durable storage"""
        self.rooms.load()
        self.users.load()
        return self

    # ==================== BOOKING ====================
    def book(
        self,
        room_name: str,
        reservation_date: DateLike,
        purpose: Union[Purpose, str],
        leader: str,
        start: Optional[TimeLike] = None,
        end: Optional[TimeLike] = None,
        slots: Optional[Iterable[TimeLike]] = None,
        info: str = "",
        priority: Optional[int] = None,
        created_by: str = "SYSTEM"
    ) -> ReservationOutcome:
        """Validate and reserve, recording the booking for undo

        The interval comes either from an explicit start/end pair or from a
        contiguous selection of catalog slots.
        """
        room = self.rooms.get(room_name)
        day = parse_date(reservation_date)

        if slots is not None:
            time_range = self.catalog.range_for(slots)
        elif start is not None and end is not None:
            time_range = TimeRange.create(start, end)
        else:
            raise InvalidInterval("Either start and end times or time slots are required")

        reservation = Reservation.create(
            room_name=room.name,
            reservation_date=day,
            time_range=time_range,
            purpose=purpose,
            leader=leader,
            info=info,
            priority=priority,
            created_by=created_by
        )
        return self.commands.reserve(room.name, reservation)

    def cancel(self, room_name: str, index_or_id: IndexOrId) -> Reservation:
        """Soft delete a reservation through the undo log"""
        return self.commands.cancel(room_name, index_or_id)

    def undo(self, authorize: Optional[Authorizer] = None) -> Optional[Command]:
        return self.commands.undo(authorize)

    def redo(self, authorize: Optional[Authorizer] = None) -> Optional[Command]:
        return self.commands.redo(authorize)
