"""Room Registry - the root aggregate collection"""
import logging
from threading import Lock
from typing import Dict, Iterable, List, Optional

from domain.entities import Room
from domain.exceptions import InvalidRoomName, PersistenceFailure, RoomAlreadyExists, RoomNotFound
from domain.repositories import RoomRepository

logger = logging.getLogger(__name__)


def persist_room(repository: RoomRepository, room: Room) -> bool:
    """Write a room snapshot; failures are logged and the in-memory state stands

    Must be called with ``room.lock`` held so the snapshot is not torn. A
    room already removed from its registry is never written back.
    """
    if room.removed:
        return False
    try:
        repository.save_room(room.snapshot())
        return True
    except PersistenceFailure as e:
        logger.error(
            "Persisting room '%s' failed, in-memory state kept until the next save: %s",
            room.name, e
        )
        return False


class RoomRegistry:
    """Holds every Room by name, loaded from and written through a repository

    The registry lock only guards the name map; reservation lists are guarded
    by each room's own lock.
    """

    def __init__(self, repository: RoomRepository, default_rooms: Optional[Iterable[str]] = None):
        self.repository = repository
        self.default_rooms = list(default_rooms or [])
        self._rooms: Dict[str, Room] = {}
        self._lock = Lock()

    # ==================== LIFECYCLE ====================
    def load(self) -> None:
        """Initialize from the persisted snapshot, seeding defaults on first run"""
        rooms = self.repository.load_rooms()
        if rooms is None:
            rooms = [Room(name=name) for name in self.default_rooms]
            logger.info("No reservation snapshot found, creating %d default rooms", len(rooms))
            try:
                self.repository.save_all([room.snapshot() for room in rooms])
            except PersistenceFailure as e:
                logger.error("Could not write initial snapshot: %s", e)

        with self._lock:
            self._rooms = {room.name: room for room in rooms}

    # ==================== QUERY METHODS ====================
    def get(self, name: str) -> Room:
        """Find room by name"""
        with self._lock:
            room = self._rooms.get(name)
        if room is None:
            raise RoomNotFound(f"Room '{name}' not found")
        return room

    def list_rooms(self) -> List[Room]:
        """All rooms in creation order"""
        with self._lock:
            return list(self._rooms.values())

    def names(self) -> List[str]:
        with self._lock:
            return list(self._rooms.keys())

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._rooms

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    # ==================== ADMIN OPERATIONS ====================
    def add_room(self, name: str) -> Room:
        """Create an empty room"""
        name = (name or "").strip()
        if not name:
            raise InvalidRoomName("Room name cannot be empty")

        with self._lock:
            if name in self._rooms:
                raise RoomAlreadyExists(f"Room '{name}' already exists")
            room = Room(name=name)
            self._rooms[name] = room

        with room.lock:
            persist_room(self.repository, room)
        logger.info("Room '%s' added", name)
        return room

    def remove_room(self, name: str) -> Room:
        """Remove a room together with all of its reservations"""
        with self._lock:
            room = self._rooms.pop(name, None)
        if room is None:
            raise RoomNotFound(f"Room '{name}' not found")

        # Waits out any mutation still holding the room; later ones see the flag
        with room.lock:
            room.mark_removed()
            count = len(room.reservations)
            try:
                self.repository.remove_room(name)
            except PersistenceFailure as e:
                logger.error("Persisting removal of room '%s' failed: %s", name, e)
        logger.info("Room '%s' removed with %d reservations", name, count)
        return room
