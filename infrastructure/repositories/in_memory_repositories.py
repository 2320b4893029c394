"""In-Memory Repository Implementations"""
from threading import Lock
from typing import Dict, List, Optional

from domain.auth import UserInDB
from domain.entities import Room
from domain.repositories import RoomRepository, UserRepository


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository"""

    def __init__(self, rooms: Optional[List[Room]] = None):
        self._storage: Optional[Dict[str, Room]] = None
        self._lock = Lock()
        self.save_count = 0
        if rooms is not None:
            self._storage = {room.name: room.snapshot() for room in rooms}

    def load_rooms(self) -> Optional[List[Room]]:
        """Load rooms from memory"""
        with self._lock:
            if self._storage is None:
                return None
            return [room.snapshot() for room in self._storage.values()]

    def save_room(self, room: Room) -> None:
        """Save room snapshot to memory"""
        with self._lock:
            if self._storage is None:
                self._storage = {}
            self._storage[room.name] = room
            self.save_count += 1

    def remove_room(self, name: str) -> None:
        """Remove room from memory"""
        with self._lock:
            if self._storage is not None:
                self._storage.pop(name, None)
            self.save_count += 1

    def save_all(self, rooms: List[Room]) -> None:
        """Replace all rooms"""
        with self._lock:
            self._storage = {room.name: room for room in rooms}
            self.save_count += 1

    def stored(self, name: str) -> Optional[Room]:
        """Last persisted snapshot of a room"""
        with self._lock:
            if self._storage is None:
                return None
            return self._storage.get(name)


class InMemoryUserRepository(UserRepository):
    """In-memory implementation of UserRepository"""

    def __init__(self, users: Optional[List[UserInDB]] = None):
        self._storage: Optional[List[UserInDB]] = list(users) if users is not None else None

    def load_users(self) -> Optional[List[UserInDB]]:
        """Load users from memory"""
        if self._storage is None:
            return None
        return list(self._storage)

    def save_users(self, users: List[UserInDB]) -> None:
        """Save users to memory"""
        self._storage = list(users)
