"""Domain Repository Interfaces (Persistence Gateway)"""
from abc import ABC, abstractmethod
from typing import List, Optional

from domain.auth import UserInDB
from domain.entities import Room


class RoomRepository(ABC):
    """Durable storage for the room/reservation snapshot

    Implementations raise PersistenceFailure when a write fails.
    """

    @abstractmethod
    def load_rooms(self) -> Optional[List[Room]]:
        """Load every room; None when no snapshot exists yet"""
        pass

    @abstractmethod
    def save_room(self, room: Room) -> None:
        """Store a detached room snapshot and rewrite the full state"""
        pass

    @abstractmethod
    def remove_room(self, name: str) -> None:
        """Drop a room (and its reservations) and rewrite the full state"""
        pass

    @abstractmethod
    def save_all(self, rooms: List[Room]) -> None:
        """Replace the full state"""
        pass


class UserRepository(ABC):
    """Durable storage for user accounts"""

    @abstractmethod
    def load_users(self) -> Optional[List[UserInDB]]:
        """Load all users; None when no user file exists yet"""
        pass

    @abstractmethod
    def save_users(self, users: List[UserInDB]) -> None:
        """Replace all stored users"""
        pass
