"""JSON File Repository Implementations

Rooms and users live in two well-known JSON files. Every write rewrites the
whole file through a temporary file and an atomic rename, so a crash never
leaves a half-written snapshot behind.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional

from pydantic import ValidationError

from domain.auth import UserInDB
from domain.entities import Room
from domain.exceptions import PersistenceFailure, RoomBookingError
from domain.repositories import RoomRepository, UserRepository

logger = logging.getLogger(__name__)


def _write_json_atomic(path: Path, payload) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _read_json(path: Path):
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


class JsonRoomRepository(RoomRepository):
    """Room/reservation snapshot stored as a JSON list of room records"""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._snapshots: Dict[str, Room] = {}
        self._lock = Lock()

    def load_rooms(self) -> Optional[List[Room]]:
        """Load rooms from the JSON file"""
        if not self.path.exists():
            logger.info("%s not found, a new snapshot will be created", self.path)
            return None
        try:
            records = _read_json(self.path) or []
            rooms = [Room.model_validate(record) for record in records]
        except (OSError, ValueError, ValidationError, RoomBookingError) as e:
            raise PersistenceFailure(f"Could not read {self.path}: {e}")

        with self._lock:
            self._snapshots = {room.name: room.snapshot() for room in rooms}
        logger.info("Loaded %d rooms from %s", len(rooms), self.path)
        return rooms

    def save_room(self, room: Room) -> None:
        """Record a room snapshot and rewrite the file"""
        with self._lock:
            self._snapshots[room.name] = room
            self._flush()

    def remove_room(self, name: str) -> None:
        """Drop a room and rewrite the file"""
        with self._lock:
            self._snapshots.pop(name, None)
            self._flush()

    def save_all(self, rooms: List[Room]) -> None:
        """Replace the whole snapshot"""
        with self._lock:
            self._snapshots = {room.name: room for room in rooms}
            self._flush()

    def _flush(self) -> None:
        payload = [room.model_dump(mode="json") for room in self._snapshots.values()]
        try:
            _write_json_atomic(self.path, payload)
        except OSError as e:
            logger.error("Error saving reservations to %s: %s", self.path, e)
            raise PersistenceFailure(f"Could not write {self.path}: {e}")


class JsonUserRepository(UserRepository):
    """User accounts stored as a JSON list"""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = Lock()

    def load_users(self) -> Optional[List[UserInDB]]:
        """Load users from the JSON file"""
        if not self.path.exists():
            logger.info("%s not found, an admin account must be created", self.path)
            return None
        try:
            records = _read_json(self.path) or []
            return [UserInDB.model_validate(record) for record in records]
        except (OSError, ValueError, ValidationError) as e:
            raise PersistenceFailure(f"Could not read {self.path}: {e}")

    def save_users(self, users: List[UserInDB]) -> None:
        """Rewrite the users file"""
        payload = [user.model_dump(mode="json") for user in users]
        with self._lock:
            try:
                _write_json_atomic(self.path, payload)
            except OSError as e:
                logger.error("Error saving users to %s: %s", self.path, e)
                raise PersistenceFailure(f"Could not write {self.path}: {e}")
