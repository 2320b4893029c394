"""Command/Undo Log

Commands are plain data tagged with a CommandKind. Applying and inverting a
command is looked up in the dispatch tables below, so the undo and redo
stacks never hold closures over mutable state.
"""
import logging
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel

from application.store import IndexOrId, ReservationOutcome, ReservationStore
from domain.entities import Reservation
from domain.enums import CommandKind
from domain.exceptions import ReservationNotFound, RoomNotFound, SlotUnavailable

logger = logging.getLogger(__name__)


class Command(BaseModel):
    """Reversible booking operation"""
    kind: CommandKind
    room_name: str
    reservation: Reservation
    index: Optional[int] = None
    displaced_ids: List[UUID] = []

    class Config:
        frozen = True

    def describe(self) -> str:
        return f"{self.kind.value} {self.reservation.describe()}"


# ==================== DISPATCH ====================
def _apply_reserve(store: ReservationStore, command: Command) -> Tuple[Command, ReservationOutcome]:
    outcome = store.reserve(command.room_name, command.reservation)
    applied = command.model_copy(update={
        "reservation": outcome.reservation,
        "index": outcome.index,
        "displaced_ids": outcome.displaced_ids,
    })
    return applied, outcome


def _invert_reserve(store: ReservationStore, command: Command) -> None:
    store.delete_reservation(command.room_name, command.reservation.reservation_id)
    for displaced_id in command.displaced_ids:
        try:
            store.reactivate(command.room_name, displaced_id)
        except (SlotUnavailable, ReservationNotFound) as e:
            logger.warning("Could not restore displaced reservation %s: %s", displaced_id, e)


def _apply_cancel(store: ReservationStore, command: Command) -> Tuple[Command, Reservation]:
    cancelled = store.delete_reservation(command.room_name, command.reservation.reservation_id)
    return command.model_copy(update={"reservation": cancelled}), cancelled


def _invert_cancel(store: ReservationStore, command: Command) -> None:
    store.reactivate(command.room_name, command.reservation.reservation_id)


_APPLY: Dict[CommandKind, Callable[[ReservationStore, Command], Tuple[Command, Any]]] = {
    CommandKind.RESERVE: _apply_reserve,
    CommandKind.CANCEL: _apply_cancel,
}

_INVERT: Dict[CommandKind, Callable[[ReservationStore, Command], None]] = {
    CommandKind.RESERVE: _invert_reserve,
    CommandKind.CANCEL: _invert_cancel,
}


Authorizer = Callable[[Command], None]


class CommandLog:
    """Process-wide undo/redo history

    The log lock only guards the two stacks; store mutations run outside it,
    so commands against different rooms proceed independently.

    ``max_history`` caps the undo stack; when set, the oldest entry is
    dropped (and logged) once the cap is exceeded. Unbounded by default.
    """

    def __init__(self, store: ReservationStore, max_history: Optional[int] = None):
        self.store = store
        self.max_history = max_history
        self._undo: List[Command] = []
        self._redo: List[Command] = []
        self._lock = Lock()

    # ==================== OPERATIONS ====================
    def execute(self, command: Command) -> Any:
        """Apply a command, record it for undo and invalidate redo"""
        applied, result = _APPLY[command.kind](self.store, command)
        with self._lock:
            self._push_undo(applied)
            self._redo.clear()
        return result

    def reserve(self, room_name: str, reservation: Reservation) -> ReservationOutcome:
        return self.execute(Command(
            kind=CommandKind.RESERVE,
            room_name=room_name,
            reservation=reservation
        ))

    def cancel(self, room_name: str, index_or_id: IndexOrId) -> Reservation:
        index, target = self.store.locate(room_name, index_or_id)
        if not target.active:
            raise ReservationNotFound(f"Reservation {target.reservation_id} is already cancelled")
        return self.execute(Command(
            kind=CommandKind.CANCEL,
            room_name=room_name,
            reservation=target,
            index=index
        ))

    def undo(self, authorize: Optional[Authorizer] = None) -> Optional[Command]:
        """Invert the most recent command; None when there is nothing to undo

        ``authorize`` sees the command before it leaves the stack and may
        raise to refuse it.
        """
        command = self._pop(self._undo, authorize)
        if command is None:
            return None
        try:
            _INVERT[command.kind](self.store, command)
        except SlotUnavailable:
            with self._lock:
                self._undo.append(command)
            raise
        except (RoomNotFound, ReservationNotFound) as e:
            logger.warning("Dropping undo of %s: %s", command.describe(), e)
            raise
        with self._lock:
            self._redo.append(command)

        logger.info("Undo: %s", command.describe())
        return command

    def redo(self, authorize: Optional[Authorizer] = None) -> Optional[Command]:
        """Re-apply the most recently undone command; None when there is nothing to redo"""
        command = self._pop(self._redo, authorize)
        if command is None:
            return None
        try:
            applied, _ = _APPLY[command.kind](self.store, command)
        except SlotUnavailable:
            with self._lock:
                self._redo.append(command)
            raise
        except (RoomNotFound, ReservationNotFound) as e:
            logger.warning("Dropping redo of %s: %s", command.describe(), e)
            raise
        with self._lock:
            self._push_undo(applied)

        logger.info("Redo: %s", applied.describe())
        return applied

    def clear(self) -> None:
        with self._lock:
            self._undo.clear()
            self._redo.clear()

    # ==================== QUERIES ====================
    @property
    def can_undo(self) -> bool:
        with self._lock:
            return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        with self._lock:
            return bool(self._redo)

    def history(self) -> Tuple[List[Command], List[Command]]:
        """Copies of the (undo, redo) stacks, oldest first"""
        with self._lock:
            return list(self._undo), list(self._redo)

    def _pop(self, stack: List[Command], authorize: Optional[Authorizer]) -> Optional[Command]:
        with self._lock:
            if not stack:
                return None
            if authorize is not None:
                authorize(stack[-1])
            return stack.pop()

    def _push_undo(self, command: Command) -> None:
        # Caller holds self._lock
        self._undo.append(command)
        if self.max_history is not None and len(self._undo) > self.max_history:
            dropped = self._undo.pop(0)
            logger.info("Undo history full (%d), dropping %s", self.max_history, dropped.describe())
