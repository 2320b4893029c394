"""Periodic maintenance jobs: stale-reservation sweep and the daily reset"""
import logging
from datetime import datetime
from typing import Optional

from application.commands import CommandLog
from application.registry import RoomRegistry
from application.store import ReservationStore
from domain.exceptions import RoomNotFound

logger = logging.getLogger(__name__)


class MaintenanceService:
    """Jobs run by the background timers; each room is handled under its own lock"""

    def __init__(self, registry: RoomRegistry, store: ReservationStore, command_log: CommandLog):
        self.registry = registry
        self.store = store
        self.command_log = command_log

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Soft delete every active reservation whose end time has passed"""
        now = now or datetime.now()
        swept = 0
        for name in self.registry.names():
            try:
                swept += self.store.sweep_expired(name, now)
            except RoomNotFound:
                # Removed by an admin while the sweep was running
                continue
        if swept:
            logger.info("Sweep deactivated %d expired reservation(s)", swept)
        return swept

    def daily_reset(self, now: Optional[datetime] = None) -> int:
        """Purge inactive and expired reservations and start a fresh undo history"""
        now = now or datetime.now()
        purged = 0
        for name in self.registry.names():
            try:
                purged += self.store.purge(name, lambda r: not r.active or r.is_expired(now))
            except RoomNotFound:
                continue
        # Purged reservations can no longer be undone or redone
        self.command_log.clear()
        logger.info("Daily reset purged %d reservation(s)", purged)
        return purged
